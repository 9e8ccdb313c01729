"""
Tests for slippage math and parameter formatting.
"""

from decimal import Decimal

import pytest

from smartswap.core.swap import calculate_min_amount_out, format_fee_tier, format_slippage
from smartswap.core.swap.pricing import describe_amount_factor, format_amount_factor


class TestMinAmountOut:
    """calculate_min_amount_out"""

    def test_one_percent(self):
        assert calculate_min_amount_out(10_000, 100) == 9_900

    def test_rounds_down(self):
        assert calculate_min_amount_out(999, 100) == 989

    def test_zero_slippage(self):
        assert calculate_min_amount_out(12345, 0) == 12345

    def test_large_amounts_are_exact(self):
        expected = 123456789 * 10**18
        assert calculate_min_amount_out(expected, 50) == expected * 9950 // 10000

    @pytest.mark.parametrize("amount, bps", [(-1, 100), (1000, 10000), (1000, -5)])
    def test_invalid_inputs(self, amount, bps):
        with pytest.raises(ValueError):
            calculate_min_amount_out(amount, bps)


class TestFormatting:
    """Human-readable fee tiers and slippage."""

    @pytest.mark.parametrize("bps, text", [
        (3000, "0.3%"),
        (500, "0.05%"),
        (10000, "1%"),
        (100, "0.01%"),
    ])
    def test_format_fee_tier(self, bps, text):
        assert format_fee_tier(bps) == text

    @pytest.mark.parametrize("bps, text", [
        (100, "1%"),
        (50, "0.5%"),
        (2000, "20%"),
    ])
    def test_format_slippage(self, bps, text):
        assert format_slippage(bps) == text

    def test_describe_amount_factor(self):
        assert describe_amount_factor(Decimal("1.0")) == "Original amount"
        assert describe_amount_factor(Decimal("0.5")) == "50% of original amount"
        assert describe_amount_factor(Decimal("0.05")) == "5% of original amount"

    @pytest.mark.parametrize("factor,text", [
        (Decimal("1"), "100%"),
        (Decimal("0.5"), "50%"),
        (Decimal("0.125"), "12.5%"),
        (Decimal("0.005"), "0.5%"),
    ])
    def test_format_amount_factor(self, factor, text):
        assert format_amount_factor(factor) == text
