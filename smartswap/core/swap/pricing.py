"""Slippage math and human-readable formatting for swap parameters."""

from __future__ import annotations

from decimal import Decimal

from .constants import BPS_DENOMINATOR


def calculate_min_amount_out(expected_amount_out: int, slippage_bps: int) -> int:
    """Minimum acceptable output after applying a slippage tolerance.

    ``slippage_bps`` of 100 means 1%. The result is floored so the
    tolerance is never exceeded by rounding.
    """
    if expected_amount_out < 0:
        raise ValueError("expected_amount_out must be non-negative")
    if not 0 <= slippage_bps < BPS_DENOMINATOR:
        raise ValueError(f"slippage_bps must be in [0, {BPS_DENOMINATOR}), got {slippage_bps}")
    return expected_amount_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def _percent(value: Decimal) -> str:
    return f"{value.normalize():f}%"


def format_fee_tier(fee_tier_bps: int) -> str:
    """3000 -> '0.3%'."""
    return _percent(Decimal(fee_tier_bps) / Decimal(BPS_DENOMINATOR))


def format_slippage(slippage_bps: int) -> str:
    """100 -> '1%'."""
    return _percent(Decimal(slippage_bps) / Decimal(100))


def format_amount_factor(factor: Decimal) -> str:
    """Decimal('0.125') -> '12.5%'."""
    return _percent(factor * 100)


def describe_amount_factor(factor: Decimal) -> str:
    if factor == 1:
        return "Original amount"
    return f"{format_amount_factor(factor)} of original amount"
