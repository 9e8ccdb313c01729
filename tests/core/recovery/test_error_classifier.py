"""
Tests for swap error classification.
"""

import pytest

from smartswap.core.recovery import (
    ErrorKind,
    Remedy,
    Severity,
    classify_error,
)
from smartswap.core.recovery.errors import CLASSIFICATION_RULES, UNKNOWN
from smartswap.core.swap import SwapError


class RevertError(Exception):
    """Exception shape carrying a revert reason, like an RPC client error."""

    def __init__(self, message, reason=None):
        super().__init__(message)
        self.reason = reason


# =============================================================================
# Single-rule matches
# =============================================================================

class TestRuleMatches:
    """Each rule in isolation."""

    @pytest.mark.parametrize("message, kind, severity", [
        ("Insufficient liquidity for this trade", ErrorKind.LIQUIDITY, Severity.HIGH),
        ("execution reverted: SPR", ErrorKind.LIQUIDITY, Severity.HIGH),
        ("no pool found", ErrorKind.NO_POOL, Severity.HIGH),
        ("Pool does not exist", ErrorKind.NO_POOL, Severity.HIGH),
        ("Too little received", ErrorKind.PRICE_IMPACT, Severity.MEDIUM),
        ("Price slippage check", ErrorKind.PRICE_IMPACT, Severity.MEDIUM),
        ("intrinsic gas too low", ErrorKind.GAS, Severity.LOW),
        ("request timeout", ErrorKind.NETWORK, Severity.LOW),
        ("could not detect network", ErrorKind.NETWORK, Severity.LOW),
        ("insufficient balance for transfer", ErrorKind.INSUFFICIENT_BALANCE, Severity.HIGH),
        ("something odd happened", ErrorKind.UNKNOWN, Severity.MEDIUM),
    ])
    def test_message_classification(self, message, kind, severity):
        classification = classify_error(message)

        assert classification.kind == kind
        assert classification.severity == severity

    def test_remedies(self):
        assert classify_error("no pool").remedies == (Remedy.CHANGE_FEE_TIER,)
        assert classify_error("out of gas").remedies == (Remedy.RETRY,)
        assert classify_error("insufficient liquidity").remedies == (
            Remedy.REDUCE_AMOUNT,
            Remedy.CHANGE_FEE_TIER,
            Remedy.INCREASE_SLIPPAGE,
        )

    def test_reason_pool_is_no_pool(self):
        classification = classify_error({"message": "execution reverted", "reason": "Pool uninitialized"})
        assert classification.kind == ErrorKind.NO_POOL

    def test_reason_spr_is_liquidity(self):
        classification = classify_error(SwapError("execution reverted", reason="SPR"))
        assert classification.kind == ErrorKind.LIQUIDITY

    def test_reason_ignored_for_later_rules(self):
        """Only the liquidity and pool rules look at the reason."""
        classification = classify_error({"message": "reverted", "reason": "slippage"})
        assert classification.kind == ErrorKind.UNKNOWN


# =============================================================================
# Ordering
# =============================================================================

class TestRuleOrdering:
    """First matching rule wins."""

    def test_liquidity_beats_pool(self):
        assert classify_error("insufficient liquidity: pool not ready").kind == ErrorKind.LIQUIDITY

    def test_pool_beats_price(self):
        assert classify_error("pool not found at this price").kind == ErrorKind.NO_POOL

    def test_price_beats_gas(self):
        assert classify_error("price moved while estimating gas").kind == ErrorKind.PRICE_IMPACT

    def test_gas_beats_insufficient_funds(self):
        assert classify_error("insufficient funds for gas").kind == ErrorKind.GAS

    def test_network_beats_insufficient_balance(self):
        assert classify_error("connection lost, insufficient balance").kind == ErrorKind.NETWORK

    def test_rule_count(self):
        # Six explicit rules; UNKNOWN is the fallback
        assert len(CLASSIFICATION_RULES) == 6


# =============================================================================
# Input shapes
# =============================================================================

class TestInputShapes:
    """classify_error accepts several error representations."""

    def test_case_insensitive(self):
        assert classify_error("NO POOL").kind == ErrorKind.NO_POOL

    def test_exception_with_reason(self):
        error = RevertError("execution reverted", reason="SPR")
        assert classify_error(error).kind == ErrorKind.LIQUIDITY

    def test_plain_exception(self):
        assert classify_error(TimeoutError("timeout waiting for receipt")).kind == ErrorKind.NETWORK

    def test_mapping_without_reason(self):
        assert classify_error({"message": "out of gas"}).kind == ErrorKind.GAS

    def test_empty_inputs_are_unknown(self):
        assert classify_error("") == UNKNOWN
        assert classify_error({}) == UNKNOWN
        assert classify_error(SwapError("")) == UNKNOWN

    def test_deterministic(self):
        assert classify_error("no pool") is classify_error("no pool")

    def test_to_dict(self):
        data = classify_error("no pool").to_dict()

        assert data == {
            "kind": "NO_POOL",
            "severity": "HIGH",
            "remedies": ["CHANGE_FEE_TIER"],
        }
