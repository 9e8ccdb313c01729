"""Typed models used by the swap retry subsystem."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from decimal import Decimal
from fractions import Fraction
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from .pricing import describe_amount_factor, format_fee_tier, format_slippage


class SwapError(Exception):
    """
    Structured failure reported by a swap operation.

    Carries the human-readable message the classifier matches against,
    plus the optional machine reason string (e.g. a revert reason).
    """

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.code = code
        self.details = details or {}

    @classmethod
    def from_exception(cls, error: BaseException) -> "SwapError":
        """Wrap an arbitrary exception, keeping its text and reason."""
        if isinstance(error, SwapError):
            return error
        reason = getattr(error, "reason", None)
        code = getattr(error, "code", None)
        return cls(
            str(error) or type(error).__name__,
            reason=str(reason) if reason is not None else None,
            code=str(code) if code is not None else None,
            details={"exception_type": type(error).__name__},
        )

    @classmethod
    def from_outcome(cls, outcome: Any) -> "SwapError":
        """Error carried by a non-successful outcome of any shape."""
        error = getattr(outcome, "error", None)
        if isinstance(error, BaseException):
            return cls.from_exception(error)
        if error is not None:
            return cls(str(error))
        return cls(f"Swap operation returned no usable outcome: {outcome!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "reason": self.reason,
            "code": self.code,
            "details": self.details,
        }


def as_decimal(value: Union[Decimal, float, int, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so 0.3 stays 0.3 rather than its binary expansion
    return Decimal(str(value))


@dataclass(frozen=True)
class StrategyKey:
    """One (amount factor, fee tier, slippage) combination."""

    amount_factor: Decimal
    fee_tier: int
    slippage_bps: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount_factor", as_decimal(self.amount_factor))

    @property
    def label(self) -> str:
        """Stable key used in statistics and reports, e.g. '0.5_500_200'."""
        return f"{self.amount_factor.normalize():f}_{self.fee_tier}_{self.slippage_bps}"

    @property
    def description(self) -> str:
        return (
            f"{describe_amount_factor(self.amount_factor)}, "
            f"Fee: {format_fee_tier(self.fee_tier)}, "
            f"Slippage: {format_slippage(self.slippage_bps)}"
        )

    @classmethod
    def from_label(cls, label: str) -> "StrategyKey":
        factor, fee_tier, slippage = label.split("_")
        return cls(Decimal(factor), int(fee_tier), int(slippage))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amountFactor": str(self.amount_factor),
            "feeTier": self.fee_tier,
            "slippageBps": self.slippage_bps,
        }


@dataclass(frozen=True)
class AttemptParameters:
    """Parameters for a single swap attempt."""

    base_amount: int
    amount_factor: Decimal = Decimal("1")
    fee_tier: int = 3000
    slippage_bps: int = 100

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount_factor", as_decimal(self.amount_factor))
        if self.base_amount < 0:
            raise ValueError("base_amount must be non-negative")
        if not (Decimal("0") < self.amount_factor <= Decimal("1")):
            raise ValueError(f"amount_factor must be in (0, 1], got {self.amount_factor}")
        if self.fee_tier <= 0:
            raise ValueError("fee_tier must be positive")
        if self.slippage_bps <= 0:
            raise ValueError("slippage_bps must be positive")

    @property
    def effective_amount(self) -> int:
        """floor(base_amount * amount_factor), exact for arbitrarily large amounts."""
        return math.floor(self.base_amount * Fraction(self.amount_factor))

    @property
    def strategy_key(self) -> StrategyKey:
        return StrategyKey(self.amount_factor, self.fee_tier, self.slippage_bps)

    def with_strategy(self, key: StrategyKey) -> "AttemptParameters":
        return replace(
            self,
            amount_factor=key.amount_factor,
            fee_tier=key.fee_tier,
            slippage_bps=key.slippage_bps,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseAmount": str(self.base_amount),
            "effectiveAmount": str(self.effective_amount),
            "amountFactor": str(self.amount_factor),
            "feeTier": self.fee_tier,
            "slippageBps": self.slippage_bps,
        }


@dataclass
class SwapSuccess:
    """Swap confirmed on-chain."""

    tx_reference: str
    gas_used: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return True

    @classmethod
    def from_outcome(cls, outcome: Any) -> Optional["SwapSuccess"]:
        """
        SwapSuccess for any outcome reporting ``success is True``, else None.

        A swap that went through must never be retried, so success-shaped
        results from other collaborator types count too.
        """
        if isinstance(outcome, SwapSuccess):
            return outcome
        if getattr(outcome, "success", False) is not True:
            return None
        tx_reference = (
            getattr(outcome, "tx_reference", None)
            or getattr(outcome, "transaction_hash", None)
            or ""
        )
        return cls(
            tx_reference=str(tx_reference),
            gas_used=getattr(outcome, "gas_used", None),
            details={"outcome_type": type(outcome).__name__},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "txReference": self.tx_reference,
            "gasUsed": self.gas_used,
            "details": self.details,
        }


@dataclass
class SwapFailure:
    """Swap attempt failed without raising."""

    error: SwapError

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.error.to_dict()}


SwapOutcome = Union[SwapSuccess, SwapFailure]

# Collaborator contract: balance check, allowance, quoting, submission and
# confirmation all happen inside the operation. It must not retry on its own.
SwapOperation = Callable[[AttemptParameters], Awaitable[SwapOutcome]]
