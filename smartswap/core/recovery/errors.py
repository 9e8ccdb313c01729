"""
Error Classification

Maps a failed swap attempt to an actionable classification.
Swap failures only surface as free text (an RPC message plus an optional
revert reason), so classification is an ordered list of substring rules
evaluated first-match-wins.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from ..swap.models import SwapError


class ErrorKind(str, Enum):
    """Kinds of swap failures the retry engine can act on."""

    LIQUIDITY = "LIQUIDITY"                        # Pool too shallow for the amount
    NO_POOL = "NO_POOL"                            # No pool for this fee tier
    PRICE_IMPACT = "PRICE_IMPACT"                  # Slippage / minimum-out violated
    GAS = "GAS"                                    # Gas estimation or limit issues
    NETWORK = "NETWORK"                            # RPC connectivity
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"  # Wallet can't cover the amount
    UNKNOWN = "UNKNOWN"                            # Unclassified error


class Severity(str, Enum):
    """How strongly a failure argues against the current parameters."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Remedy(str, Enum):
    """Parameter changes suggested for the next attempt."""

    REDUCE_AMOUNT = "REDUCE_AMOUNT"
    CHANGE_FEE_TIER = "CHANGE_FEE_TIER"
    INCREASE_SLIPPAGE = "INCREASE_SLIPPAGE"
    RETRY = "RETRY"


class RunStatus(str, Enum):
    """Engine-level outcome of a retry run."""

    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"   # Every strategy tuple failed
    CANCELLED = "cancelled"   # Caller cancelled the run


@dataclass(frozen=True)
class ErrorClassification:
    """Classification of a single failure."""

    kind: ErrorKind
    severity: Severity
    remedies: Tuple[Remedy, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "remedies": [remedy.value for remedy in self.remedies],
        }


class InvalidTransitionError(Exception):
    """Raised when the run state machine attempts an illegal transition."""

    def __init__(self, from_state: Any, to_state: Any, message: Optional[str] = None):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            message or f"Invalid transition from {from_state} to {to_state}"
        )


ClassifiableError = Union[SwapError, BaseException, Mapping[str, Any], str]
ErrorPredicate = Callable[[str, str], bool]


LIQUIDITY = ErrorClassification(
    ErrorKind.LIQUIDITY,
    Severity.HIGH,
    (Remedy.REDUCE_AMOUNT, Remedy.CHANGE_FEE_TIER, Remedy.INCREASE_SLIPPAGE),
)
NO_POOL = ErrorClassification(ErrorKind.NO_POOL, Severity.HIGH, (Remedy.CHANGE_FEE_TIER,))
PRICE_IMPACT = ErrorClassification(
    ErrorKind.PRICE_IMPACT,
    Severity.MEDIUM,
    (Remedy.REDUCE_AMOUNT, Remedy.INCREASE_SLIPPAGE),
)
GAS = ErrorClassification(ErrorKind.GAS, Severity.LOW, (Remedy.RETRY,))
NETWORK = ErrorClassification(ErrorKind.NETWORK, Severity.LOW, (Remedy.RETRY,))
INSUFFICIENT_BALANCE = ErrorClassification(
    ErrorKind.INSUFFICIENT_BALANCE,
    Severity.HIGH,
    (Remedy.REDUCE_AMOUNT,),
)
UNKNOWN = ErrorClassification(
    ErrorKind.UNKNOWN,
    Severity.MEDIUM,
    (Remedy.REDUCE_AMOUNT, Remedy.CHANGE_FEE_TIER, Remedy.INCREASE_SLIPPAGE),
)


def _contains_any(text: str, *patterns: str) -> bool:
    return any(p in text for p in patterns)


# Order matters: the first matching rule wins.
CLASSIFICATION_RULES: Tuple[Tuple[ErrorPredicate, ErrorClassification], ...] = (
    (
        lambda msg, reason: _contains_any(msg, "insufficient liquidity", "spr")
        or _contains_any(reason, "insufficient liquidity", "spr"),
        LIQUIDITY,
    ),
    (
        lambda msg, reason: ("pool" in msg and "not" in msg)
        or "no pool" in msg
        or "pool" in reason,
        NO_POOL,
    ),
    (
        lambda msg, reason: _contains_any(msg, "price", "slippage", "too little received"),
        PRICE_IMPACT,
    ),
    (
        lambda msg, reason: _contains_any(msg, "gas", "out of gas", "intrinsic gas"),
        GAS,
    ),
    (
        lambda msg, reason: _contains_any(msg, "network", "timeout", "connection"),
        NETWORK,
    ),
    (
        lambda msg, reason: "insufficient" in msg and _contains_any(msg, "balance", "funds"),
        INSUFFICIENT_BALANCE,
    ),
)


def _error_text(error: ClassifiableError) -> Tuple[str, str]:
    """Extract (message, reason) from any supported error shape."""
    if isinstance(error, str):
        return error, ""

    if isinstance(error, Mapping):
        message = error.get("message") or ""
        reason = error.get("reason") or ""
        return str(message), str(reason)

    if isinstance(error, SwapError):
        return error.message or "", error.reason or ""

    reason = getattr(error, "reason", None)
    return str(error), str(reason) if reason is not None else ""


def classify_error(error: ClassifiableError) -> ErrorClassification:
    """
    Classify a swap failure.

    Pure and total: never raises, unmatched input is UNKNOWN.
    """
    message, reason = _error_text(error)
    message = message.lower()
    reason = reason.lower()

    for predicate, classification in CLASSIFICATION_RULES:
        if predicate(message, reason):
            return classification

    return UNKNOWN
