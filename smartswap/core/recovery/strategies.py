"""
Recovery Strategies

Strategy search space, backoff scheduling and continuation policy for
the swap retry engine.
"""

import asyncio
import random
from dataclasses import dataclass
from decimal import Decimal
from itertools import product
from typing import Awaitable, Callable, Iterator, Optional, Sequence, Tuple

from ..swap.constants import (
    DEFAULT_AMOUNT_FACTORS,
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_FEE_TIERS,
    DEFAULT_JITTER_RATIO,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MIN_AMOUNT_FLOOR,
    DEFAULT_MIN_DELAY_MS,
    DEFAULT_NO_POOL_SLIPPAGE_CEILING_BPS,
    DEFAULT_SLIPPAGE_TOLERANCES,
)
from ..swap.models import AttemptParameters, StrategyKey, as_decimal
from .errors import ErrorClassification, ErrorKind


# Sleeps for the given milliseconds; returns True if interrupted by cancellation.
DelayFunction = Callable[[float, Optional[asyncio.Event]], Awaitable[bool]]


@dataclass
class RetryConfig:
    """Configuration for backoff between attempts (all values in ms)."""

    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS
    min_delay_ms: int = DEFAULT_MIN_DELAY_MS
    jitter_ratio: float = DEFAULT_JITTER_RATIO

    def __post_init__(self) -> None:
        if self.base_delay_ms < 0 or self.max_delay_ms < 0 or self.min_delay_ms < 0:
            raise ValueError("delays must be non-negative")
        if not 0 <= self.jitter_ratio < 1:
            raise ValueError("jitter_ratio must be in [0, 1)")

    def get_delay(self, attempt_number: int, rng: Optional[random.Random] = None) -> float:
        """
        Delay before the next attempt, in milliseconds.

        Exponential growth capped at max_delay_ms, then uniform
        multiplicative jitter of +/- jitter_ratio, floored at min_delay_ms.
        """
        if attempt_number < 1:
            raise ValueError("attempt_number must be >= 1")

        raw = min(self.base_delay_ms * (2 ** (attempt_number - 1)), self.max_delay_ms)
        spread = raw * self.jitter_ratio
        jitter = (rng or random).uniform(-spread, spread)
        return max(float(self.min_delay_ms), raw + jitter)


async def cancellable_sleep(delay_ms: float, cancel_event: Optional[asyncio.Event] = None) -> bool:
    """Sleep for ``delay_ms``; return True if ``cancel_event`` fired first."""
    seconds = max(delay_ms, 0) / 1000
    if cancel_event is None:
        await asyncio.sleep(seconds)
        return False
    if cancel_event.is_set():
        return True
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
        return True
    except asyncio.TimeoutError:
        return False


@dataclass(frozen=True)
class StrategySpace:
    """
    Ordered product of amount factors x fee tiers x slippage tolerances.

    Iteration varies slippage fastest and amount factor slowest.
    """

    amount_factors: Tuple[Decimal, ...] = DEFAULT_AMOUNT_FACTORS
    fee_tiers: Tuple[int, ...] = DEFAULT_FEE_TIERS
    slippage_tolerances: Tuple[int, ...] = DEFAULT_SLIPPAGE_TOLERANCES

    def __post_init__(self) -> None:
        factors = tuple(as_decimal(f) for f in self.amount_factors)
        object.__setattr__(self, "amount_factors", factors)
        object.__setattr__(self, "fee_tiers", tuple(self.fee_tiers))
        object.__setattr__(self, "slippage_tolerances", tuple(self.slippage_tolerances))

        for name in ("amount_factors", "fee_tiers", "slippage_tolerances"):
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty")

        if any(not (Decimal("0") < f <= Decimal("1")) for f in factors):
            raise ValueError("amount factors must be in (0, 1]")
        if any(tier <= 0 for tier in self.fee_tiers):
            raise ValueError("fee tiers must be positive")
        if any(bps <= 0 for bps in self.slippage_tolerances):
            raise ValueError("slippage tolerances must be positive")

    @property
    def family_size(self) -> int:
        """Number of tuples sharing one (amount factor, fee tier) pair."""
        return len(self.slippage_tolerances)

    def __len__(self) -> int:
        return len(self.amount_factors) * len(self.fee_tiers) * len(self.slippage_tolerances)

    def __iter__(self) -> Iterator[StrategyKey]:
        for factor, fee_tier, slippage in product(
            self.amount_factors, self.fee_tiers, self.slippage_tolerances
        ):
            yield StrategyKey(factor, fee_tier, slippage)

    def key_at(self, index: int) -> StrategyKey:
        if not 0 <= index < len(self):
            raise IndexError(index)
        per_factor = len(self.fee_tiers) * self.family_size
        return StrategyKey(
            self.amount_factors[index // per_factor],
            self.fee_tiers[(index // self.family_size) % len(self.fee_tiers)],
            self.slippage_tolerances[index % self.family_size],
        )

    def nominal_key(self, fee_tier: int) -> StrategyKey:
        """The caller's original intent: full amount, their fee tier, tightest slippage."""
        return StrategyKey(Decimal("1"), fee_tier, self.slippage_tolerances[0])

    def cursor(self) -> "StrategyCursor":
        return StrategyCursor(self)

    @classmethod
    def from_lists(
        cls,
        amount_factors: Sequence[Decimal],
        fee_tiers: Sequence[int],
        slippage_tolerances: Sequence[int],
    ) -> "StrategySpace":
        return cls(tuple(amount_factors), tuple(fee_tiers), tuple(slippage_tolerances))


class StrategyCursor:
    """
    Monotonic position within a StrategySpace.

    A fresh cursor is created per run; it never moves backwards.
    """

    def __init__(self, space: StrategySpace):
        self._space = space
        self._next_index = 0
        self._current_index: Optional[int] = None

    @property
    def position(self) -> Optional[int]:
        """Index of the tuple most recently returned by advance()."""
        return self._current_index

    @property
    def has_next(self) -> bool:
        return self._next_index < len(self._space)

    def advance(self) -> Optional[StrategyKey]:
        if not self.has_next:
            return None
        self._current_index = self._next_index
        self._next_index += 1
        return self._space.key_at(self._current_index)

    def upcoming(self) -> Iterator[StrategyKey]:
        """Keys advance() would still return, without moving the cursor."""
        for index in range(self._next_index, len(self._space)):
            yield self._space.key_at(index)

    def skip_family(self) -> int:
        """
        Skip the remaining slippage tuples of the current (factor, fee tier) pair.

        Returns the number of tuples skipped.
        """
        if self._current_index is None:
            return 0
        family = self._space.family_size
        family_end = (self._current_index // family + 1) * family
        skipped = max(0, family_end - self._next_index)
        self._next_index = max(self._next_index, family_end)
        return skipped


@dataclass
class ContinuationPolicy:
    """Decides whether a HIGH-severity failure should abandon its fee-tier family."""

    no_pool_slippage_ceiling_bps: int = DEFAULT_NO_POOL_SLIPPAGE_CEILING_BPS
    min_amount_floor: int = DEFAULT_MIN_AMOUNT_FLOOR

    def should_continue(self, classification: ErrorClassification, params: AttemptParameters) -> bool:
        # More slippage can't create a missing pool
        if (
            classification.kind == ErrorKind.NO_POOL
            and params.slippage_bps > self.no_pool_slippage_ceiling_bps
        ):
            return False

        # Anything smaller is an economically meaningless swap
        if (
            classification.kind == ErrorKind.INSUFFICIENT_BALANCE
            and params.effective_amount <= self.min_amount_floor
        ):
            return False

        return True
