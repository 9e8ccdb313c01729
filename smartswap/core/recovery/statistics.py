"""
Retry Statistics

Per-run accumulator of attempt outcomes. Each engine run owns its own
recorder; nothing here is shared or global.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..swap.models import AttemptParameters, StrategyKey
from .errors import ErrorClassification, ErrorKind


def most_frequent(counts: Dict[Any, int]) -> Optional[Any]:
    """Key with the highest count; ties go to the key seen first."""
    best = None
    best_count = 0
    for key, count in counts.items():
        if count > best_count:
            best, best_count = key, count
    return best


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Read-only view of a SwapStatistics recorder with derived fields."""

    total_attempts: int
    successful_attempts: int
    errors_by_kind: Dict[ErrorKind, int]
    successes_by_strategy: Dict[StrategyKey, int]

    @property
    def failed_attempts(self) -> int:
        return self.total_attempts - self.successful_attempts

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.successful_attempts / self.total_attempts

    @property
    def success_rate_display(self) -> str:
        if self.total_attempts == 0:
            return "0%"
        return f"{self.success_rate * 100:.2f}%"

    @property
    def best_strategy(self) -> Optional[StrategyKey]:
        return most_frequent(self.successes_by_strategy)

    @property
    def most_common_error(self) -> Optional[ErrorKind]:
        return most_frequent(self.errors_by_kind)

    def to_dict(self) -> Dict[str, Any]:
        best = self.best_strategy
        most_common = self.most_common_error
        return {
            "totalAttempts": self.total_attempts,
            "successfulAttempts": self.successful_attempts,
            "failedAttempts": self.failed_attempts,
            "successRate": self.success_rate_display,
            "errorsByType": {kind.value: count for kind, count in self.errors_by_kind.items()},
            "strategiesUsed": {key.label: count for key, count in self.successes_by_strategy.items()},
            "bestStrategy": best.label if best else None,
            "mostCommonError": most_common.value if most_common else None,
        }


@dataclass
class SwapStatistics:
    """Mutable recorder; lifecycle is one engine run."""

    total_attempts: int = 0
    successful_attempts: int = 0
    errors_by_kind: Dict[ErrorKind, int] = field(default_factory=dict)
    successes_by_strategy: Dict[StrategyKey, int] = field(default_factory=dict)

    def record_attempt(self) -> None:
        self.total_attempts += 1

    def record_error(self, classification: ErrorClassification) -> None:
        kind = classification.kind
        self.errors_by_kind[kind] = self.errors_by_kind.get(kind, 0) + 1

    def record_success(self, params: AttemptParameters) -> None:
        self.successful_attempts += 1
        key = params.strategy_key
        self.successes_by_strategy[key] = self.successes_by_strategy.get(key, 0) + 1

    def merge(self, other: "SwapStatistics") -> None:
        """Fold another recorder's counts into this one."""
        self.total_attempts += other.total_attempts
        self.successful_attempts += other.successful_attempts
        for kind, count in other.errors_by_kind.items():
            self.errors_by_kind[kind] = self.errors_by_kind.get(kind, 0) + count
        for key, count in other.successes_by_strategy.items():
            self.successes_by_strategy[key] = self.successes_by_strategy.get(key, 0) + count

    def snapshot(self) -> StatisticsSnapshot:
        return StatisticsSnapshot(
            total_attempts=self.total_attempts,
            successful_attempts=self.successful_attempts,
            errors_by_kind=dict(self.errors_by_kind),
            successes_by_strategy=dict(self.successes_by_strategy),
        )
