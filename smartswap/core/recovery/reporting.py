"""
Retry Reporting

Reporting sink interface for the retry engine. The engine hands every
attempt and the final result to a RetryReporter; rendering and
persistence are left to the sink.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog

from ..swap.models import AttemptParameters
from .errors import ErrorClassification

if TYPE_CHECKING:
    from .executor import SwapRunResult


class AttemptOutcome(str, Enum):
    """What happened to a single attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    FAMILY_SKIPPED = "family_skipped"   # Failed, remaining slippages for its fee tier dropped


@dataclass(frozen=True)
class AttemptRecord:
    """One attempt as seen by a reporting sink."""

    attempt_number: int
    params: AttemptParameters
    outcome: AttemptOutcome
    classification: Optional[ErrorClassification] = None
    error_message: Optional[str] = None
    delay_ms: Optional[float] = None
    skipped_tuples: int = 0

    @property
    def description(self) -> str:
        return self.params.strategy_key.description

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attemptNumber": self.attempt_number,
            "strategy": self.description,
            "params": self.params.to_dict(),
            "outcome": self.outcome.value,
            "classification": self.classification.to_dict() if self.classification else None,
            "errorMessage": self.error_message,
            "delayMs": self.delay_ms,
            "skippedTuples": self.skipped_tuples,
        }


class RetryReporter(ABC):
    """Receives per-attempt records and the final run result."""

    @abstractmethod
    def on_attempt(self, record: AttemptRecord) -> None:
        """Called once per attempt, after its outcome is known."""
        pass

    @abstractmethod
    def on_complete(self, result: "SwapRunResult") -> None:
        """Called once when the run reaches a terminal state."""
        pass


class LoggingReporter(RetryReporter):
    """Default sink: structured log events."""

    def __init__(self, logger: Any = None):
        self._log = logger or structlog.stdlib.get_logger("smartswap.retry")

    def on_attempt(self, record: AttemptRecord) -> None:
        fields = {
            "attempt": record.attempt_number,
            "strategy": record.description,
            "outcome": record.outcome.value,
        }
        if record.outcome == AttemptOutcome.SUCCEEDED:
            self._log.info("swap_attempt_succeeded", **fields)
            return

        fields["error_kind"] = record.classification.kind.value if record.classification else None
        fields["severity"] = record.classification.severity.value if record.classification else None
        fields["error"] = record.error_message
        if record.delay_ms is not None:
            fields["delay_ms"] = round(record.delay_ms)
        if record.skipped_tuples:
            fields["skipped_tuples"] = record.skipped_tuples
        self._log.warning("swap_attempt_failed", **fields)

    def on_complete(self, result: "SwapRunResult") -> None:
        stats = result.statistics
        fields = {
            "status": result.status.value,
            "attempts": result.attempts,
            "success_rate": stats.success_rate_display,
            "errors_by_kind": {kind.value: count for kind, count in stats.errors_by_kind.items()},
        }
        if result.success:
            self._log.info("swap_run_completed", **fields)
        else:
            fields["last_error"] = result.error.message if result.error else None
            self._log.warning("swap_run_completed", **fields)
