"""
Recovery Executor

Drives a swap through the strategy space until it succeeds, the space is
exhausted, or the caller cancels. Each failure is classified, recorded,
and run through the severity gate before the next tuple is tried.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from ..swap.models import (
    AttemptParameters,
    StrategyKey,
    SwapError,
    SwapOperation,
    SwapSuccess,
)
from .errors import ErrorClassification, RunStatus, Severity, classify_error
from .reporting import AttemptOutcome, AttemptRecord, LoggingReporter, RetryReporter
from .state_machine import RunState, RunStateMachine, StateTransition
from .statistics import StatisticsSnapshot, SwapStatistics
from .strategies import (
    ContinuationPolicy,
    DelayFunction,
    RetryConfig,
    StrategyCursor,
    StrategySpace,
    cancellable_sleep,
)


@dataclass
class SwapRunResult:
    """Result of one retry run."""

    status: RunStatus
    statistics: StatisticsSnapshot
    params: Optional[AttemptParameters] = None
    outcome: Optional[SwapSuccess] = None
    error: Optional[SwapError] = None
    classification: Optional[ErrorClassification] = None
    attempts: int = 0
    transitions: List[StateTransition] = field(default_factory=list)

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.status == RunStatus.SUCCEEDED

    @property
    def total_duration_seconds(self) -> float:
        if not self.started_at or not self.completed_at:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "success": self.success,
            "params": self.params.to_dict() if self.params else None,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "error": self.error.to_dict() if self.error else None,
            "classification": self.classification.to_dict() if self.classification else None,
            "attempts": self.attempts,
            "statistics": self.statistics.to_dict(),
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "totalDurationSeconds": self.total_duration_seconds,
        }


@dataclass
class RecoveryConfig:
    """Configuration for the recovery executor."""

    strategy_space: StrategySpace = field(default_factory=StrategySpace)
    retry: RetryConfig = field(default_factory=RetryConfig)
    policy: ContinuationPolicy = field(default_factory=ContinuationPolicy)

    @classmethod
    def from_settings(cls, settings: Any) -> "RecoveryConfig":
        return cls(
            strategy_space=StrategySpace.from_lists(
                settings.amount_factors,
                settings.fee_tiers,
                settings.slippage_tolerances,
            ),
            retry=RetryConfig(
                base_delay_ms=settings.retry_base_delay_ms,
                max_delay_ms=settings.retry_max_delay_ms,
                min_delay_ms=settings.retry_min_delay_ms,
                jitter_ratio=settings.retry_jitter_ratio,
            ),
            policy=ContinuationPolicy(
                no_pool_slippage_ceiling_bps=settings.no_pool_slippage_ceiling_bps,
                min_amount_floor=settings.min_amount_floor,
            ),
        )


@dataclass
class _Run:
    """Mutable state of a single run; never shared between runs."""

    swap_op: SwapOperation
    initial: AttemptParameters
    cursor: StrategyCursor
    stats: SwapStatistics
    nominal_key: StrategyKey
    cancel_event: Optional[asyncio.Event] = None

    issued: Set[StrategyKey] = field(default_factory=set)
    attempts: int = 0
    key: Optional[StrategyKey] = None
    params: Optional[AttemptParameters] = None
    outcome: Optional[SwapSuccess] = None
    error: Optional[SwapError] = None
    classification: Optional[ErrorClassification] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


StateHandler = Callable[[_Run], Awaitable[RunState]]


class SwapRecoveryExecutor:
    """
    Executes a swap operation with adaptive retries.

    Features:
    - Error classification from free-text failures
    - Search over amount factor x fee tier x slippage
    - Severity gate that abandons hopeless fee-tier families
    - Exponential backoff with jitter between attempts
    - Per-run statistics and a pluggable reporting sink

    The executor holds no per-run state, so one instance can serve
    concurrent runs as long as each run gets its own statistics.
    """

    def __init__(
        self,
        config: Optional[RecoveryConfig] = None,
        reporter: Optional[RetryReporter] = None,
        delay: Optional[DelayFunction] = None,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or RecoveryConfig()
        self.reporter = reporter or LoggingReporter()
        self.logger = logger or logging.getLogger(__name__)
        self._delay = delay or cancellable_sleep
        self._rng = rng

        self._handlers: Dict[RunState, StateHandler] = {
            RunState.SELECT_NEXT_TUPLE: self._select_next_tuple,
            RunState.INVOKE: self._invoke,
            RunState.CLASSIFY: self._classify,
            RunState.DECIDE_CONTINUATION: self._decide_continuation,
            RunState.BACKOFF: self._backoff,
        }

    async def execute(
        self,
        swap_op: SwapOperation,
        initial: AttemptParameters,
        cancel_event: Optional[asyncio.Event] = None,
        statistics: Optional[SwapStatistics] = None,
    ) -> SwapRunResult:
        """
        Run the strategy search for one swap.

        Args:
            swap_op: Async swap operation (the collaborator)
            initial: The caller's intended parameters; base_amount and fee_tier are used
            cancel_event: Set by the caller to stop issuing attempts
            statistics: Recorder owned by this run (a fresh one by default)

        Returns:
            SwapRunResult; per-attempt errors never propagate
        """
        started_at = datetime.now(timezone.utc)
        space = self.config.strategy_space
        run = _Run(
            swap_op=swap_op,
            initial=initial,
            cursor=space.cursor(),
            stats=statistics if statistics is not None else SwapStatistics(),
            nominal_key=space.nominal_key(initial.fee_tier),
            cancel_event=cancel_event,
        )
        machine = RunStateMachine()

        try:
            while not machine.is_terminal:
                handler = self._handlers[machine.current_state]
                next_state = await handler(run)
                machine.transition_to(next_state, attempt=run.attempts)
            status = self._status_for(machine.current_state)

        except Exception as e:
            # Bug in the executor itself, not a swap failure
            self.logger.exception(f"Unexpected error in recovery executor: {e}")
            run.error = SwapError.from_exception(e)
            run.classification = classify_error(run.error)
            status = RunStatus.EXHAUSTED

        result = SwapRunResult(
            status=status,
            statistics=run.stats.snapshot(),
            params=run.params,
            outcome=run.outcome if status == RunStatus.SUCCEEDED else None,
            error=None if status == RunStatus.SUCCEEDED else run.error,
            classification=None if status == RunStatus.SUCCEEDED else run.classification,
            attempts=run.attempts,
            transitions=list(machine.history),
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )
        self._log_completion(result)
        self._notify(self.reporter.on_complete, result)
        return result

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    async def _select_next_tuple(self, run: _Run) -> RunState:
        if run.cancelled:
            return RunState.CANCELLED

        while True:
            key = run.cursor.advance()
            if key is None:
                return RunState.EXHAUSTED
            if key in run.issued:
                self.logger.debug(f"Skipping already-tried strategy {key.label}")
                continue
            break

        if run.attempts == 0 and key == run.nominal_key:
            self.logger.debug("First attempt uses the original parameters")

        run.key = key
        run.issued.add(key)
        return RunState.INVOKE

    async def _invoke(self, run: _Run) -> RunState:
        params = run.initial.with_strategy(run.key)
        run.params = params
        run.attempts += 1
        run.stats.record_attempt()

        self.logger.info(f"Trying strategy: {run.key.description}")

        try:
            outcome = await run.swap_op(params)
        except Exception as e:
            run.error = SwapError.from_exception(e)
            return RunState.CLASSIFY

        success = SwapSuccess.from_outcome(outcome)
        if success is not None:
            run.stats.record_success(params)
            run.outcome = success
            self._notify(
                self.reporter.on_attempt,
                AttemptRecord(
                    attempt_number=run.attempts,
                    params=params,
                    outcome=AttemptOutcome.SUCCEEDED,
                ),
            )
            return RunState.SUCCESS

        run.error = SwapError.from_outcome(outcome)
        return RunState.CLASSIFY

    async def _classify(self, run: _Run) -> RunState:
        classification = classify_error(run.error)
        run.classification = classification
        run.stats.record_error(classification)
        self.logger.warning(
            f"Attempt {run.attempts} failed: {run.error.message} "
            f"(type: {classification.kind.value}, severity: {classification.severity.value})"
        )
        return RunState.DECIDE_CONTINUATION

    async def _decide_continuation(self, run: _Run) -> RunState:
        classification = run.classification
        if run.cancelled:
            self._report_failure(run, AttemptOutcome.FAILED)
            return RunState.SELECT_NEXT_TUPLE

        if (
            classification.severity == Severity.HIGH
            and not self.config.policy.should_continue(classification, run.params)
        ):
            skipped = run.cursor.skip_family()
            self.logger.info(
                f"Skipping to next strategy due to {classification.kind.value} error "
                f"({skipped} tuples dropped)"
            )
            self._report_failure(run, AttemptOutcome.FAMILY_SKIPPED, skipped=skipped)
            return RunState.SELECT_NEXT_TUPLE if self._has_untried(run) else RunState.EXHAUSTED

        # Never back off after the last attempt
        if not self._has_untried(run):
            self._report_failure(run, AttemptOutcome.FAILED)
            return RunState.EXHAUSTED

        return RunState.BACKOFF

    async def _backoff(self, run: _Run) -> RunState:
        delay_ms = self.config.retry.get_delay(run.attempts, self._rng)
        self._report_failure(run, AttemptOutcome.FAILED, delay_ms=delay_ms)
        self.logger.info(f"Waiting {delay_ms / 1000:.1f}s before next attempt")

        interrupted = await self._delay(delay_ms, run.cancel_event)
        if interrupted or run.cancelled:
            return RunState.CANCELLED
        return RunState.SELECT_NEXT_TUPLE

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _has_untried(run: _Run) -> bool:
        return any(key not in run.issued for key in run.cursor.upcoming())

    @staticmethod
    def _status_for(state: RunState) -> RunStatus:
        if state == RunState.SUCCESS:
            return RunStatus.SUCCEEDED
        if state == RunState.CANCELLED:
            return RunStatus.CANCELLED
        return RunStatus.EXHAUSTED

    def _report_failure(
        self,
        run: _Run,
        outcome: AttemptOutcome,
        delay_ms: Optional[float] = None,
        skipped: int = 0,
    ) -> None:
        self._notify(
            self.reporter.on_attempt,
            AttemptRecord(
                attempt_number=run.attempts,
                params=run.params,
                outcome=outcome,
                classification=run.classification,
                error_message=run.error.message if run.error else None,
                delay_ms=delay_ms,
                skipped_tuples=skipped,
            ),
        )

    def _notify(self, callback: Callable[[Any], None], payload: Any) -> None:
        try:
            callback(payload)
        except Exception as e:
            self.logger.error(f"Retry reporter failed: {e}")

    def _log_completion(self, result: SwapRunResult) -> None:
        if result.status == RunStatus.SUCCEEDED:
            self.logger.info(
                f"Swap successful with {result.params.strategy_key.description} "
                f"after {result.attempts} attempts"
            )
        elif result.status == RunStatus.CANCELLED:
            self.logger.warning(f"Swap retry cancelled after {result.attempts} attempts")
        else:
            last = result.error.message if result.error else "Unknown error"
            self.logger.error(
                f"All retry strategies exhausted after {result.attempts} attempts. Last error: {last}"
            )


# Convenience function for simple usage
async def execute_with_recovery(
    swap_op: SwapOperation,
    initial: AttemptParameters,
    cancel_event: Optional[asyncio.Event] = None,
) -> SwapRunResult:
    """
    Execute a swap with default recovery settings.

    Simple wrapper for quick usage without configuring SwapRecoveryExecutor.
    """
    executor = SwapRecoveryExecutor()
    return await executor.execute(swap_op, initial, cancel_event=cancel_event)
