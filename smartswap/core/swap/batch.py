"""
Swap Batch Runner

Runs a sequence of swaps across a set of wallets, each swap through the
recovery executor with its own statistics recorder. Counts are folded
into a batch-wide recorder for the final report.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from ..recovery.errors import RunStatus, classify_error
from ..recovery.executor import SwapRecoveryExecutor, SwapRunResult
from ..recovery.statistics import StatisticsSnapshot, SwapStatistics
from ..recovery.strategies import DelayFunction, cancellable_sleep
from .constants import DEFAULT_FEE_TIERS, DEFAULT_INITIAL_SLIPPAGE_BPS
from .models import AttemptParameters, SwapError, SwapOperation, SwapSuccess
from .pricing import format_fee_tier


logger = logging.getLogger(__name__)


# Builds the swap operation bound to one wallet.
SwapOperationFactory = Callable[[Any], SwapOperation]


@dataclass
class BatchConfig:
    """Configuration for a batch of swaps."""

    total_swaps: int
    min_amount: int
    max_amount: int
    min_wait_seconds: int = 0
    max_wait_seconds: int = 0
    fee_tier: int = DEFAULT_FEE_TIERS[0]
    smart_retry: bool = True
    initial_slippage_bps: int = DEFAULT_INITIAL_SLIPPAGE_BPS
    stats_report_interval: int = 5

    def __post_init__(self) -> None:
        if self.total_swaps < 1:
            raise ValueError("total_swaps must be at least 1")
        if self.min_amount < 0 or self.max_amount < self.min_amount:
            raise ValueError("amount range must satisfy 0 <= min_amount <= max_amount")
        if self.min_wait_seconds < 0 or self.max_wait_seconds < self.min_wait_seconds:
            raise ValueError("wait range must satisfy 0 <= min_wait_seconds <= max_wait_seconds")
        if self.stats_report_interval < 1:
            raise ValueError("stats_report_interval must be at least 1")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSwaps": self.total_swaps,
            "minAmount": str(self.min_amount),
            "maxAmount": str(self.max_amount),
            "minWaitTime": self.min_wait_seconds,
            "maxWaitTime": self.max_wait_seconds,
            "feeTier": self.fee_tier,
            "initialSlippageBps": self.initial_slippage_bps,
            "smartRetryEnabled": self.smart_retry,
        }


@dataclass
class BatchSummary:
    """Outcome of a batch run."""

    total_swaps: int
    completed: int = 0
    failed: int = 0
    results: List[SwapRunResult] = field(default_factory=list)
    statistics: Optional[StatisticsSnapshot] = None
    cancelled: bool = False
    config: Optional[BatchConfig] = None
    wallet_count: int = 0

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        if self.total_swaps == 0:
            return 0.0
        return self.completed / self.total_swaps

    @property
    def success_rate_display(self) -> str:
        return f"{self.success_rate * 100:.2f}%"

    def to_dict(self) -> Dict[str, Any]:
        configuration = self.config.to_dict() if self.config else {}
        configuration["walletCount"] = self.wallet_count
        return {
            "timestamp": (self.completed_at or datetime.now(timezone.utc)).isoformat(),
            "configuration": configuration,
            "results": {
                "completedSwaps": self.completed,
                "failedSwaps": self.failed,
                "successRate": self.success_rate_display,
                "cancelled": self.cancelled,
            },
            "smartRetryStats": self.statistics.to_dict() if self.statistics else None,
            "swaps": [result.to_dict() for result in self.results],
        }


class SwapBatchRunner:
    """
    Executes ``config.total_swaps`` swaps, one at a time.

    Wallets are used round-robin and each swap gets a random amount in
    [min_amount, max_amount]. A random whole-second pause separates
    consecutive swaps.
    """

    def __init__(
        self,
        executor: SwapRecoveryExecutor,
        swap_op_factory: SwapOperationFactory,
        wallets: Sequence[Any],
        config: BatchConfig,
        rng: Optional[random.Random] = None,
        delay: Optional[DelayFunction] = None,
    ):
        if not wallets:
            raise ValueError("at least one wallet is required")
        self.executor = executor
        self.swap_op_factory = swap_op_factory
        self.wallets = list(wallets)
        self.config = config
        self._rng = rng or random.Random()
        self._delay = delay or cancellable_sleep

    async def run(self, cancel_event: Optional[asyncio.Event] = None) -> BatchSummary:
        config = self.config
        totals = SwapStatistics()
        summary = BatchSummary(
            total_swaps=config.total_swaps,
            config=config,
            wallet_count=len(self.wallets),
            started_at=datetime.now(timezone.utc),
        )

        logger.info(
            f"Starting batch of {config.total_swaps} swaps across {len(self.wallets)} wallets "
            f"(fee tier {format_fee_tier(config.fee_tier)}, smart retry "
            f"{'enabled' if config.smart_retry else 'disabled'})"
        )

        for i in range(config.total_swaps):
            if cancel_event is not None and cancel_event.is_set():
                summary.cancelled = True
                break

            wallet_number = i % len(self.wallets) + 1
            wallet = self.wallets[wallet_number - 1]
            amount = self._rng.randint(config.min_amount, config.max_amount)
            initial = AttemptParameters(
                base_amount=amount,
                fee_tier=config.fee_tier,
                slippage_bps=config.initial_slippage_bps,
            )
            swap_op = self.swap_op_factory(wallet)

            # Every log line of this swap, engine and reporter included, carries these
            with structlog.contextvars.bound_contextvars(swap=i + 1, wallet=wallet_number):
                logger.info(f"Swap {i + 1}/{config.total_swaps}: amount {amount} (wallet {wallet_number})")

                run_stats = SwapStatistics()
                if config.smart_retry:
                    result = await self.executor.execute(
                        swap_op, initial, cancel_event=cancel_event, statistics=run_stats
                    )
                else:
                    result = await self._single_attempt(swap_op, initial, run_stats)
                totals.merge(run_stats)
                summary.results.append(result)

                if result.status == RunStatus.CANCELLED:
                    summary.cancelled = True
                    break

                if result.success:
                    summary.completed += 1
                    logger.info(f"Swap {i + 1} completed successfully")
                else:
                    summary.failed += 1
                    kind = result.classification.kind.value if result.classification else "UNKNOWN"
                    logger.warning(f"Swap {i + 1} failed after all retry attempts (final error type: {kind})")

            if config.smart_retry and (i + 1) % config.stats_report_interval == 0:
                self._log_running_stats(totals.snapshot())

            if i < config.total_swaps - 1:
                wait_seconds = self._rng.randint(config.min_wait_seconds, config.max_wait_seconds)
                logger.info(f"Waiting {wait_seconds} seconds before next swap")
                if await self._delay(wait_seconds * 1000, cancel_event):
                    summary.cancelled = True
                    break

        summary.statistics = totals.snapshot()
        summary.completed_at = datetime.now(timezone.utc)

        logger.info(
            f"Batch finished: {summary.completed} succeeded, {summary.failed} failed "
            f"of {summary.total_swaps} ({summary.success_rate_display})"
            + (" - cancelled" if summary.cancelled else "")
        )
        return summary

    async def _single_attempt(
        self,
        swap_op: SwapOperation,
        initial: AttemptParameters,
        stats: SwapStatistics,
    ) -> SwapRunResult:
        """One plain attempt with the caller's parameters, no strategy search."""
        started_at = datetime.now(timezone.utc)
        stats.record_attempt()

        try:
            outcome = await swap_op(initial)
        except Exception as e:
            success = None
            error = SwapError.from_exception(e)
        else:
            success = SwapSuccess.from_outcome(outcome)
            error = None if success is not None else SwapError.from_outcome(outcome)

        if error is None:
            stats.record_success(initial)
            status = RunStatus.SUCCEEDED
            classification = None
        else:
            classification = classify_error(error)
            stats.record_error(classification)
            status = RunStatus.EXHAUSTED
            logger.warning(f"Swap failed: {error.message} (type: {classification.kind.value})")

        return SwapRunResult(
            status=status,
            statistics=stats.snapshot(),
            params=initial,
            outcome=success,
            error=error,
            classification=classification,
            attempts=1,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def _log_running_stats(snapshot: StatisticsSnapshot) -> None:
        errors = {kind.value: count for kind, count in snapshot.errors_by_kind.items()}
        logger.info(
            f"Current statistics: {snapshot.total_attempts} attempts, "
            f"success rate {snapshot.success_rate_display}, errors by type {errors}"
        )
