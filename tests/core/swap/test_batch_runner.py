"""
Tests for the swap batch runner.
"""

import asyncio
import random
from unittest.mock import AsyncMock

import pytest
import structlog

from smartswap.core.recovery import ErrorKind, RecoveryConfig, RetryConfig, SwapRecoveryExecutor
from smartswap.core.swap import SwapError, SwapFailure, SwapSuccess
from smartswap.core.swap.batch import BatchConfig, SwapBatchRunner


class RecordingDelay:
    def __init__(self):
        self.calls = []

    async def __call__(self, delay_ms, cancel_event=None):
        self.calls.append(delay_ms)
        return cancel_event is not None and cancel_event.is_set()


@pytest.fixture
def delay():
    return RecordingDelay()


@pytest.fixture
def executor(delay):
    return SwapRecoveryExecutor(RecoveryConfig(retry=RetryConfig(jitter_ratio=0.0)), delay=delay)


def make_factory(outcomes_by_wallet):
    """Factory returning one AsyncMock per wallet, remembered for assertions."""
    ops = {}

    def factory(wallet):
        if wallet not in ops:
            ops[wallet] = AsyncMock(side_effect=outcomes_by_wallet[wallet])
        return ops[wallet]

    return factory, ops


class TestBatchConfig:
    """Configuration validation."""

    @pytest.mark.parametrize("kwargs", [
        {"total_swaps": 0, "min_amount": 1, "max_amount": 2},
        {"total_swaps": 1, "min_amount": 5, "max_amount": 2},
        {"total_swaps": 1, "min_amount": 1, "max_amount": 2, "min_wait_seconds": 5, "max_wait_seconds": 1},
        {"total_swaps": 1, "min_amount": 1, "max_amount": 2, "stats_report_interval": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            BatchConfig(**kwargs)

    def test_runner_requires_wallets(self, executor):
        with pytest.raises(ValueError):
            SwapBatchRunner(executor, lambda w: None, [], BatchConfig(1, 1, 1))


class TestSwapBatchRunner:
    """Batch execution."""

    @pytest.mark.asyncio
    async def test_round_robin_wallets_and_amounts(self, executor, delay):
        factory, ops = make_factory({
            "w1": lambda p: SwapSuccess("0x1"),
            "w2": lambda p: SwapSuccess("0x2"),
        })
        config = BatchConfig(total_swaps=3, min_amount=100, max_amount=200, min_wait_seconds=1, max_wait_seconds=3)
        runner = SwapBatchRunner(executor, factory, ["w1", "w2"], config, rng=random.Random(3), delay=delay)

        summary = await runner.run()

        assert summary.completed == 3
        assert summary.failed == 0
        assert summary.success_rate_display == "100.00%"
        assert ops["w1"].await_count == 2
        assert ops["w2"].await_count == 1
        for call in ops["w1"].await_args_list + ops["w2"].await_args_list:
            assert 100 <= call.args[0].base_amount <= 200
            assert call.args[0].fee_tier == 3000
        # Waits only between swaps, whole seconds in range
        assert len(delay.calls) == 2
        assert all(ms in (1000, 2000, 3000) for ms in delay.calls)

    @pytest.mark.asyncio
    async def test_failures_counted_and_stats_merged(self, executor, delay):
        factory, _ = make_factory({
            "w1": lambda p: SwapSuccess("0x1") if p.fee_tier == 500 else SwapFailure(SwapError("insufficient liquidity")),
        })
        config = BatchConfig(total_swaps=2, min_amount=1000, max_amount=1000)
        runner = SwapBatchRunner(executor, factory, ["w1"], config, delay=delay)

        summary = await runner.run()

        assert summary.completed == 2
        assert summary.statistics.total_attempts == 12
        assert summary.statistics.successful_attempts == 2
        assert summary.statistics.errors_by_kind == {ErrorKind.LIQUIDITY: 10}
        assert summary.statistics.best_strategy.label == "1_500_100"

    @pytest.mark.asyncio
    async def test_single_attempt_without_smart_retry(self, executor, delay):
        factory, ops = make_factory({"w1": lambda p: SwapFailure(SwapError("no pool found"))})
        config = BatchConfig(total_swaps=2, min_amount=10, max_amount=10, fee_tier=500, smart_retry=False)
        runner = SwapBatchRunner(executor, factory, ["w1"], config, delay=delay)

        summary = await runner.run()

        assert summary.failed == 2
        assert summary.success_rate_display == "0.00%"
        assert ops["w1"].await_count == 2
        assert summary.results[0].attempts == 1
        assert summary.results[0].classification.kind == ErrorKind.NO_POOL
        assert summary.statistics.errors_by_kind == {ErrorKind.NO_POOL: 2}

    @pytest.mark.asyncio
    async def test_single_attempt_raised_error(self, executor, delay):
        factory, _ = make_factory({"w1": RuntimeError("nonce too low")})
        config = BatchConfig(total_swaps=1, min_amount=10, max_amount=10, smart_retry=False)
        runner = SwapBatchRunner(executor, factory, ["w1"], config, delay=delay)

        summary = await runner.run()

        assert summary.failed == 1
        assert summary.results[0].error.message == "nonce too low"

    @pytest.mark.asyncio
    async def test_cancel_during_wait_stops_batch(self, executor):
        event = asyncio.Event()

        async def cancelling_delay(delay_ms, cancel_event=None):
            event.set()
            return True

        factory, ops = make_factory({"w1": lambda p: SwapSuccess("0x1")})
        config = BatchConfig(total_swaps=5, min_amount=1, max_amount=1)
        runner = SwapBatchRunner(executor, factory, ["w1"], config, delay=cancelling_delay)

        summary = await runner.run(cancel_event=event)

        assert summary.cancelled is True
        assert summary.completed == 1
        assert ops["w1"].await_count == 1

    @pytest.mark.asyncio
    async def test_pre_cancelled_batch_runs_nothing(self, executor, delay):
        event = asyncio.Event()
        event.set()
        factory, ops = make_factory({"w1": lambda p: SwapSuccess("0x1")})
        runner = SwapBatchRunner(executor, factory, ["w1"], BatchConfig(3, 1, 1), delay=delay)

        summary = await runner.run(cancel_event=event)

        assert summary.cancelled is True
        assert summary.results == []
        assert ops == {}

    @pytest.mark.asyncio
    async def test_running_stats_logged_at_interval(self, executor, delay, caplog):
        factory, _ = make_factory({"w1": lambda p: SwapSuccess("0x1")})
        config = BatchConfig(total_swaps=4, min_amount=1, max_amount=1, stats_report_interval=2)
        runner = SwapBatchRunner(executor, factory, ["w1"], config, delay=delay)

        with caplog.at_level("INFO", logger="smartswap.core.swap.batch"):
            await runner.run()

        running = [r for r in caplog.records if "Current statistics" in r.getMessage()]
        assert len(running) == 2

    @pytest.mark.asyncio
    async def test_summary_to_dict(self, executor, delay):
        factory, _ = make_factory({"w1": lambda p: SwapSuccess("0x1")})
        config = BatchConfig(total_swaps=1, min_amount=5, max_amount=5)
        runner = SwapBatchRunner(executor, factory, ["w1"], config, delay=delay)

        data = (await runner.run()).to_dict()

        assert data["configuration"]["totalSwaps"] == 1
        assert data["configuration"]["walletCount"] == 1
        assert data["configuration"]["smartRetryEnabled"] is True
        assert data["results"] == {
            "completedSwaps": 1,
            "failedSwaps": 0,
            "successRate": "100.00%",
            "cancelled": False,
        }
        assert data["smartRetryStats"]["totalAttempts"] == 1
        assert len(data["swaps"]) == 1

    @pytest.mark.asyncio
    async def test_single_attempt_accepts_success_shaped_outcome(self, executor, delay):
        class Receipt:
            success = True
            transaction_hash = "0xabc"

        factory, _ = make_factory({"w1": lambda p: Receipt()})
        config = BatchConfig(total_swaps=1, min_amount=10, max_amount=10, smart_retry=False)
        runner = SwapBatchRunner(executor, factory, ["w1"], config, delay=delay)

        summary = await runner.run()

        assert summary.completed == 1
        assert summary.results[0].outcome.tx_reference == "0xabc"
        assert summary.statistics.successful_attempts == 1

    @pytest.mark.asyncio
    async def test_swap_and_wallet_bound_to_log_context(self, executor, delay):
        seen = []

        def swap(params):
            seen.append(structlog.contextvars.get_contextvars())
            return SwapSuccess("0x1")

        factory, _ = make_factory({"w1": swap, "w2": swap})
        config = BatchConfig(total_swaps=3, min_amount=10, max_amount=10)
        runner = SwapBatchRunner(executor, factory, ["w1", "w2"], config, delay=delay)

        await runner.run()

        assert [(ctx["swap"], ctx["wallet"]) for ctx in seen] == [(1, 1), (2, 2), (3, 1)]
        assert "swap" not in structlog.contextvars.get_contextvars()
