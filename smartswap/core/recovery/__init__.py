"""
Swap Recovery Module

Provides error classification, strategy search, backoff scheduling and
retry statistics for resilient execution of token swaps.
"""

from .errors import (
    ErrorClassification,
    ErrorKind,
    InvalidTransitionError,
    Remedy,
    RunStatus,
    Severity,
    classify_error,
)
from .strategies import (
    ContinuationPolicy,
    RetryConfig,
    StrategyCursor,
    StrategySpace,
    cancellable_sleep,
)
from .statistics import StatisticsSnapshot, SwapStatistics
from .state_machine import RunState, RunStateMachine, StateTransition
from .reporting import AttemptOutcome, AttemptRecord, LoggingReporter, RetryReporter
from .executor import RecoveryConfig, SwapRecoveryExecutor, SwapRunResult, execute_with_recovery

__all__ = [
    # Errors
    "ErrorClassification",
    "ErrorKind",
    "InvalidTransitionError",
    "Remedy",
    "RunStatus",
    "Severity",
    "classify_error",
    # Strategies
    "ContinuationPolicy",
    "RetryConfig",
    "StrategyCursor",
    "StrategySpace",
    "cancellable_sleep",
    # Statistics
    "StatisticsSnapshot",
    "SwapStatistics",
    # State machine
    "RunState",
    "RunStateMachine",
    "StateTransition",
    # Reporting
    "AttemptOutcome",
    "AttemptRecord",
    "LoggingReporter",
    "RetryReporter",
    # Executor
    "RecoveryConfig",
    "SwapRecoveryExecutor",
    "SwapRunResult",
    "execute_with_recovery",
]
