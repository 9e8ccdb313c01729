"""Reporting sinks, recommendations and persisted swap reports."""

from ..core.recovery.reporting import AttemptOutcome, AttemptRecord, LoggingReporter, RetryReporter
from .report import (
    ERROR_RECOMMENDATIONS,
    build_recommendations,
    build_report,
    describe_configuration,
    load_report,
    render_summary,
    write_report,
)

__all__ = [
    "AttemptOutcome",
    "AttemptRecord",
    "LoggingReporter",
    "RetryReporter",
    "ERROR_RECOMMENDATIONS",
    "build_recommendations",
    "build_report",
    "describe_configuration",
    "load_report",
    "render_summary",
    "write_report",
]
