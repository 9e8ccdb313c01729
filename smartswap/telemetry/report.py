"""Recommendations and JSON reports for finished swap batches."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..core.recovery.errors import ErrorKind
from ..core.recovery.statistics import StatisticsSnapshot, most_frequent
from ..core.swap.batch import BatchSummary
from ..core.swap.models import StrategyKey
from ..core.swap.pricing import format_amount_factor, format_fee_tier, format_slippage

logger = logging.getLogger(__name__)

REPORT_PREFIX = "swap_report_"

ERROR_RECOMMENDATIONS: Dict[ErrorKind, List[str]] = {
    ErrorKind.LIQUIDITY: [
        "Consider using smaller swap amounts",
        "Try different fee tiers (500 or 10000)",
    ],
    ErrorKind.NO_POOL: [
        "Verify token pair exists on this DEX",
        "Check different fee tiers for available pools",
    ],
    ErrorKind.PRICE_IMPACT: [
        "Use smaller swap amounts to reduce price impact",
        "Consider higher slippage tolerance",
    ],
    ErrorKind.GAS: [
        "Check network congestion",
        "Consider using different times for swapping",
    ],
    ErrorKind.NETWORK: [
        "Check RPC provider reliability",
        "Consider using a different provider",
    ],
}


def describe_configuration(key: StrategyKey) -> str:
    """'50% amount, 0.05% fee, 2% slippage'."""
    return (
        f"{format_amount_factor(key.amount_factor)} amount, {format_fee_tier(key.fee_tier)} fee, "
        f"{format_slippage(key.slippage_bps)} slippage"
    )


def _recommend(errors_by_type: Mapping[str, int], strategies_used: Mapping[str, int]) -> List[str]:
    lines: List[str] = []

    most_common = most_frequent(dict(errors_by_type))
    if most_common is not None:
        try:
            lines.extend(ERROR_RECOMMENDATIONS.get(ErrorKind(most_common), []))
        except ValueError:
            logger.debug(f"No recommendations for error type {most_common}")

    best = most_frequent(dict(strategies_used))
    if best is not None:
        lines.append(f"Most successful configuration: {describe_configuration(StrategyKey.from_label(best))}")

    return lines


def build_recommendations(snapshot: StatisticsSnapshot) -> List[str]:
    """Advice for future runs, keyed by the most common error kind."""
    return _recommend(
        {kind.value: count for kind, count in snapshot.errors_by_kind.items()},
        {key.label: count for key, count in snapshot.successes_by_strategy.items()},
    )


def build_report(
    summary: BatchSummary,
    tokens: Optional[Dict[str, Any]] = None,
    network: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    report = summary.to_dict()
    if network:
        report["configuration"].update(network)
    if tokens:
        report["tokens"] = tokens
    report["recommendations"] = (
        build_recommendations(summary.statistics) if summary.statistics else []
    )
    return report


def write_report(report: Dict[str, Any], directory: Union[str, Path] = ".") -> Path:
    """Write ``report`` to ``<directory>/swap_report_<epoch-ms>.json``."""
    root = Path(directory)
    root.mkdir(parents=True, exist_ok=True)
    path = root / f"{REPORT_PREFIX}{int(time.time() * 1000)}.json"
    path.write_text(json.dumps(report, default=str, indent=2), encoding="utf-8")
    logger.info(f"Report saved to: {path}")
    return path


def load_report(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a saved report; raises ValueError if it is not a report object."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict) or "results" not in data:
        raise ValueError(f"{path} is not a swap report")
    return data


def render_summary(report: Mapping[str, Any]) -> List[str]:
    """Human-readable lines for a loaded report."""
    config = report.get("configuration") or {}
    results = report.get("results") or {}
    stats = report.get("smartRetryStats") or {}

    lines = [
        "=================== SWAP REPORT ===================",
        f"Generated: {report.get('timestamp', 'unknown')}",
        f"Total swaps attempted: {config.get('totalSwaps', 'unknown')}",
        f"Successful swaps: {results.get('completedSwaps', 0)}",
        f"Failed swaps: {results.get('failedSwaps', 0)}",
        f"Success rate: {results.get('successRate', '0%')}",
    ]
    if "feeTier" in config:
        lines.append(f"Primary fee tier: {config['feeTier']} ({format_fee_tier(int(config['feeTier']))})")
    if results.get("cancelled"):
        lines.append("Batch was cancelled before completion")

    if stats:
        lines.append("")
        lines.append("Smart Retry Statistics:")
        lines.append(f"  Total retry attempts: {stats.get('totalAttempts', 0)}")
        lines.append(f"  Retry success rate: {stats.get('successRate', '0%')}")
        for kind, count in (stats.get("errorsByType") or {}).items():
            lines.append(f"  {kind}: {count}")

    recommendations = report.get("recommendations")
    if recommendations is None:
        recommendations = _recommend(stats.get("errorsByType") or {}, stats.get("strategiesUsed") or {})
    if recommendations:
        lines.append("")
        lines.append("Recommendations for future runs:")
        lines.extend(f"  - {line}" for line in recommendations)

    return lines
