#!/usr/bin/env python3
"""Command line tools for inspecting retry plans and saved swap reports"""

import argparse
import sys
from itertools import islice
from typing import List, Optional

from .config import settings
from .core.recovery.executor import RecoveryConfig
from .core.swap.constants import FEE_TIER_DESCRIPTIONS
from .core.swap.pricing import format_fee_tier
from .logging_config import setup_logging
from .telemetry.report import load_report, render_summary


def print_plan(fee_tier: Optional[int] = None, limit: Optional[int] = None) -> None:
    """Print the strategy tuples the retry engine would try, in order"""
    space = RecoveryConfig.from_settings(settings).strategy_space
    nominal = space.nominal_key(fee_tier) if fee_tier is not None else None

    print(f"\n🧭 Retry plan ({len(space)} strategies)")
    print("=" * 50)
    if fee_tier is not None:
        note = FEE_TIER_DESCRIPTIONS.get(fee_tier, "custom fee tier")
        print(f"Primary fee tier: {fee_tier} ({format_fee_tier(fee_tier)}, {note})")

    for i, key in enumerate(islice(space, limit), 1):
        marker = "  <- original parameters" if key == nominal else ""
        print(f"{i:3d}. {key.description}{marker}")

    if limit is not None and limit < len(space):
        print(f"... and {len(space) - limit} more")


def print_report(path: str) -> bool:
    """Print a saved report; False if it could not be read"""
    try:
        report = load_report(path)
        lines = render_summary(report)
    except (OSError, ValueError) as e:
        print(f"❌ Could not read report: {e}")
        return False

    for line in lines:
        print(line)
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smart swap retry tools")
    subparsers = parser.add_subparsers(dest="command")

    plan_parser = subparsers.add_parser("plan", help="Show the ordered retry strategies")
    plan_parser.add_argument("--fee-tier", type=int, help="Fee tier of the original swap, in basis points")
    plan_parser.add_argument("--limit", type=int, help="Show only the first N strategies")

    report_parser = subparsers.add_parser("report", help="Summarize a saved swap report")
    report_parser.add_argument("path", help="Path to a swap_report_*.json file")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "plan":
        if args.limit is not None and args.limit <= 0:
            parser.error("--limit must be positive")
        print_plan(args.fee_tier, args.limit)
        return 0

    if args.command == "report":
        return 0 if print_report(args.path) else 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
