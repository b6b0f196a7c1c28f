#!/usr/bin/env python3
"""
CLI for generating comparable adjustment schedules.

Usage:
    python -m reporting.cli sample
    python -m reporting.cli generate <schedule_json> [--json]

Examples:
    # Generate sample schedule for testing
    python -m reporting.cli sample

    # Generate from JSON schedule file
    python -m reporting.cli generate schedules/st_andrews.json

    # Print the valuation indications as JSON instead of writing a PDF
    python -m reporting.cli generate schedules/st_andrews.json --json
"""

import argparse
import json
import sys
from pathlib import Path

from core.adjustment_engine import (
    AdjustmentEngineError,
    ComparableAdjustmentEngine,
    get_policy,
)
from utils.config import Config
from utils.logging import get_logger, setup_logging

from .schedule_pdf import ScheduleNoValidComparables, ScheduleReportGenerator
from .schemas import AdjustmentSchedule, create_sample_schedule, parse_schedule_from_json


logger = get_logger(__name__)


def schedule_to_dict(schedule: AdjustmentSchedule) -> dict:
    """
    Value every comparable in the schedule and return a JSON-ready dict.

    Raises:
        InvalidInputError: if any comparable has no positive base price
        PolicyError: if the asset class or rate overrides are invalid
    """
    weights = get_policy(schedule.asset_class)
    if schedule.rate_overrides:
        weights = weights.with_overrides(schedule.rate_overrides)
    engine = ComparableAdjustmentEngine(weights)

    indications, summary = engine.value_comparables(
        schedule.comparables,
        schedule.subject,
        included=schedule.included,
        yield_rate=schedule.yield_rate,
    )
    return {
        "reference_id": schedule.reference_id,
        "asset_class": schedule.asset_class,
        "policy": weights.to_dict(),
        "indications": [i.to_dict() for i in indications],
        "reconciliation": summary.to_dict(),
    }


def _write_pdf(schedule: AdjustmentSchedule, output_dir) -> int:
    result = ScheduleReportGenerator(output_dir).generate_report(schedule)
    if isinstance(result, ScheduleNoValidComparables):
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    print(f"Schedule generated: {result.path}")
    if result.comparables_rejected:
        print(f"Comparables left out: {result.comparables_rejected}")
    return 0


def cmd_sample(args):
    """Generate a sample adjustment schedule for testing."""
    print("Generating sample adjustment schedule...")
    return _write_pdf(create_sample_schedule(), args.output_dir)


def cmd_generate(args):
    """Generate a schedule from a JSON file."""
    input_path = Path(args.schedule_file)

    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    logger.info("Loading schedule from %s", input_path)

    try:
        with open(input_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1

    try:
        schedule = parse_schedule_from_json(data)
    except (KeyError, ValueError, TypeError) as e:
        print(f"Error: Invalid schedule data: {e}", file=sys.stderr)
        return 1

    try:
        if args.json:
            print(json.dumps(schedule_to_dict(schedule), indent=2))
            return 0
        return _write_pdf(schedule, args.output_dir)
    except AdjustmentEngineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main(argv=None):
    """Main CLI entry point."""
    config = Config.load()
    setup_logging(config.log_level, config.log_format)

    parser = argparse.ArgumentParser(
        description="Comparable Adjustment Schedule Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m reporting.cli sample
    python -m reporting.cli generate schedules/st_andrews.json
    python -m reporting.cli generate schedules/st_andrews.json --json

Output:
    Schedules are saved to: $REPORTS_DIR/<reference_id>.pdf
        """,
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for generated PDFs (default: $REPORTS_DIR)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Sample command
    sample_parser = subparsers.add_parser(
        "sample",
        help="Generate a sample schedule with mock data",
    )
    sample_parser.set_defaults(func=cmd_sample)

    # Generate command
    gen_parser = subparsers.add_parser(
        "generate",
        help="Generate a schedule from a JSON file",
    )
    gen_parser.add_argument(
        "schedule_file",
        help="Path to JSON schedule file",
    )
    gen_parser.add_argument(
        "--json",
        action="store_true",
        help="Print valuation indications as JSON instead of writing a PDF",
    )
    gen_parser.set_defaults(func=cmd_generate)

    args = parser.parse_args(argv)
    if args.output_dir is None:
        args.output_dir = config.reports_dir
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
