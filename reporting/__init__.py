"""
Reporting module for the adjustment engine.

Generates comparable adjustment schedule PDFs from a subject
property and its comparable evidence.

Usage:
    from reporting import generate_schedule_report
    from reporting.schemas import create_sample_schedule

    schedule = create_sample_schedule()
    result = generate_schedule_report(schedule)
"""

from .schedule_pdf import (
    ScheduleNoValidComparables,
    ScheduleReportGenerator,
    ScheduleReportResult,
    ScheduleReportSuccess,
    build_reconciliation_rows,
    build_schedule_rows,
    build_totals_rows,
    generate_schedule_report,
)
from .schemas import (
    AdjustmentSchedule,
    create_sample_schedule,
    parse_property_from_json,
    parse_schedule_from_json,
    parse_subject_from_json,
)

__all__ = [
    # Generator
    "ScheduleReportGenerator",
    "ScheduleReportResult",
    "ScheduleReportSuccess",
    "ScheduleNoValidComparables",
    "generate_schedule_report",
    "build_schedule_rows",
    "build_totals_rows",
    "build_reconciliation_rows",
    # Schemas
    "AdjustmentSchedule",
    "create_sample_schedule",
    "parse_property_from_json",
    "parse_schedule_from_json",
    "parse_subject_from_json",
]
