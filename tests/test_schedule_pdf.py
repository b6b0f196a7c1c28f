"""
Tests for the Adjustment Schedule PDF and JSON schedule parsing

Tests covering:
1. Schedule JSON parsing (areas, enums, dates, include set, rates)
2. Grid rows show every attribute, excluded ones flagged
3. Not-applicable rates render as n/a
4. Comparables with no positive base price are left out, not fatal
5. PDF written to the configured directory
"""

import pytest
from datetime import date
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.adjustment_engine import (
    AdjustmentWeights,
    Area,
    AreaUnit,
    Attribute,
    ClimateRisk,
    ComparableAdjustmentEngine,
    Condition,
    MarketTrend,
    PropertyAttributes,
    RelativeRating,
    SubjectProperty,
    reconcile,
)
from reporting import (
    ScheduleNoValidComparables,
    ScheduleReportGenerator,
    ScheduleReportSuccess,
    build_reconciliation_rows,
    build_schedule_rows,
    build_totals_rows,
    create_sample_schedule,
    generate_schedule_report,
    parse_property_from_json,
    parse_schedule_from_json,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def schedule():
    return create_sample_schedule()


@pytest.fixture
def schedule_json():
    return {
        "reference_id": "VAL-TEST-001",
        "report_date": "2024-06-01",
        "asset_class": "commercial",
        "currency": "NZD",
        "yield_rate": 6.5,
        "included": ["Land Area", "Living Area", "Condition"],
        "rates": {"Land Area": {"rate_per_sqm": 500}},
        "subject": {
            "address": "1 Queen Street, Auckland",
            "valuation_date": "2024-06-01",
            "market_trend": "Improving",
            "land_area": {"value": 0.2, "unit": "ha"},
            "living_area": 900,
            "condition": "good",
        },
        "comparables": [
            {
                "address": "12 Albert Street, Auckland",
                "price": 4_200_000,
                "transaction_type": "sale",
                "transaction_date": "2023-12-01",
                "land_area": 1_800,
                "living_area": 850,
                "condition": "Average",
                "location": "same",
                "climate_risk": "less",
                "climate_risk_adjustment": -1.0,
                "incentives": 50_000,
            }
        ],
    }


@pytest.fixture
def indication(schedule):
    engine = ComparableAdjustmentEngine()
    return engine.value_comparable(
        schedule.comparables[0], schedule.subject, yield_rate=schedule.yield_rate
    )


# =============================================================================
# Test: JSON Parsing
# =============================================================================

class TestScheduleParsing:

    def test_parse_full_schedule(self, schedule_json):
        schedule = parse_schedule_from_json(schedule_json)

        assert schedule.reference_id == "VAL-TEST-001"
        assert schedule.asset_class == "commercial"
        assert schedule.currency == "NZD"
        assert schedule.yield_rate == 6.5
        assert schedule.rate_overrides == {"Land Area": {"rate_per_sqm": 500}}

        subject = schedule.subject
        assert subject.market_trend == MarketTrend.IMPROVING
        assert subject.valuation_date == date(2024, 6, 1)
        assert subject.land_area == Area(0.2, AreaUnit.HECTARE)
        assert subject.living_area == Area(900)

        comp = schedule.comparables[0]
        assert comp.condition == Condition.AVERAGE
        assert comp.location == RelativeRating.SIMILAR
        assert comp.climate_risk == ClimateRisk.LESS
        assert comp.base_price == 4_150_000

    def test_missing_price_raises_key_error(self):
        with pytest.raises(KeyError):
            parse_property_from_json({"address": "No price"})

    def test_invalid_condition(self):
        with pytest.raises(ValueError):
            parse_property_from_json({"price": 1, "condition": "derelict"})

    def test_invalid_date(self):
        with pytest.raises(ValueError):
            parse_property_from_json({"price": 1, "transaction_date": "01/06/2024"})

    @pytest.mark.parametrize("field, value", [
        ("price", "2500000"),
        ("price", None),
        ("land_area", "800"),
        ("land_area", True),
        ("living_area", {"value": None}),
        ("condition", 3),
        ("climate_risk_adjustment", "-1"),
        ("incentives", "50000"),
    ])
    def test_wrongly_typed_comparable_field(self, field, value):
        with pytest.raises(ValueError, match="Invalid"):
            parse_property_from_json({"price": 1_000_000, field: value})

    def test_area_unit_must_be_text(self):
        with pytest.raises(ValueError, match="AreaUnit"):
            parse_property_from_json({"price": 1, "land_area": {"value": 1, "unit": 2}})

    def test_unknown_included_attribute(self, schedule_json):
        schedule_json["included"] = ["Land Area", "Tennis Court"]

        with pytest.raises(ValueError, match="Tennis Court"):
            parse_schedule_from_json(schedule_json)

    def test_defaults_from_environment(self, schedule_json, monkeypatch):
        del schedule_json["asset_class"]
        del schedule_json["currency"]
        monkeypatch.setenv("ASSET_CLASS", "specialised")
        monkeypatch.setenv("CURRENCY", "GBP")

        schedule = parse_schedule_from_json(schedule_json)

        assert schedule.asset_class == "specialised"
        assert schedule.currency == "GBP"


# =============================================================================
# Test: Table Rows
# =============================================================================

class TestScheduleRows:

    def test_header_and_one_row_per_adjustment(self, indication):
        rows = build_schedule_rows(indication)

        assert rows[0] == ["Attribute", "Comparable", "Subject", "Adj %", "Adj $", "Included"]
        assert len(rows) == len(indication.adjustments) + 1

    def test_land_row(self, indication):
        rows = build_schedule_rows(indication)
        land = next(r for r in rows if r[0] == "Land Area")

        assert land == ["Land Area", "800 sqm", "850 sqm", "+0.90%", "+$22,500", "Yes"]

    def test_excluded_rows_flagged(self, schedule):
        engine = ComparableAdjustmentEngine()
        indication = engine.value_comparable(
            schedule.comparables[0], schedule.subject, included=["Land Area"]
        )

        rows = build_schedule_rows(indication)[1:]

        assert [r[5] for r in rows if r[0] == "Land Area"] == ["Yes"]
        assert all(r[5] == "No" for r in rows if r[0] != "Land Area")

    def test_policy_gap_marked(self, schedule):
        engine = ComparableAdjustmentEngine(AdjustmentWeights(rates={}, name="empty"))
        indication = engine.value_comparable(schedule.comparables[0], schedule.subject)

        labels = [r[0] for r in build_schedule_rows(indication)]

        assert "Land Area *" in labels

    def test_totals_rows(self, indication):
        rows = dict(build_totals_rows(indication))

        assert rows["Base price"] == "$2,500,000"
        assert rows["Capitalised income"] != "n/a"

    def test_not_applicable_rates_render(self):
        engine = ComparableAdjustmentEngine()

        indication = engine.value_comparable(
            PropertyAttributes(price=900_000, bedrooms=2),
            SubjectProperty(bedrooms=3),
        )
        rows = dict(build_totals_rows(indication))

        assert rows["Rate per sqm (building)"] == "n/a"
        assert rows["Capitalised income"] == "n/a"
        assert rows["Rate per bedroom"] == "$457,500"

    def test_reconciliation_rows(self, schedule):
        engine = ComparableAdjustmentEngine()
        indications, summary = engine.value_comparables(schedule.comparables, schedule.subject)

        rows = build_reconciliation_rows(indications, summary)

        assert rows[0][0] == "Comparable"
        assert len(rows) == len(indications) + 3
        assert rows[-2][0] == "Median"

    def test_reconciliation_rows_empty(self):
        rows = build_reconciliation_rows([], reconcile([]))

        assert rows[-2] == ["Median", "", "", "n/a"]


# =============================================================================
# Test: PDF Generation
# =============================================================================

class TestScheduleReportGenerator:

    def test_generate_to_buffer(self, schedule):
        pdf = ScheduleReportGenerator().generate_to_buffer(schedule)

        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1_000

    def test_same_input_same_bytes(self, schedule):
        generator = ScheduleReportGenerator()

        first = generator.generate_to_buffer(schedule)
        second = generator.generate_to_buffer(create_sample_schedule())

        assert first == second

    def test_same_input_same_schedule(self, schedule):
        generator = ScheduleReportGenerator()

        first, _ = generator.value_schedule(schedule)
        second, _ = generator.value_schedule(create_sample_schedule())

        assert [i.to_dict() for i in first] == [i.to_dict() for i in second]

    def test_generate_report_writes_file(self, schedule, tmp_path):
        result = generate_schedule_report(schedule, output_dir=tmp_path)

        assert isinstance(result, ScheduleReportSuccess)
        assert result.path == tmp_path / "VAL-20240601-001.pdf"
        assert result.path.read_bytes().startswith(b"%PDF")
        assert result.comparables_included == 2
        assert result.comparables_rejected == 0

    def test_default_output_dir_from_config(self, schedule, tmp_path, monkeypatch):
        monkeypatch.setenv("REPORTS_DIR", str(tmp_path / "out"))

        result = ScheduleReportGenerator().generate_report(schedule)

        assert result.path.parent == tmp_path / "out"

    def test_invalid_comparable_left_out(self, schedule, tmp_path, caplog):
        schedule.comparables.append(PropertyAttributes(price=0, address="Withdrawn listing"))

        with caplog.at_level("WARNING", logger="reporting.schedule_pdf"):
            result = generate_schedule_report(schedule, output_dir=tmp_path)

        assert result.comparables_included == 2
        assert result.comparables_rejected == 1
        assert "Withdrawn listing" in caplog.text

    def test_no_valid_comparables(self, schedule, tmp_path):
        schedule.comparables = [PropertyAttributes(price=0)]

        result = generate_schedule_report(schedule, output_dir=tmp_path)

        assert isinstance(result, ScheduleNoValidComparables)
        assert list(tmp_path.iterdir()) == []

    def test_rate_overrides_applied(self, schedule):
        schedule.rate_overrides = {"Land Area": {"rate_per_sqm": 600}}

        indications, _ = ScheduleReportGenerator().value_schedule(schedule)
        land = next(a for a in indications[0].adjustments if a.attribute == Attribute.LAND_AREA)

        assert land.dollar_adjustment == pytest.approx(30_000)
