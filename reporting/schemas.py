"""
Canonical schemas for adjustment schedule generation.

Defines the input structure for the schedule PDF and the JSON
parsing used by the CLI. JSON records use the same field names as
the engine's PropertyAttributes and SubjectProperty.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from core.adjustment_engine import (
    Area,
    AreaUnit,
    Attribute,
    ClimateRisk,
    Condition,
    MarketTrend,
    PropertyAttributes,
    RelativeRating,
    SubjectProperty,
    TransactionType,
)
from utils.config import Config


@dataclass
class AdjustmentSchedule:
    """
    Complete input for one adjustment schedule report.
    This is the top-level input schema for the PDF generator.
    """
    reference_id: str
    subject: SubjectProperty
    comparables: List[PropertyAttributes] = field(default_factory=list)

    report_date: str = ""  # ISO format: YYYY-MM-DD
    asset_class: str = "residential"
    currency: str = "AUD"

    # Attributes counted in totals (None = all)
    included: Optional[List[str]] = None
    yield_rate: Optional[float] = None

    # Partial rate tables layered over the asset-class preset
    rate_overrides: Dict[str, Dict[str, float]] = field(default_factory=dict)


# =============================================================================
# JSON Parsing
# =============================================================================

def _require_object(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object, got {data!r}")
    return data


def _parse_number(data: dict, key: str, default: Any = None, required: bool = False):
    """Read a numeric field; JSON booleans and strings are rejected."""
    value = data[key] if required else data.get(key, default)
    if value is None:
        if required:
            raise ValueError(f"Invalid {key}: a number is required")
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Invalid {key}: expected a number, got {value!r}")
    return value


def _parse_enum(enum_cls, value: Optional[str]):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}")
    parser = getattr(enum_cls, "from_string", None)
    member = parser(value) if parser else None
    if member is None:
        try:
            member = enum_cls(value.lower().strip())
        except ValueError:
            raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}") from None
    return member


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Invalid date: {value!r}")
    return date.fromisoformat(value)


def _parse_area(value: Any) -> Optional[Area]:
    """Accept a bare sqm number or {"value": ..., "unit": ...}."""
    if value is None:
        return None
    if isinstance(value, dict):
        unit = _parse_enum(AreaUnit, value.get("unit", "sqm"))
        return Area(float(_parse_number(value, "value", required=True)), unit)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Invalid area: {value!r}")
    return Area(float(value))


def parse_property_from_json(data: dict) -> PropertyAttributes:
    """
    Parse a JSON dictionary into a comparable record.

    Args:
        data: Dictionary containing comparable data

    Returns:
        PropertyAttributes ready for adjustment

    Raises:
        KeyError: if price is missing
        ValueError: for invalid enum, date or numeric values
    """
    _require_object(data, "comparable")
    return PropertyAttributes(
        price=_parse_number(data, "price", required=True),
        transaction_type=_parse_enum(TransactionType, data.get("transaction_type", "sale")),
        transaction_date=_parse_date(data.get("transaction_date")),
        address=data.get("address", ""),
        land_area=_parse_area(data.get("land_area")),
        living_area=_parse_area(data.get("living_area")),
        bedrooms=_parse_number(data, "bedrooms"),
        bathrooms=_parse_number(data, "bathrooms"),
        car_spaces=_parse_number(data, "car_spaces"),
        year_built=_parse_number(data, "year_built"),
        condition=_parse_enum(Condition, data.get("condition")),
        location=_parse_enum(RelativeRating, data.get("location")),
        position=_parse_enum(RelativeRating, data.get("position")),
        position_value=_parse_number(data, "position_value"),
        zoning=data.get("zoning"),
        improvements_value=_parse_number(data, "improvements_value"),
        external_improvements=_parse_number(data, "external_improvements"),
        zoning_adjustment=_parse_number(data, "zoning_adjustment"),
        esg_adjustment=_parse_number(data, "esg_adjustment"),
        climate_risk=_parse_enum(ClimateRisk, data.get("climate_risk")),
        climate_risk_adjustment=_parse_number(data, "climate_risk_adjustment"),
        market_adjustment=_parse_number(data, "market_adjustment"),
        incentives=_parse_number(data, "incentives", 0.0),
        gross_rent=_parse_number(data, "gross_rent"),
        yield_rate=_parse_number(data, "yield_rate"),
    )


def parse_subject_from_json(data: dict) -> SubjectProperty:
    """Parse a JSON dictionary into the subject property."""
    _require_object(data, "subject")
    return SubjectProperty(
        address=data.get("address", ""),
        valuation_date=_parse_date(data.get("valuation_date")),
        market_trend=_parse_enum(MarketTrend, data.get("market_trend")),
        land_area=_parse_area(data.get("land_area")),
        living_area=_parse_area(data.get("living_area")),
        bedrooms=_parse_number(data, "bedrooms"),
        bathrooms=_parse_number(data, "bathrooms"),
        car_spaces=_parse_number(data, "car_spaces"),
        year_built=_parse_number(data, "year_built"),
        condition=_parse_enum(Condition, data.get("condition")),
        location=_parse_enum(RelativeRating, data.get("location")),
        position=_parse_enum(RelativeRating, data.get("position")),
        zoning=data.get("zoning"),
        improvements_value=_parse_number(data, "improvements_value"),
        external_improvements=_parse_number(data, "external_improvements"),
        gross_rent=_parse_number(data, "gross_rent"),
    )


def parse_schedule_from_json(data: dict) -> AdjustmentSchedule:
    """
    Parse a JSON dictionary into an AdjustmentSchedule.

    Raises:
        KeyError: if the subject or a comparable price is missing
        ValueError: for invalid values or unknown attribute names
    """
    _require_object(data, "schedule")
    config = Config.load()
    included = data.get("included")
    if included is not None:
        for key in included:
            if Attribute.from_key(key) is None:
                raise ValueError(f"Unknown adjustment attribute: {key!r}")

    return AdjustmentSchedule(
        reference_id=data.get("reference_id", ""),
        subject=parse_subject_from_json(data["subject"]),
        comparables=[parse_property_from_json(c) for c in data.get("comparables", [])],
        report_date=data.get("report_date", ""),
        asset_class=data.get("asset_class") or config.asset_class,
        currency=data.get("currency") or config.currency,
        included=included,
        yield_rate=_parse_number(data, "yield_rate"),
        rate_overrides=_require_object(data.get("rates", {}), "rates"),
    )


# =============================================================================
# Factory Functions
# =============================================================================

def create_sample_schedule() -> AdjustmentSchedule:
    """
    Create a sample schedule for testing PDF generation.
    Uses realistic mock data for demonstration purposes.
    """
    subject = SubjectProperty(
        address="3 St Andrews Drive, Cabarita VIC 3505",
        valuation_date=date(2024, 6, 1),
        market_trend=MarketTrend.STABLE,
        land_area=Area(850),
        living_area=Area(420),
        bedrooms=4,
        bathrooms=3,
        car_spaces=20,
        year_built=2012,
        condition=Condition.GOOD,
        location=RelativeRating.SIMILAR,
        zoning="GRZ1",
        external_improvements=6,
    )

    comparables = [
        PropertyAttributes(
            price=2_500_000,
            transaction_date=date(2024, 2, 14),
            address="17 Fifteenth Street, Mildura VIC 3500",
            land_area=Area(800),
            living_area=Area(400),
            bedrooms=3,
            bathrooms=2,
            car_spaces=15,
            year_built=2008,
            condition=Condition.AVERAGE,
            location=RelativeRating.SIMILAR,
            zoning="GRZ1",
            external_improvements=5,
            esg_adjustment=1.0,
        ),
        PropertyAttributes(
            price=2_780_000,
            transaction_date=date(2023, 11, 3),
            address="42 Riverside Avenue, Mildura VIC 3500",
            land_area=Area(0.1, AreaUnit.HECTARE),
            living_area=Area(450),
            bedrooms=4,
            bathrooms=3,
            car_spaces=18,
            year_built=2015,
            condition=Condition.GOOD,
            location=RelativeRating.SUPERIOR,
            zoning="NRZ1",
            zoning_adjustment=2.5,
            external_improvements=7,
            climate_risk=ClimateRisk.GREATER,
            climate_risk_adjustment=1.5,
            incentives=30_000,
        ),
    ]

    return AdjustmentSchedule(
        reference_id="VAL-20240601-001",
        subject=subject,
        comparables=comparables,
        report_date="2024-06-01",
        asset_class="residential",
        yield_rate=5.0,
    )
