"""
Data models for the Adjustment Engine.

Defines the comparable and subject records captured on the evidence
forms, the per-attribute adjustment result, and the aggregated
valuation outputs.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from numbers import Real
from typing import Dict, List, Optional, Union


# =============================================================================
# Not-applicable sentinel
# =============================================================================

class NotApplicable:
    """
    Marker for a value that cannot be computed from the inputs.

    Distinct from a genuine zero: compare with ``is NOT_APPLICABLE``.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


NOT_APPLICABLE = NotApplicable()

# A rate is either a number or the sentinel
Rate = Union[float, NotApplicable]


def is_applicable(value) -> bool:
    """True when value is a real number rather than the sentinel."""
    return value is not NOT_APPLICABLE


def serialise_rate(value: Rate) -> Optional[float]:
    """NOT_APPLICABLE serialises to None."""
    return None if value is NOT_APPLICABLE else value


# =============================================================================
# Enumerations
# =============================================================================

class AreaUnit(Enum):
    """Unit for land and building areas."""
    SQM = "sqm"
    HECTARE = "hectare"
    ACRE = "acre"

    @classmethod
    def from_string(cls, value: str) -> Optional["AreaUnit"]:
        """Convert string to AreaUnit, case-insensitive."""
        normalised = value.lower().strip()
        aliases = {"m2": "sqm", "ha": "hectare", "hectares": "hectare", "acres": "acre", "ac": "acre"}
        normalised = aliases.get(normalised, normalised)
        for member in cls:
            if member.value == normalised:
                return member
        return None


# Square metres per unit
SQM_PER_UNIT = {
    AreaUnit.SQM: 1.0,
    AreaUnit.HECTARE: 10_000.0,
    AreaUnit.ACRE: 4_046.8564224,
}


class TransactionType(Enum):
    """Whether the comparable price is a sale price or an annual rent."""
    SALE = "sale"
    LEASE = "lease"


class Condition(Enum):
    """Ordinal building condition."""
    POOR = "poor"
    FAIR = "fair"
    AVERAGE = "average"
    GOOD = "good"
    EXCELLENT = "excellent"

    @classmethod
    def from_string(cls, value: str) -> Optional["Condition"]:
        """Convert string to Condition, case-insensitive."""
        normalised = value.lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return None


class RelativeRating(Enum):
    """
    Location/position descriptor relative to a reference.

    Used for both sides of the comparison, so a comparable rated
    superior against a subject rated similar scores one step down.
    """
    INFERIOR = "inferior"
    SIMILAR = "similar"
    SUPERIOR = "superior"

    @classmethod
    def from_string(cls, value: str) -> Optional["RelativeRating"]:
        """Convert string to RelativeRating; 'same' is accepted for similar."""
        normalised = value.lower().strip()
        if normalised == "same":
            normalised = "similar"
        for member in cls:
            if member.value == normalised:
                return member
        return None


class ClimateRisk(Enum):
    """Comparable's climate risk exposure relative to the subject."""
    GREATER = "greater"
    LESS = "less"
    SAME = "same"


class MarketTrend(Enum):
    """Market conditions between the comparable's transaction and valuation."""
    DECLINING = "declining"
    STABLE = "stable"
    IMPROVING = "improving"


class AdjustmentKind(Enum):
    """
    Which figure is primary.

    PERCENTAGE: dollar derived from percentage x base price
    LUMP_SUM: percentage derived from dollar / base price
    """
    PERCENTAGE = "percentage"
    LUMP_SUM = "lumpSum"


class AdjustmentType(Enum):
    """Sign of the value impact."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"

    @classmethod
    def from_amount(cls, amount: float) -> "AdjustmentType":
        if amount > 0:
            return cls.POSITIVE
        if amount < 0:
            return cls.NEGATIVE
        return cls.NEUTRAL


class Attribute(Enum):
    """
    Fixed attribute catalogue.

    Declaration order is the order results are produced in.
    """
    LAND_AREA = "Land Area"
    LIVING_AREA = "Living Area"
    BEDROOMS = "Bedrooms"
    BATHROOMS = "Bathrooms"
    CAR_SPACES = "Car Spaces"
    YEAR_BUILT = "Year Built"
    CONDITION = "Condition"
    LOCATION = "Location"
    POSITION = "Position"
    ZONING = "Zoning"
    EXTERNAL_IMPROVEMENTS = "External Improvements"
    ESG_FACTORS = "ESG Factors"
    CLIMATE_RISK = "Climate Risk"
    MARKET_CONDITIONS = "Market Conditions"

    @classmethod
    def from_key(cls, key: Union[str, "Attribute"]) -> Optional["Attribute"]:
        """Resolve a display label or member name to an Attribute."""
        if isinstance(key, Attribute):
            return key
        if not isinstance(key, str):
            return None
        normalised = key.strip().lower().replace("_", " ")
        for member in cls:
            if member.value.lower() == normalised or member.name.lower().replace("_", " ") == normalised:
                return member
        return None


# =============================================================================
# Property records
# =============================================================================

def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


@dataclass
class Area:
    """An area measurement with its unit."""
    value: float
    unit: AreaUnit = AreaUnit.SQM

    def __post_init__(self):
        if not _is_number(self.value):
            raise ValueError(f"area must be a number, got {self.value!r}")
        if self.value < 0:
            raise ValueError("area must be non-negative")

    @property
    def sqm(self) -> float:
        """Area converted to square metres."""
        return self.value * SQM_PER_UNIT[self.unit]


@dataclass
class PropertyAttributes:
    """
    A comparable sale or lease.

    Every descriptive field is optional. An attribute with no data on
    either side is treated as not applicable and left out of the
    adjustment schedule.
    """
    price: float  # Sale price, or annual rent for leases
    transaction_type: TransactionType = TransactionType.SALE
    transaction_date: Optional[date] = None
    address: str = ""

    # Physical
    land_area: Optional[Area] = None
    living_area: Optional[Area] = None  # Living area (residential) or building area
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    car_spaces: Optional[int] = None
    year_built: Optional[int] = None
    condition: Optional[Condition] = None

    # Locational
    location: Optional[RelativeRating] = None
    position: Optional[RelativeRating] = None
    position_value: Optional[float] = None  # Signed dollar position adjustment
    zoning: Optional[str] = None

    # Improvements
    improvements_value: Optional[float] = None
    external_improvements: Optional[int] = None  # 1-10 rating

    # Caller-judged percentage deltas
    zoning_adjustment: Optional[float] = None
    esg_adjustment: Optional[float] = None
    climate_risk: Optional[ClimateRisk] = None
    climate_risk_adjustment: Optional[float] = None
    market_adjustment: Optional[float] = None

    # Transaction detail
    incentives: float = 0.0
    gross_rent: Optional[float] = None
    yield_rate: Optional[float] = None

    def __post_init__(self):
        # Non-positive prices are rejected at calculation time
        if self.price is not None and not _is_number(self.price):
            raise ValueError(f"price must be a number, got {self.price!r}")
        if not _is_number(self.incentives):
            raise ValueError(f"incentives must be a number, got {self.incentives!r}")
        for name in ("bedrooms", "bathrooms", "car_spaces"):
            count = getattr(self, name)
            if count is not None and count < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.external_improvements is not None and not 1 <= self.external_improvements <= 10:
            raise ValueError("external_improvements must be between 1 and 10")
        if self.incentives < 0:
            raise ValueError("incentives must be non-negative")
        if self.climate_risk is ClimateRisk.SAME and self.climate_risk_adjustment:
            raise ValueError(
                "climate_risk_adjustment must be zero when climate risk is the same "
                f"as the subject, got {self.climate_risk_adjustment!r}"
            )

    @property
    def base_price(self) -> Optional[float]:
        """Price net of incentives; the base every adjustment is measured on."""
        if self.price is None:
            return None
        return self.price - self.incentives


@dataclass
class SubjectProperty:
    """
    The property being valued.

    Same shape as a comparable but without a price, plus the market
    trend used for the time-based adjustment.
    """
    address: str = ""
    valuation_date: Optional[date] = None
    market_trend: Optional[MarketTrend] = None

    land_area: Optional[Area] = None
    living_area: Optional[Area] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    car_spaces: Optional[int] = None
    year_built: Optional[int] = None
    condition: Optional[Condition] = None

    location: Optional[RelativeRating] = None
    position: Optional[RelativeRating] = None
    zoning: Optional[str] = None

    improvements_value: Optional[float] = None
    external_improvements: Optional[int] = None

    gross_rent: Optional[float] = None

    def __post_init__(self):
        for name in ("bedrooms", "bathrooms", "car_spaces"):
            count = getattr(self, name)
            if count is not None and count < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.external_improvements is not None and not 1 <= self.external_improvements <= 10:
            raise ValueError("external_improvements must be between 1 and 10")


# =============================================================================
# Results
# =============================================================================

@dataclass
class AdjustmentResult:
    """One row of the adjustment schedule."""
    attribute: Attribute
    comparable_value: str
    subject_value: str
    kind: AdjustmentKind
    adjustment_type: AdjustmentType
    percentage_adjustment: float
    dollar_adjustment: float
    description: str
    policy_gap: bool = False

    @property
    def key(self) -> str:
        return self.attribute.value

    def to_dict(self) -> dict:
        return {
            "attribute": self.attribute.value,
            "comparable_value": self.comparable_value,
            "subject_value": self.subject_value,
            "kind": self.kind.value,
            "adjustment_type": self.adjustment_type.value,
            "percentage_adjustment": self.percentage_adjustment,
            "dollar_adjustment": self.dollar_adjustment,
            "description": self.description,
            "policy_gap": self.policy_gap,
        }


@dataclass
class AdjustmentTotals:
    """Sum of the included adjustments."""
    total_percentage: float
    total_dollar: float
    included: List[Attribute] = field(default_factory=list)
    excluded: List[Attribute] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_percentage": self.total_percentage,
            "total_dollar": self.total_dollar,
            "included": [a.value for a in self.included],
            "excluded": [a.value for a in self.excluded],
        }


@dataclass
class DerivedRates:
    """
    Unit rates for cross-comparable benchmarking.

    Each field is a number or NOT_APPLICABLE.
    """
    rate_per_sqm: Rate = NOT_APPLICABLE
    land_rate_per_sqm: Rate = NOT_APPLICABLE
    rate_per_bedroom: Rate = NOT_APPLICABLE
    room_rate: Rate = NOT_APPLICABLE
    capitalised_value: Rate = NOT_APPLICABLE
    improvements_rate_per_sqm: Rate = NOT_APPLICABLE
    improved_land_rate_per_sqm: Rate = NOT_APPLICABLE
    improvements_split_assumed: bool = False  # True when the 70/30 default was used

    def to_dict(self) -> dict:
        return {
            "rate_per_sqm": serialise_rate(self.rate_per_sqm),
            "land_rate_per_sqm": serialise_rate(self.land_rate_per_sqm),
            "rate_per_bedroom": serialise_rate(self.rate_per_bedroom),
            "room_rate": serialise_rate(self.room_rate),
            "capitalised_value": serialise_rate(self.capitalised_value),
            "improvements_rate_per_sqm": serialise_rate(self.improvements_rate_per_sqm),
            "improved_land_rate_per_sqm": serialise_rate(self.improved_land_rate_per_sqm),
            "improvements_split_assumed": self.improvements_split_assumed,
        }


@dataclass
class ValuationIndication:
    """
    Complete adjusted-value indication from one comparable.

    Adjusted value is the raw arithmetic result and may be negative
    for pathological inputs.
    """
    address: str
    base_price: float
    adjustments: List[AdjustmentResult]
    totals: AdjustmentTotals
    adjusted_value: float
    rates: DerivedRates

    @property
    def policy_gaps(self) -> List[Attribute]:
        """Attributes that fell back to the default policy."""
        return [r.attribute for r in self.adjustments if r.policy_gap]

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "base_price": self.base_price,
            "adjustments": [r.to_dict() for r in self.adjustments],
            "totals": self.totals.to_dict(),
            "adjusted_value": self.adjusted_value,
            "rates": self.rates.to_dict(),
            "policy_gaps": [a.value for a in self.policy_gaps],
        }


@dataclass
class ReconciliationSummary:
    """Spread of adjusted values across several comparables."""
    count: int
    median: Rate
    mean: Rate
    low: Rate
    high: Rate

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {
            "count": self.count,
            "median": serialise_rate(self.median),
            "mean": serialise_rate(self.mean),
            "low": serialise_rate(self.low),
            "high": serialise_rate(self.high),
        }
