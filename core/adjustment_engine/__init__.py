"""
Adjustment Engine v1.0

Turns a comparable sale or lease and a subject property into an
adjustment schedule, a total adjustment, an adjusted value indication
and unit rates. Pure computation: no I/O, no shared state.
"""

from .models import (
    NOT_APPLICABLE,
    NotApplicable,
    AdjustmentKind,
    AdjustmentResult,
    AdjustmentTotals,
    AdjustmentType,
    Area,
    AreaUnit,
    Attribute,
    ClimateRisk,
    Condition,
    DerivedRates,
    MarketTrend,
    PropertyAttributes,
    ReconciliationSummary,
    RelativeRating,
    SubjectProperty,
    TransactionType,
    ValuationIndication,
    is_applicable,
)
from .exceptions import (
    AdjustmentEngineError,
    InvalidInputError,
    PolicyError,
    UnknownAttributeError,
)
from .policy import (
    AdjustmentWeights,
    DEFAULT_RATES,
    DEFAULT_WEIGHTS,
    POLICY_PRESETS,
    get_policy,
)
from .calculator import AdjustmentCalculator, calculate_adjustments
from .aggregation import (
    adjusted_value,
    aggregate,
    capitalised_value,
    derive_rates,
    rate_per_area,
    rate_per_bedroom,
    reconcile,
    room_rate,
    should_have_firmer_yield,
)
from .engine import ComparableAdjustmentEngine

__all__ = [
    # Models
    "NOT_APPLICABLE",
    "NotApplicable",
    "AdjustmentKind",
    "AdjustmentResult",
    "AdjustmentTotals",
    "AdjustmentType",
    "Area",
    "AreaUnit",
    "Attribute",
    "ClimateRisk",
    "Condition",
    "DerivedRates",
    "MarketTrend",
    "PropertyAttributes",
    "ReconciliationSummary",
    "RelativeRating",
    "SubjectProperty",
    "TransactionType",
    "ValuationIndication",
    "is_applicable",
    # Errors
    "AdjustmentEngineError",
    "InvalidInputError",
    "PolicyError",
    "UnknownAttributeError",
    # Policy
    "AdjustmentWeights",
    "DEFAULT_RATES",
    "DEFAULT_WEIGHTS",
    "POLICY_PRESETS",
    "get_policy",
    # Calculator
    "AdjustmentCalculator",
    "calculate_adjustments",
    # Aggregator / rates
    "adjusted_value",
    "aggregate",
    "capitalised_value",
    "derive_rates",
    "rate_per_area",
    "rate_per_bedroom",
    "reconcile",
    "room_rate",
    "should_have_firmer_yield",
    # Engine
    "ComparableAdjustmentEngine",
]

__version__ = "1.0"
