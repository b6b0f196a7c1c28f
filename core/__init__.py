"""
Valuation Adjuster - Core Business Logic

This module provides the comparable adjustment pipeline:
1. Adjustment Calculator (per-attribute schedule)
2. Aggregator (included totals, adjusted value)
3. Rate Deriver (per sqm, per bedroom, per room, capitalised value)
4. Reconciliation (spread of indications across comparables)
"""

from .adjustment_engine import (
    NOT_APPLICABLE,
    AdjustmentResult,
    AdjustmentTotals,
    AdjustmentWeights,
    Attribute,
    ComparableAdjustmentEngine,
    DerivedRates,
    InvalidInputError,
    PropertyAttributes,
    SubjectProperty,
    ValuationIndication,
    aggregate,
    adjusted_value,
    calculate_adjustments,
    derive_rates,
    get_policy,
)

__all__ = [
    "NOT_APPLICABLE",
    "AdjustmentResult",
    "AdjustmentTotals",
    "AdjustmentWeights",
    "Attribute",
    "ComparableAdjustmentEngine",
    "DerivedRates",
    "InvalidInputError",
    "PropertyAttributes",
    "SubjectProperty",
    "ValuationIndication",
    "aggregate",
    "adjusted_value",
    "calculate_adjustments",
    "derive_rates",
    "get_policy",
]
