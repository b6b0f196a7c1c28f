"""
Aggregator and Rate Deriver for the Adjustment Engine

Implements:
- Total adjustment over the caller's included attributes (simple sum)
- Adjusted value indication
- Unit rates (per sqm, per bedroom, per room, capitalised value)
- Reconciliation of indications across comparables

Any division by zero or missing denominator yields NOT_APPLICABLE.
"""

import statistics
from typing import Iterable, List, Optional, Sequence, Set, Union

from .exceptions import InvalidInputError, UnknownAttributeError
from .models import (
    NOT_APPLICABLE,
    NotApplicable,
    AdjustmentResult,
    AdjustmentTotals,
    Area,
    Attribute,
    DerivedRates,
    PropertyAttributes,
    Rate,
    ReconciliationSummary,
    SubjectProperty,
    ValuationIndication,
    is_applicable,
)
from .policy import DEFAULT_IMPROVEMENTS_SHARE


# Minimum room count assumed for living areas when rooms are not recorded
MIN_LIVING_ROOMS = 2

AttributeKey = Union[Attribute, str]


def resolve_included(included: Optional[Iterable[AttributeKey]]) -> Optional[Set[Attribute]]:
    """
    Resolve a caller's include set to catalogue attributes.

    Raises:
        UnknownAttributeError: for a key outside the catalogue
    """
    if included is None:
        return None
    resolved = set()
    for key in included:
        attribute = Attribute.from_key(key)
        if attribute is None:
            raise UnknownAttributeError(key)
        resolved.add(attribute)
    return resolved


# =============================================================================
# Totals
# =============================================================================

def aggregate(
    results: Sequence[AdjustmentResult],
    comparable_base_price: float,
    included: Optional[Iterable[AttributeKey]] = None,
) -> AdjustmentTotals:
    """
    Sum the included adjustments.

    Percentages are summed linearly, not compounded.

    Args:
        results: Adjustment schedule from the calculator
        comparable_base_price: Base price the schedule was computed on
        included: Attributes to include (default: all). Excluded results
            contribute nothing but are reported in ``excluded``.

    Returns:
        AdjustmentTotals

    Raises:
        InvalidInputError: if the base price is not positive
        UnknownAttributeError: if ``included`` names an unknown attribute
    """
    if comparable_base_price is None or comparable_base_price <= 0:
        raise InvalidInputError(
            f"Comparable base price must be positive, got {comparable_base_price!r}",
            base_price=comparable_base_price,
        )

    include_set = resolve_included(included)

    total_percentage = 0.0
    total_dollar = 0.0
    included_attributes: List[Attribute] = []
    excluded_attributes: List[Attribute] = []

    for result in results:
        if include_set is not None and result.attribute not in include_set:
            excluded_attributes.append(result.attribute)
            continue
        total_percentage += result.percentage_adjustment
        total_dollar += result.dollar_adjustment
        included_attributes.append(result.attribute)

    return AdjustmentTotals(
        total_percentage=total_percentage,
        total_dollar=total_dollar,
        included=included_attributes,
        excluded=excluded_attributes,
    )


def adjusted_value(comparable_base_price: float, total_dollar: float) -> float:
    """
    Adjusted value indication.

    Not clamped: a pathological schedule can drive it negative.
    """
    return comparable_base_price + total_dollar


# =============================================================================
# Unit Rates
# =============================================================================

def rate_per_area(price: float, area: Optional[Union[Area, float]]) -> Rate:
    """Price per square metre; area may be an Area or a sqm figure."""
    if price is None or area is None:
        return NOT_APPLICABLE
    sqm = area.sqm if isinstance(area, Area) else area
    if sqm <= 0:
        return NOT_APPLICABLE
    return price / sqm


def rate_per_bedroom(price: float, bedrooms: Optional[int]) -> Rate:
    """Price per bedroom."""
    if price is None or not bedrooms or bedrooms <= 0:
        return NOT_APPLICABLE
    return price / bedrooms


def room_rate(price: float, bedrooms: Optional[int], bathrooms: Optional[int] = None) -> Rate:
    """
    Price per room.

    Total rooms is a proxy when no room count is recorded:
    bedrooms + max(2, bathrooms x 2).
    """
    if price is None or bedrooms is None:
        return NOT_APPLICABLE
    total_rooms = bedrooms + max(MIN_LIVING_ROOMS, (bathrooms or 0) * 2)
    if total_rooms <= 0:
        return NOT_APPLICABLE
    return price / total_rooms


def capitalised_value(price: float, yield_rate: Optional[float]) -> Rate:
    """Capitalised income: price x yield / 100."""
    if price is None or yield_rate is None or yield_rate <= 0:
        return NOT_APPLICABLE
    return price * yield_rate / 100


def improvements_split(
    price: float,
    improvements_value: Optional[float] = None,
):
    """
    Split a price into improvements and land components.

    Uses the recorded improvements value when present, otherwise the
    default 70/30 improvements/land assumption.

    Returns:
        Tuple of (improvements value, land value, assumed)
    """
    if improvements_value is not None:
        return improvements_value, price - improvements_value, False
    improvements = price * DEFAULT_IMPROVEMENTS_SHARE
    return improvements, price - improvements, True


def derive_rates(
    comparable: PropertyAttributes,
    price: Optional[float] = None,
    yield_rate: Optional[float] = None,
) -> DerivedRates:
    """
    Derive every unit rate for a comparable.

    Args:
        comparable: The comparable record
        price: Price to derive from (default: comparable's base price)
        yield_rate: Yield for capitalised value (default: comparable's)

    Returns:
        DerivedRates with NOT_APPLICABLE for rates that cannot be computed
    """
    if price is None:
        price = comparable.base_price
    if yield_rate is None:
        yield_rate = comparable.yield_rate

    rates = DerivedRates(
        rate_per_sqm=rate_per_area(price, comparable.living_area),
        land_rate_per_sqm=rate_per_area(price, comparable.land_area),
        rate_per_bedroom=rate_per_bedroom(price, comparable.bedrooms),
        room_rate=room_rate(price, comparable.bedrooms, comparable.bathrooms),
        capitalised_value=capitalised_value(price, yield_rate),
    )

    if price is not None and comparable.living_area is not None:
        improvements, land, assumed = improvements_split(price, comparable.improvements_value)
        rates.improvements_rate_per_sqm = rate_per_area(improvements, comparable.living_area)
        # Land component falls back to living area when no site area is recorded
        rates.improved_land_rate_per_sqm = rate_per_area(
            land, comparable.land_area or comparable.living_area
        )
        rates.improvements_split_assumed = assumed

    return rates


def should_have_firmer_yield(
    comparable: PropertyAttributes,
    subject: SubjectProperty,
) -> Union[bool, NotApplicable]:
    """
    Whether the comparable should show a firmer (lower) yield.

    True when the comparable's gross rent per sqm of building area
    exceeds the subject's.
    """
    comparable_rate = rate_per_area(comparable.gross_rent, comparable.living_area)
    subject_rate = rate_per_area(subject.gross_rent, subject.living_area)
    if not is_applicable(comparable_rate) or not is_applicable(subject_rate):
        return NOT_APPLICABLE
    return comparable_rate > subject_rate


# =============================================================================
# Reconciliation
# =============================================================================

def reconcile(indications: Iterable[ValuationIndication]) -> ReconciliationSummary:
    """
    Summarise adjusted values across comparables.

    The median is the headline figure. No weighting or selection is
    applied.
    """
    values = [i.adjusted_value for i in indications]
    if not values:
        return ReconciliationSummary(
            count=0,
            median=NOT_APPLICABLE,
            mean=NOT_APPLICABLE,
            low=NOT_APPLICABLE,
            high=NOT_APPLICABLE,
        )
    return ReconciliationSummary(
        count=len(values),
        median=float(statistics.median(values)),
        mean=float(statistics.fmean(values)),
        low=float(min(values)),
        high=float(max(values)),
    )
