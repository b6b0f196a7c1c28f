"""
Adjustment Calculator for the Adjustment Engine

Compares one comparable with the subject property, attribute by
attribute, and produces the adjustment schedule:
- Area attributes: sqm difference x $/sqm
- Count attributes: lump sums, car spaces on a tiered rate
- Age: %/year, capped
- Condition / Location / Position: ordinal steps x %/step
- Zoning / ESG / Climate Risk / Market Conditions: caller-judged deltas
- External Improvements: rating points x %/point

Attributes lacking data on either side are omitted, never raised.
"""

from datetime import date
from typing import Callable, Dict, List, Optional

from utils.formatting import format_currency, format_number, format_percent
from utils.logging import get_logger

from .exceptions import InvalidInputError
from .models import (
    AdjustmentKind,
    AdjustmentResult,
    AdjustmentType,
    Area,
    Attribute,
    ClimateRisk,
    Condition,
    MarketTrend,
    PropertyAttributes,
    RelativeRating,
    SubjectProperty,
)
from .policy import DEFAULT_WEIGHTS, AdjustmentWeights


logger = get_logger(__name__)


# =============================================================================
# Ordinal Score Tables
# =============================================================================

CONDITION_SCORES: Dict[Condition, int] = {
    Condition.POOR: 1,
    Condition.FAIR: 2,
    Condition.AVERAGE: 3,
    Condition.GOOD: 4,
    Condition.EXCELLENT: 5,
}

RELATIVE_SCORES: Dict[RelativeRating, int] = {
    RelativeRating.INFERIOR: -1,
    RelativeRating.SIMILAR: 0,
    RelativeRating.SUPERIOR: 1,
}

MARKET_TREND_RATES = {
    MarketTrend.DECLINING: "declining_percent_per_month",
    MarketTrend.STABLE: "stable_percent_per_month",
    MarketTrend.IMPROVING: "improving_percent_per_month",
}

NOT_RECORDED = "-"

# Subject column for deltas judged relative to the subject
SUBJECT_REFERENCE = "Reference (0%)"


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end (negative if end is earlier)."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and end.day < start.day:
        months -= 1
    elif months < 0 and end.day > start.day:
        months += 1
    return months


def tiered_car_space_amount(difference: int, weights: AdjustmentWeights):
    """
    Dollar value of a car-space difference on the tiered rate.

    The first tier of spaces is valued at the full rate, the next tier at
    a reduced rate and any remainder at a further reduced rate.

    Returns:
        Tuple of (signed dollar amount, policy_gap)
    """
    first_rate, gap1 = weights.rate(Attribute.CAR_SPACES, "first_tier_rate")
    first_spaces, gap2 = weights.rate(Attribute.CAR_SPACES, "first_tier_spaces")
    second_rate, gap3 = weights.rate(Attribute.CAR_SPACES, "second_tier_rate")
    second_spaces, gap4 = weights.rate(Attribute.CAR_SPACES, "second_tier_spaces")
    third_rate, gap5 = weights.rate(Attribute.CAR_SPACES, "third_tier_rate")

    spaces = abs(difference)
    first = min(spaces, int(first_spaces))
    second = min(max(spaces - int(first_spaces), 0), int(second_spaces))
    third = max(spaces - int(first_spaces) - int(second_spaces), 0)

    amount = first * first_rate + second * second_rate + third * third_rate
    if difference < 0:
        amount = -amount
    return amount, any((gap1, gap2, gap3, gap4, gap5))


class AdjustmentCalculator:
    """
    Produces the adjustment schedule for one comparable.

    Pure: holds only the weighting policy, which it never mutates.
    """

    def __init__(self, weights: Optional[AdjustmentWeights] = None):
        """
        Initialize calculator.

        Args:
            weights: Weighting policy (default: DEFAULT_WEIGHTS)
        """
        self._weights = weights or DEFAULT_WEIGHTS
        self._steps: Dict[Attribute, Callable] = {
            Attribute.LAND_AREA: self._land_area,
            Attribute.LIVING_AREA: self._living_area,
            Attribute.BEDROOMS: self._bedrooms,
            Attribute.BATHROOMS: self._bathrooms,
            Attribute.CAR_SPACES: self._car_spaces,
            Attribute.YEAR_BUILT: self._year_built,
            Attribute.CONDITION: self._condition,
            Attribute.LOCATION: self._location,
            Attribute.POSITION: self._position,
            Attribute.ZONING: self._zoning,
            Attribute.EXTERNAL_IMPROVEMENTS: self._external_improvements,
            Attribute.ESG_FACTORS: self._esg,
            Attribute.CLIMATE_RISK: self._climate_risk,
            Attribute.MARKET_CONDITIONS: self._market_conditions,
        }

    @property
    def weights(self) -> AdjustmentWeights:
        return self._weights

    def calculate(
        self,
        comparable: PropertyAttributes,
        subject: SubjectProperty,
    ) -> List[AdjustmentResult]:
        """
        Calculate every applicable adjustment.

        Args:
            comparable: The comparable sale or lease
            subject: The property being valued

        Returns:
            AdjustmentResult list in catalogue order

        Raises:
            InvalidInputError: if the comparable's base price is missing,
                zero or negative
        """
        base_price = comparable.base_price
        if base_price is None or base_price <= 0:
            raise InvalidInputError(
                f"Comparable base price must be positive, got {base_price!r}",
                base_price=base_price,
            )

        results = []
        for attribute in Attribute:
            if not self._weights.applies(attribute):
                continue
            result = self._steps[attribute](comparable, subject, base_price)
            if result is None:
                logger.debug("Skipping %s: not applicable", attribute.value)
                continue
            results.append(result)
        return results

    # =========================================================================
    # Result builders
    # =========================================================================

    def _percentage_result(
        self,
        attribute: Attribute,
        base_price: float,
        percentage: float,
        comparable_value: str,
        subject_value: str,
        description: str,
        policy_gap: bool = False,
    ) -> AdjustmentResult:
        percentage = percentage + 0.0  # normalise -0.0
        dollar = base_price * percentage / 100 + 0.0
        return AdjustmentResult(
            attribute=attribute,
            comparable_value=comparable_value,
            subject_value=subject_value,
            kind=AdjustmentKind.PERCENTAGE,
            adjustment_type=AdjustmentType.from_amount(percentage),
            percentage_adjustment=percentage,
            dollar_adjustment=dollar,
            description=description,
            policy_gap=policy_gap,
        )

    def _lump_sum_result(
        self,
        attribute: Attribute,
        base_price: float,
        dollar: float,
        comparable_value: str,
        subject_value: str,
        description: str,
        policy_gap: bool = False,
    ) -> AdjustmentResult:
        dollar = dollar + 0.0
        percentage = dollar * 100 / base_price + 0.0
        return AdjustmentResult(
            attribute=attribute,
            comparable_value=comparable_value,
            subject_value=subject_value,
            kind=AdjustmentKind.LUMP_SUM,
            adjustment_type=AdjustmentType.from_amount(dollar),
            percentage_adjustment=percentage,
            dollar_adjustment=dollar,
            description=description,
            policy_gap=policy_gap,
        )

    # =========================================================================
    # Area attributes
    # =========================================================================

    def _area(
        self,
        attribute: Attribute,
        label: str,
        comparable_area: Optional[Area],
        subject_area: Optional[Area],
        base_price: float,
    ) -> Optional[AdjustmentResult]:
        if comparable_area is None or subject_area is None:
            return None

        rate, gap = self._weights.rate(attribute, "rate_per_sqm")
        # Unit conversion leaves float noise; equal areas must net to zero
        difference = round(subject_area.sqm - comparable_area.sqm, 6) + 0.0
        dollar = difference * rate

        return self._lump_sum_result(
            attribute,
            base_price,
            dollar,
            comparable_value=_display_area(comparable_area),
            subject_value=_display_area(subject_area),
            description=(
                f"Subject {label} {format_number(subject_area.sqm)} sqm vs comparable "
                f"{format_number(comparable_area.sqm)} sqm: "
                f"{format_number(difference)} sqm at {format_currency(rate)}/sqm"
            ),
            policy_gap=gap,
        )

    def _land_area(self, comparable, subject, base_price):
        return self._area(
            Attribute.LAND_AREA, "land area",
            comparable.land_area, subject.land_area, base_price,
        )

    def _living_area(self, comparable, subject, base_price):
        return self._area(
            Attribute.LIVING_AREA, "living/building area",
            comparable.living_area, subject.living_area, base_price,
        )

    # =========================================================================
    # Count attributes
    # =========================================================================

    def _count(
        self,
        attribute: Attribute,
        label: str,
        comparable_count: Optional[int],
        subject_count: Optional[int],
        base_price: float,
    ) -> Optional[AdjustmentResult]:
        if comparable_count is None or subject_count is None:
            return None

        rate, gap = self._weights.rate(attribute, "rate_per_unit")
        difference = subject_count - comparable_count

        return self._lump_sum_result(
            attribute,
            base_price,
            difference * rate,
            comparable_value=str(comparable_count),
            subject_value=str(subject_count),
            description=(
                f"Subject {subject_count} {label} vs comparable {comparable_count}: "
                f"{difference:+d} at {format_currency(rate)} each"
            ),
            policy_gap=gap,
        )

    def _bedrooms(self, comparable, subject, base_price):
        return self._count(
            Attribute.BEDROOMS, "bedrooms",
            comparable.bedrooms, subject.bedrooms, base_price,
        )

    def _bathrooms(self, comparable, subject, base_price):
        return self._count(
            Attribute.BATHROOMS, "bathrooms",
            comparable.bathrooms, subject.bathrooms, base_price,
        )

    def _car_spaces(self, comparable, subject, base_price):
        if comparable.car_spaces is None or subject.car_spaces is None:
            return None

        difference = subject.car_spaces - comparable.car_spaces
        dollar, gap = tiered_car_space_amount(difference, self._weights)

        return self._lump_sum_result(
            Attribute.CAR_SPACES,
            base_price,
            dollar,
            comparable_value=str(comparable.car_spaces),
            subject_value=str(subject.car_spaces),
            description=(
                f"Subject {subject.car_spaces} car spaces vs comparable "
                f"{comparable.car_spaces}: {difference:+d} on tiered rates, "
                f"{format_currency(dollar, signed=True)} lump sum"
            ),
            policy_gap=gap,
        )

    # =========================================================================
    # Age
    # =========================================================================

    def _year_built(self, comparable, subject, base_price):
        if comparable.year_built is None or subject.year_built is None:
            return None

        rate, gap1 = self._weights.rate(Attribute.YEAR_BUILT, "percent_per_year")
        cap, gap2 = self._weights.rate(Attribute.YEAR_BUILT, "max_percent")

        years = subject.year_built - comparable.year_built
        raw = years * rate
        percentage = max(-cap, min(cap, raw))

        description = (
            f"Subject built {subject.year_built} vs comparable {comparable.year_built}: "
            f"{years:+d} years at {format_percent(rate)}/year"
        )
        if percentage != raw:
            description += f", capped at {format_percent(cap)}"

        return self._percentage_result(
            Attribute.YEAR_BUILT,
            base_price,
            percentage,
            comparable_value=str(comparable.year_built),
            subject_value=str(subject.year_built),
            description=description,
            policy_gap=gap1 or gap2,
        )

    # =========================================================================
    # Ordinal attributes
    # =========================================================================

    def _ordinal(
        self,
        attribute: Attribute,
        label: str,
        scores: dict,
        comparable_value,
        subject_value,
        base_price: float,
    ) -> Optional[AdjustmentResult]:
        if comparable_value is None or subject_value is None:
            return None

        step, gap = self._weights.rate(attribute, "percent_per_step")
        steps = scores[subject_value] - scores[comparable_value]

        return self._percentage_result(
            attribute,
            base_price,
            steps * step,
            comparable_value=comparable_value.value,
            subject_value=subject_value.value,
            description=(
                f"Subject {label} {subject_value.value} vs comparable "
                f"{comparable_value.value}: {steps:+d} steps at {format_percent(step)}/step"
            ),
            policy_gap=gap,
        )

    def _condition(self, comparable, subject, base_price):
        return self._ordinal(
            Attribute.CONDITION, "condition", CONDITION_SCORES,
            comparable.condition, subject.condition, base_price,
        )

    def _location(self, comparable, subject, base_price):
        return self._ordinal(
            Attribute.LOCATION, "location", RELATIVE_SCORES,
            comparable.location, subject.location, base_price,
        )

    def _position(self, comparable, subject, base_price):
        # A caller-valued position takes precedence over the ordinal table
        if comparable.position_value is not None:
            return self._lump_sum_result(
                Attribute.POSITION,
                base_price,
                comparable.position_value,
                comparable_value=_display_enum(comparable.position),
                subject_value=_display_enum(subject.position),
                description=(
                    f"Position assessed at "
                    f"{format_currency(comparable.position_value, signed=True)} "
                    f"relative to the subject"
                ),
            )

        return self._ordinal(
            Attribute.POSITION, "position", RELATIVE_SCORES,
            comparable.position, subject.position, base_price,
        )

    # =========================================================================
    # Caller-judged deltas
    # =========================================================================

    def _zoning(self, comparable, subject, base_price):
        comparable_zone = (comparable.zoning or "").strip()
        subject_zone = (subject.zoning or "").strip()
        both_recorded = bool(comparable_zone) and bool(subject_zone)

        if both_recorded and comparable_zone.lower() == subject_zone.lower():
            percentage = 0.0
            description = f"Both zoned {subject_zone}: no adjustment"
        elif comparable.zoning_adjustment is not None:
            percentage = comparable.zoning_adjustment
            description = (
                f"Subject zoned {subject_zone or 'unrecorded'} vs comparable "
                f"{comparable_zone or 'unrecorded'}: assessed at "
                f"{format_percent(percentage, signed=True)}"
            )
        else:
            return None

        return self._percentage_result(
            Attribute.ZONING,
            base_price,
            percentage,
            comparable_value=comparable_zone or NOT_RECORDED,
            subject_value=subject_zone or NOT_RECORDED,
            description=description,
        )

    def _external_improvements(self, comparable, subject, base_price):
        if comparable.external_improvements is None or subject.external_improvements is None:
            return None

        rate, gap = self._weights.rate(Attribute.EXTERNAL_IMPROVEMENTS, "percent_per_point")
        points = subject.external_improvements - comparable.external_improvements

        return self._percentage_result(
            Attribute.EXTERNAL_IMPROVEMENTS,
            base_price,
            points * rate,
            comparable_value=f"{comparable.external_improvements}/10",
            subject_value=f"{subject.external_improvements}/10",
            description=(
                f"Subject external improvements rated {subject.external_improvements}/10 "
                f"vs comparable {comparable.external_improvements}/10: "
                f"{points:+d} points at {format_percent(rate)}/point"
            ),
            policy_gap=gap,
        )

    def _esg(self, comparable, subject, base_price):
        if comparable.esg_adjustment is None:
            return None

        return self._percentage_result(
            Attribute.ESG_FACTORS,
            base_price,
            comparable.esg_adjustment,
            comparable_value=format_percent(comparable.esg_adjustment, signed=True),
            subject_value=SUBJECT_REFERENCE,
            description=(
                f"Subject ESG factors taken as the 0% reference; comparable assessed "
                f"at {format_percent(comparable.esg_adjustment, signed=True)}"
            ),
        )

    def _climate_risk(self, comparable, subject, base_price):
        if comparable.climate_risk is ClimateRisk.SAME:
            # Contradictory non-zero deltas are rejected on the record
            percentage = 0.0
            exposure = "the same as the subject"
        elif comparable.climate_risk_adjustment is not None:
            percentage = comparable.climate_risk_adjustment
            exposure = (
                f"{comparable.climate_risk.value} than the subject"
                if comparable.climate_risk is not None
                else "relative to the subject"
            )
        else:
            return None

        return self._percentage_result(
            Attribute.CLIMATE_RISK,
            base_price,
            percentage,
            comparable_value=_display_enum(comparable.climate_risk),
            subject_value=SUBJECT_REFERENCE,
            description=(
                f"Subject climate risk taken as the 0% reference; comparable exposure "
                f"{exposure}, assessed at {format_percent(percentage, signed=True)}"
            ),
        )

    def _market_conditions(self, comparable, subject, base_price):
        comparable_date = (
            comparable.transaction_date.isoformat()
            if comparable.transaction_date else NOT_RECORDED
        )
        subject_date = (
            subject.valuation_date.isoformat()
            if subject.valuation_date else NOT_RECORDED
        )

        if comparable.market_adjustment is not None:
            return self._percentage_result(
                Attribute.MARKET_CONDITIONS,
                base_price,
                comparable.market_adjustment,
                comparable_value=comparable_date,
                subject_value=subject_date,
                description=(
                    f"Market movement since transaction assessed at "
                    f"{format_percent(comparable.market_adjustment, signed=True)}"
                ),
            )

        if (
            subject.market_trend is None
            or subject.valuation_date is None
            or comparable.transaction_date is None
        ):
            return None

        rate, gap1 = self._weights.rate(
            Attribute.MARKET_CONDITIONS, MARKET_TREND_RATES[subject.market_trend]
        )
        cap, gap2 = self._weights.rate(Attribute.MARKET_CONDITIONS, "max_percent")

        months = months_between(comparable.transaction_date, subject.valuation_date)
        raw = months * rate
        percentage = max(-cap, min(cap, raw))

        description = (
            f"{months} months from {comparable_date} to {subject_date} in a "
            f"{subject.market_trend.value} market at {format_percent(rate)}/month"
        )
        if percentage != raw:
            description += f", capped at {format_percent(cap)}"

        return self._percentage_result(
            Attribute.MARKET_CONDITIONS,
            base_price,
            percentage,
            comparable_value=comparable_date,
            subject_value=subject_date,
            description=description,
            policy_gap=gap1 or gap2,
        )


def _display_area(area: Area) -> str:
    units = {"sqm": "sqm", "hectare": "ha", "acre": "ac"}
    return f"{format_number(area.value)} {units[area.unit.value]}"


def _display_enum(value) -> str:
    return value.value if value is not None else NOT_RECORDED


def calculate_adjustments(
    comparable: PropertyAttributes,
    subject: SubjectProperty,
    weights: Optional[AdjustmentWeights] = None,
) -> List[AdjustmentResult]:
    """
    Calculate the adjustment schedule for a comparable.

    Args:
        comparable: The comparable sale or lease
        subject: The property being valued
        weights: Weighting policy (default: DEFAULT_WEIGHTS)

    Returns:
        AdjustmentResult list in catalogue order

    Raises:
        InvalidInputError: if the comparable's base price is not positive
    """
    return AdjustmentCalculator(weights).calculate(comparable, subject)
