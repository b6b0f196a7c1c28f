"""
Tests for the Aggregator and Rate Deriver

Tests covering:
- Adjusted value matches base price x (1 + total %) to the cent
- Excluding an attribute removes exactly its contribution
- Division guards return NOT_APPLICABLE, never inf/NaN
- Room rate proxy and capitalised value
- Improvements/land split, recorded or assumed
- Firmer yield comparison
- Reconciliation across comparables
"""

import math
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.adjustment_engine import (
    NOT_APPLICABLE,
    Area,
    Attribute,
    Condition,
    InvalidInputError,
    PropertyAttributes,
    SubjectProperty,
    UnknownAttributeError,
    adjusted_value,
    aggregate,
    calculate_adjustments,
    capitalised_value,
    derive_rates,
    is_applicable,
    rate_per_area,
    rate_per_bedroom,
    room_rate,
    should_have_firmer_yield,
)
from core.adjustment_engine.aggregation import improvements_split


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def comparable():
    return PropertyAttributes(
        price=2_500_000,
        land_area=Area(800),
        living_area=Area(400),
        bedrooms=3,
        bathrooms=2,
        car_spaces=15,
        year_built=2008,
        condition=Condition.AVERAGE,
        esg_adjustment=1.0,
    )


@pytest.fixture
def subject():
    return SubjectProperty(
        land_area=Area(850),
        living_area=Area(420),
        bedrooms=4,
        bathrooms=3,
        car_spaces=20,
        year_built=2012,
        condition=Condition.GOOD,
    )


@pytest.fixture
def results(comparable, subject):
    return calculate_adjustments(comparable, subject)


# =============================================================================
# Test: Totals
# =============================================================================

class TestAggregate:

    def test_sums_all_by_default(self, results):
        totals = aggregate(results, 2_500_000)

        assert totals.total_dollar == pytest.approx(sum(r.dollar_adjustment for r in results))
        assert totals.total_percentage == pytest.approx(
            sum(r.percentage_adjustment for r in results)
        )
        assert totals.excluded == []
        assert totals.included == [r.attribute for r in results]

    def test_adjusted_value_equivalence(self, results):
        """Adjusted value equals base x (1 + total%/100) to within a cent."""
        base = 2_500_000
        totals = aggregate(results, base)
        value = adjusted_value(base, totals.total_dollar)

        assert value == pytest.approx(base * (1 + totals.total_percentage / 100), abs=0.01)

    def test_known_total(self, results):
        """
        Land +22,500; living +44,000; bedroom +15,000; bathroom +12,000;
        cars +8,500; age 3.2% = +80,000; condition 5% = +125,000; ESG 1% = +25,000.
        """
        totals = aggregate(results, 2_500_000)

        assert totals.total_dollar == pytest.approx(332_000)
        assert adjusted_value(2_500_000, totals.total_dollar) == pytest.approx(2_832_000)

    def test_exclusion_removes_exactly_its_contribution(self, results):
        all_keys = [r.attribute for r in results]
        full = aggregate(results, 2_500_000)
        without_condition = aggregate(
            results,
            2_500_000,
            included=[a for a in all_keys if a != Attribute.CONDITION],
        )

        condition = next(r for r in results if r.attribute == Attribute.CONDITION)
        assert full.total_dollar - without_condition.total_dollar == pytest.approx(
            condition.dollar_adjustment
        )
        assert full.total_percentage - without_condition.total_percentage == pytest.approx(
            condition.percentage_adjustment
        )
        assert without_condition.excluded == [Attribute.CONDITION]

    def test_exclusion_leaves_results_untouched(self, results):
        snapshot = [r.to_dict() for r in results]

        aggregate(results, 2_500_000, included=["Land Area"])

        assert [r.to_dict() for r in results] == snapshot

    def test_included_accepts_labels_and_names(self, results):
        by_label = aggregate(results, 2_500_000, included=["Land Area", "bedrooms"])
        by_member = aggregate(
            results, 2_500_000, included=[Attribute.LAND_AREA, Attribute.BEDROOMS]
        )

        assert by_label == by_member
        assert by_label.total_dollar == pytest.approx(37_500)

    def test_empty_include_set(self, results):
        totals = aggregate(results, 2_500_000, included=[])

        assert totals.total_dollar == 0.0
        assert totals.total_percentage == 0.0
        assert len(totals.excluded) == len(results)

    def test_unknown_attribute_raises(self, results):
        with pytest.raises(UnknownAttributeError) as exc_info:
            aggregate(results, 2_500_000, included=["Swimming Pool"])

        assert "Swimming Pool" in str(exc_info.value)

    @pytest.mark.parametrize("key", [1, None, 3.5])
    def test_non_string_attribute_raises(self, results, key):
        with pytest.raises(UnknownAttributeError):
            aggregate(results, 2_500_000, included=["Land Area", key])

    def test_zero_base_price_raises(self, results):
        with pytest.raises(InvalidInputError):
            aggregate(results, 0)

    def test_adjusted_value_not_clamped(self):
        assert adjusted_value(100_000, -250_000) == -150_000


# =============================================================================
# Test: Unit Rates
# =============================================================================

class TestUnitRates:

    def test_rate_per_area(self):
        assert rate_per_area(2_500_000, Area(400)) == pytest.approx(6_250)
        assert rate_per_area(2_500_000, 400) == pytest.approx(6_250)

    @pytest.mark.parametrize("area", [None, 0, Area(0)])
    def test_rate_per_area_guard(self, area):
        rate = rate_per_area(2_500_000, area)

        assert rate is NOT_APPLICABLE
        assert not is_applicable(rate)

    def test_rate_per_bedroom(self):
        assert rate_per_bedroom(2_400_000, 4) == pytest.approx(600_000)
        assert rate_per_bedroom(2_400_000, 0) is NOT_APPLICABLE
        assert rate_per_bedroom(2_400_000, None) is NOT_APPLICABLE

    def test_room_rate_proxy(self):
        """3 bedrooms + max(2, 2 x 2) = 7 rooms."""
        assert room_rate(700_000, 3, 2) == pytest.approx(100_000)

    def test_room_rate_minimum_living_rooms(self):
        """Without bathrooms the proxy still counts two living rooms."""
        assert room_rate(500_000, 3) == pytest.approx(100_000)
        assert room_rate(500_000, 0, 0) == pytest.approx(250_000)

    def test_room_rate_missing_bedrooms(self):
        assert room_rate(500_000, None, 2) is NOT_APPLICABLE

    def test_capitalised_value_on_adjusted_value(self):
        assert capitalised_value(2_907_500, 5) == pytest.approx(145_375)

    @pytest.mark.parametrize("yield_rate", [None, 0, -1])
    def test_capitalised_value_guard(self, yield_rate):
        assert capitalised_value(2_907_500, yield_rate) is NOT_APPLICABLE

    def test_not_applicable_distinct_from_zero(self):
        assert NOT_APPLICABLE is not None
        assert NOT_APPLICABLE != 0
        assert repr(NOT_APPLICABLE) == "NOT_APPLICABLE"
        assert is_applicable(0.0)

    def test_never_nan_or_inf(self):
        for value in (
            rate_per_area(1_000_000, 0),
            rate_per_bedroom(1_000_000, 0),
            room_rate(1_000_000, 0, 0),
        ):
            if is_applicable(value):
                assert math.isfinite(value)


# =============================================================================
# Test: Derived Rates
# =============================================================================

class TestDeriveRates:

    def test_all_rates(self, comparable):
        rates = derive_rates(comparable, yield_rate=5.0)

        assert rates.rate_per_sqm == pytest.approx(6_250)
        assert rates.land_rate_per_sqm == pytest.approx(3_125)
        assert rates.rate_per_bedroom == pytest.approx(2_500_000 / 3)
        assert rates.room_rate == pytest.approx(2_500_000 / 7)
        assert rates.capitalised_value == pytest.approx(125_000)

    def test_assumed_split(self, comparable):
        """No improvements value recorded: 70/30 default applies."""
        rates = derive_rates(comparable)

        assert rates.improvements_split_assumed is True
        assert rates.improvements_rate_per_sqm == pytest.approx(2_500_000 * 0.7 / 400)
        assert rates.improved_land_rate_per_sqm == pytest.approx(2_500_000 * 0.3 / 800)

    def test_recorded_split(self):
        comp = PropertyAttributes(
            price=1_000_000,
            living_area=Area(200),
            land_area=Area(500),
            improvements_value=600_000,
        )

        rates = derive_rates(comp)

        assert rates.improvements_split_assumed is False
        assert rates.improvements_rate_per_sqm == pytest.approx(3_000)
        assert rates.improved_land_rate_per_sqm == pytest.approx(800)

    def test_split_helper(self):
        improvements, land, assumed = improvements_split(1_000_000)

        assert improvements == pytest.approx(700_000)
        assert land == pytest.approx(300_000)
        assert assumed is True
        assert improvements_split(1_000_000, 400_000) == (400_000, 600_000, False)

    def test_missing_measures_not_applicable(self):
        rates = derive_rates(PropertyAttributes(price=800_000))

        assert rates.rate_per_sqm is NOT_APPLICABLE
        assert rates.land_rate_per_sqm is NOT_APPLICABLE
        assert rates.rate_per_bedroom is NOT_APPLICABLE
        assert rates.room_rate is NOT_APPLICABLE
        assert rates.capitalised_value is NOT_APPLICABLE
        assert rates.improvements_rate_per_sqm is NOT_APPLICABLE

    def test_comparable_yield_used_by_default(self):
        comp = PropertyAttributes(price=1_000_000, yield_rate=6.0)

        assert derive_rates(comp).capitalised_value == pytest.approx(60_000)

    def test_to_dict_serialises_not_applicable_as_none(self):
        data = derive_rates(PropertyAttributes(price=800_000)).to_dict()

        assert data["rate_per_sqm"] is None
        assert data["improvements_split_assumed"] is False


# =============================================================================
# Test: Firmer Yield
# =============================================================================

class TestFirmerYield:

    def test_higher_rent_density_is_firmer(self):
        comp = PropertyAttributes(price=5_000_000, gross_rent=400_000, living_area=Area(1_000))
        subj = SubjectProperty(gross_rent=300_000, living_area=Area(1_000))

        assert should_have_firmer_yield(comp, subj) is True

    def test_lower_rent_density(self):
        comp = PropertyAttributes(price=5_000_000, gross_rent=200_000, living_area=Area(1_000))
        subj = SubjectProperty(gross_rent=300_000, living_area=Area(1_200))

        assert should_have_firmer_yield(comp, subj) is False

    def test_missing_rent_not_applicable(self):
        comp = PropertyAttributes(price=5_000_000, living_area=Area(1_000))
        subj = SubjectProperty(gross_rent=300_000, living_area=Area(1_000))

        assert should_have_firmer_yield(comp, subj) is NOT_APPLICABLE
