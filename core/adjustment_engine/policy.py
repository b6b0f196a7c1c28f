"""
Weighting policies for the Adjustment Engine.

A policy maps each catalogue attribute to a rate table ($/sqm, $/unit,
%/year, % per ordinal step). Asset-class differences are expressed as
policy data: each preset carries its own rates and the set of
attributes that apply to that asset class.

Callers may supply a partial policy. Any rate it lacks falls back to
the default policy and the affected result is flagged as a policy gap.
"""

from dataclasses import dataclass, field
from numbers import Real
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from utils.logging import get_logger

from .exceptions import PolicyError, UnknownAttributeError
from .models import Attribute


logger = get_logger(__name__)


# =============================================================================
# Default Rate Tables
# =============================================================================

FrozenRates = Mapping[Attribute, Mapping[str, float]]


def _freeze(rates: Mapping[Attribute, Mapping[str, float]]) -> FrozenRates:
    """Read-only view over a copy of the rate tables."""
    return MappingProxyType(
        {attribute: MappingProxyType(dict(table)) for attribute, table in rates.items()}
    )


DEFAULT_RATES: FrozenRates = _freeze({
    Attribute.LAND_AREA: {"rate_per_sqm": 450.0},
    Attribute.LIVING_AREA: {"rate_per_sqm": 2_200.0},
    Attribute.BEDROOMS: {"rate_per_unit": 15_000.0},
    Attribute.BATHROOMS: {"rate_per_unit": 12_000.0},
    # Diminishing marginal utility: first 2 spaces, next 3, remainder
    Attribute.CAR_SPACES: {
        "first_tier_rate": 2_000.0,
        "first_tier_spaces": 2,
        "second_tier_rate": 1_500.0,
        "second_tier_spaces": 3,
        "third_tier_rate": 1_000.0,
    },
    Attribute.YEAR_BUILT: {"percent_per_year": 0.8, "max_percent": 10.0},
    Attribute.CONDITION: {"percent_per_step": 5.0},
    Attribute.LOCATION: {"percent_per_step": 10.0},
    Attribute.POSITION: {"percent_per_step": 5.0},
    Attribute.EXTERNAL_IMPROVEMENTS: {"percent_per_point": 2.0},
    Attribute.MARKET_CONDITIONS: {
        "declining_percent_per_month": -0.5,
        "stable_percent_per_month": 0.0,
        "improving_percent_per_month": 0.3,
        "max_percent": 15.0,
    },
    # Zoning, ESG and climate risk are caller-judged deltas with no rates
    Attribute.ZONING: {},
    Attribute.ESG_FACTORS: {},
    Attribute.CLIMATE_RISK: {},
})

# Share of a comparable's price attributed to improvements when no
# improvements value is recorded. Default assumption only, not a
# valuation method.
DEFAULT_IMPROVEMENTS_SHARE = 0.7


RateTables = Mapping[Union[Attribute, str], Mapping[str, Real]]


def _normalise_rates(rates: RateTables) -> Dict[Attribute, Dict[str, float]]:
    normalised: Dict[Attribute, Dict[str, float]] = {}
    for key, table in rates.items():
        attribute = Attribute.from_key(key)
        if attribute is None:
            raise UnknownAttributeError(key)
        if not isinstance(table, Mapping):
            raise PolicyError(f"Rate table for {attribute.value} must be a mapping")
        clean = {}
        for name, value in table.items():
            if isinstance(value, bool) or not isinstance(value, Real):
                raise PolicyError(
                    f"Rate {attribute.value}.{name} must be numeric, got {value!r}"
                )
            clean[name] = float(value)
        normalised[attribute] = clean
    return normalised


def _normalise_attributes(
    attributes: Optional[Iterable[Union[Attribute, str]]],
) -> Optional[FrozenSet[Attribute]]:
    if attributes is None:
        return None
    resolved = set()
    for key in attributes:
        attribute = Attribute.from_key(key)
        if attribute is None:
            raise UnknownAttributeError(key)
        resolved.add(attribute)
    return frozenset(resolved)


@dataclass(frozen=True)
class AdjustmentWeights:
    """
    A weighting policy. Immutable once built; use with_overrides() to
    derive a changed copy.

    Attributes:
        rates: attribute -> {rate name: value}, read-only
        attributes: attributes this policy applies to (None = all)
        name: label carried into reports
    """
    rates: RateTables = field(default_factory=dict)
    attributes: Optional[Iterable[Union[Attribute, str]]] = None
    name: str = "custom"

    def __post_init__(self):
        object.__setattr__(self, "rates", _freeze(_normalise_rates(self.rates)))
        object.__setattr__(self, "attributes", _normalise_attributes(self.attributes))

    def applies(self, attribute: Attribute) -> bool:
        """Whether the attribute is assessed under this policy."""
        return self.attributes is None or attribute in self.attributes

    def rate(self, attribute: Attribute, name: str) -> Tuple[float, bool]:
        """
        Look up a rate.

        Returns:
            Tuple of (rate, policy_gap). policy_gap is True when the
            value came from the default policy.
        """
        table = self.rates.get(attribute, {})
        if name in table:
            return table[name], False

        try:
            fallback = DEFAULT_RATES[attribute][name]
        except KeyError:
            raise PolicyError(f"No default rate {attribute.value}.{name}") from None

        logger.info(
            "Policy %r has no rate %s.%s; using default %s",
            self.name, attribute.value, name, fallback,
        )
        return float(fallback), True

    def with_overrides(
        self,
        rates: Optional[RateTables] = None,
        name: Optional[str] = None,
        attributes: Optional[Iterable[Union[Attribute, str]]] = None,
    ) -> "AdjustmentWeights":
        """
        Return a copy with individual rates replaced.

        Args:
            rates: partial rate tables merged over the current ones
            name: new policy name (default: keep)
            attributes: new applicable attribute set (default: keep)
        """
        merged = {attribute: dict(table) for attribute, table in self.rates.items()}
        for attribute, table in _normalise_rates(rates or {}).items():
            merged.setdefault(attribute, {}).update(table)
        return AdjustmentWeights(
            rates=merged,
            attributes=self.attributes if attributes is None else attributes,
            name=name or self.name,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "rates": {a.value: dict(t) for a, t in self.rates.items()},
            "attributes": (
                None if self.attributes is None
                else sorted(a.value for a in self.attributes)
            ),
        }


# =============================================================================
# Presets
# =============================================================================

DEFAULT_WEIGHTS = AdjustmentWeights(rates=DEFAULT_RATES, name="default")

RESIDENTIAL_WEIGHTS = AdjustmentWeights(rates=DEFAULT_RATES, name="residential")

# Commercial evidence is compared on building area; bedroom and bathroom
# counts are not recorded.
COMMERCIAL_WEIGHTS = DEFAULT_WEIGHTS.with_overrides(
    {
        Attribute.LIVING_AREA: {"rate_per_sqm": 1_800.0},
        Attribute.LAND_AREA: {"rate_per_sqm": 350.0},
        Attribute.YEAR_BUILT: {"percent_per_year": 0.75, "max_percent": 15.0},
    },
    name="commercial",
    attributes=[
        a for a in Attribute if a not in (Attribute.BEDROOMS, Attribute.BATHROOMS)
    ],
)

# Specialised assets (childcare, medical, hospitality) carry no ESG or
# climate risk lines on their evidence sheets.
SPECIALISED_WEIGHTS = DEFAULT_WEIGHTS.with_overrides(
    {
        Attribute.LIVING_AREA: {"rate_per_sqm": 2_000.0},
        Attribute.LAND_AREA: {"rate_per_sqm": 300.0},
        Attribute.LOCATION: {"percent_per_step": 7.5},
    },
    name="specialised",
    attributes=[
        a for a in Attribute
        if a not in (
            Attribute.BEDROOMS,
            Attribute.BATHROOMS,
            Attribute.ESG_FACTORS,
            Attribute.CLIMATE_RISK,
        )
    ],
)

POLICY_PRESETS: Dict[str, AdjustmentWeights] = {
    "default": DEFAULT_WEIGHTS,
    "residential": RESIDENTIAL_WEIGHTS,
    "commercial": COMMERCIAL_WEIGHTS,
    "specialised": SPECIALISED_WEIGHTS,
}


def get_policy(name: str) -> AdjustmentWeights:
    """
    Look up a preset policy by asset class.

    Raises:
        PolicyError: if the name is not a known preset
    """
    key = name.lower().strip()
    if key == "specialized":
        key = "specialised"
    try:
        return POLICY_PRESETS[key]
    except KeyError:
        raise PolicyError(
            f"Unknown policy preset {name!r}; expected one of {sorted(POLICY_PRESETS)}"
        ) from None
