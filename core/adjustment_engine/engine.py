"""
Valuation Engine for the Adjustment Engine

Pipeline order:
1. ADJUST - Build the adjustment schedule for the comparable
2. AGGREGATE - Sum the included adjustments
3. INDICATE - Apply the total to the base price
4. RATE - Derive unit rates from the adjusted value
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from utils.logging import get_logger

from .aggregation import AttributeKey, adjusted_value, aggregate, derive_rates, reconcile
from .calculator import AdjustmentCalculator
from .models import (
    PropertyAttributes,
    ReconciliationSummary,
    SubjectProperty,
    ValuationIndication,
)
from .policy import AdjustmentWeights


logger = get_logger(__name__)


class ComparableAdjustmentEngine:
    """
    Complete adjustment pipeline for one or more comparables.

    Stateless between calls; safe to share across threads.
    """

    def __init__(self, weights: Optional[AdjustmentWeights] = None):
        """
        Initialize valuation engine.

        Args:
            weights: Weighting policy (default: DEFAULT_WEIGHTS)
        """
        self._calculator = AdjustmentCalculator(weights)

    @property
    def weights(self) -> AdjustmentWeights:
        return self._calculator.weights

    def value_comparable(
        self,
        comparable: PropertyAttributes,
        subject: SubjectProperty,
        included: Optional[Iterable[AttributeKey]] = None,
        yield_rate: Optional[float] = None,
    ) -> ValuationIndication:
        """
        Produce an adjusted value indication from one comparable.

        Args:
            comparable: The comparable sale or lease
            subject: The property being valued
            included: Attributes counted in the totals (default: all)
            yield_rate: Yield for capitalised value (default: comparable's)

        Returns:
            ValuationIndication

        Raises:
            InvalidInputError: if the comparable's base price is not positive
        """
        results = self._calculator.calculate(comparable, subject)
        base_price = comparable.base_price

        totals = aggregate(results, base_price, included)
        indicated = adjusted_value(base_price, totals.total_dollar)
        rates = derive_rates(comparable, price=indicated, yield_rate=yield_rate)

        if any(r.policy_gap for r in results):
            logger.info(
                "Comparable %r valued with default rates for: %s",
                comparable.address,
                ", ".join(r.key for r in results if r.policy_gap),
            )

        return ValuationIndication(
            address=comparable.address,
            base_price=base_price,
            adjustments=results,
            totals=totals,
            adjusted_value=indicated,
            rates=rates,
        )

    def value_comparables(
        self,
        comparables: Sequence[PropertyAttributes],
        subject: SubjectProperty,
        included: Optional[Iterable[AttributeKey]] = None,
        yield_rate: Optional[float] = None,
    ) -> Tuple[List[ValuationIndication], ReconciliationSummary]:
        """
        Value several comparables against one subject and reconcile.

        Each comparable is valued independently; the include set
        applies to all of them.
        """
        included = list(included) if included is not None else None
        indications = [
            self.value_comparable(comparable, subject, included, yield_rate)
            for comparable in comparables
        ]
        return indications, reconcile(indications)
