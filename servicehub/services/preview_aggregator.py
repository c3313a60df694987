# servicehub/services/preview_aggregator.py
"""
Totals for a recurring booking preview.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from servicehub.schemas.recurring_booking import AvailabilityStatus, DateRange, Occurrence


@dataclass(frozen=True)
class PreviewTotals:
    total_occurrences: int
    estimated_cost: Decimal
    conflict_count: int = 0
    unknown_count: int = 0
    date_range: Optional[DateRange] = None


def aggregate(occurrences: Sequence[Occurrence], unit_price: Decimal) -> PreviewTotals:
    """
    Summarize a list of occurrences.

    Every occurrence is counted and priced, conflicting ones included;
    the customer decides what to drop before committing.

    Args:
        occurrences: Occurrences in chronological order
        unit_price: Price of one booking

    Returns:
        PreviewTotals with an exact Decimal cost of len(occurrences) * unit_price
    """
    total = len(occurrences)
    unit_price = Decimal(str(unit_price)) if not isinstance(unit_price, Decimal) else unit_price
    date_range = None
    if occurrences:
        date_range = DateRange(
            start=min(o.booking_date for o in occurrences),
            end=max(o.booking_date for o in occurrences),
        )
    return PreviewTotals(
        total_occurrences=total,
        estimated_cost=unit_price * total,
        conflict_count=sum(1 for o in occurrences if o.has_conflict),
        unknown_count=sum(1 for o in occurrences if o.availability == AvailabilityStatus.UNKNOWN),
        date_range=date_range,
    )
