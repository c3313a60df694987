# tests/test_preview_aggregator.py
from datetime import date, time, timedelta
from decimal import Decimal

from servicehub.schemas.recurring_booking import AvailabilityStatus, Occurrence, RecurrencePattern
from servicehub.services.occurrence_generator import generate_occurrences
from servicehub.services.preview_aggregator import aggregate


def test_cost_is_count_times_unit_price():
    occurrences = [
        Occurrence(booking_date=date(2024, 1, 1) + timedelta(days=7 * i), booking_time=time(10, 0))
        for i in range(6)
    ]
    totals = aggregate(occurrences, Decimal("45.50"))

    assert totals.total_occurrences == 6
    assert totals.estimated_cost == Decimal("273.00")
    assert totals.date_range.start == date(2024, 1, 1)
    assert totals.date_range.end == date(2024, 2, 5)


def test_decimal_cost_is_exact():
    occurrences = [
        Occurrence(booking_date=date(2024, 1, i), booking_time=time(10, 0)) for i in range(1, 11)
    ]
    assert aggregate(occurrences, Decimal("0.10")).estimated_cost == Decimal("1.00")


def test_conflicting_and_unknown_occurrences_are_still_priced():
    occurrences = [
        Occurrence(
            booking_date=date(2024, 1, 1),
            booking_time=time(10, 0),
            has_conflict=True,
            conflict_reason="Provider unavailable: Vacation",
            availability=AvailabilityStatus.CONFLICT,
        ),
        Occurrence(
            booking_date=date(2024, 1, 2),
            booking_time=time(10, 0),
            availability=AvailabilityStatus.UNKNOWN,
        ),
        Occurrence(
            booking_date=date(2024, 1, 3),
            booking_time=time(10, 0),
            availability=AvailabilityStatus.AVAILABLE,
        ),
    ]
    totals = aggregate(occurrences, Decimal("20"))

    assert totals.total_occurrences == 3
    assert totals.estimated_cost == Decimal("60")
    assert totals.conflict_count == 1
    assert totals.unknown_count == 1


def test_empty_preview():
    totals = aggregate([], Decimal("99.99"))

    assert totals.total_occurrences == 0
    assert totals.estimated_cost == Decimal("0")
    assert totals.date_range is None


def test_generated_series_costs_count_times_price():
    pattern = RecurrencePattern(
        frequency="biweekly",
        days_of_week=[2, 4],
        end_condition={"type": "occurrences", "occurrences": 9},
    )
    occurrences = generate_occurrences(date(2024, 1, 2), time(10, 0), pattern)
    flagged = [
        o.model_copy(update={"has_conflict": True, "conflict_reason": "busy"}) if i % 2 else o
        for i, o in enumerate(occurrences)
    ]

    assert aggregate(flagged, Decimal("19.99")).estimated_cost == Decimal("179.91")
