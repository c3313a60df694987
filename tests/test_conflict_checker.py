# tests/test_conflict_checker.py
import asyncio
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from servicehub.core.exceptions import AvailabilityCheckException
from servicehub.db.models import Booking, ProviderAvailability, ProviderBlock
from servicehub.schemas.recurring_booking import AvailabilityStatus, Occurrence
from servicehub.services.conflict_checker import (
    BookingAvailabilitySource,
    BusyInterval,
    ConflictChecker,
    format_clock,
    outside_working_hours,
)

TWO_PM = time(14, 0)


class FakeAvailabilitySource:
    def __init__(self, intervals=None, error=None):
        self.intervals = intervals or []
        self.error = error
        self.calls = []

    async def busy_intervals(self, provider_id, start_date, end_date):
        self.calls.append((provider_id, start_date, end_date))
        if self.error is not None:
            raise self.error
        return list(self.intervals)


def daily(start: date, count: int, at: time = TWO_PM):
    return [Occurrence(booking_date=start + timedelta(days=i), booking_time=at) for i in range(count)]


def test_single_conflicting_slot_is_flagged():
    busy = BusyInterval(
        start=datetime(2024, 1, 3, 14, 0),
        end=datetime(2024, 1, 3, 15, 0),
        reason="Provider already booked 2:00 PM - 3:00 PM",
    )
    source = FakeAvailabilitySource([busy])
    result = asyncio.run(
        ConflictChecker(source).annotate(daily(date(2024, 1, 2), 3), "prov-1", 60)
    )

    assert [o.has_conflict for o in result] == [False, True, False]
    assert result[1].conflict_reason == "Provider already booked 2:00 PM - 3:00 PM"
    assert result[1].availability == AvailabilityStatus.CONFLICT
    assert result[0].availability == AvailabilityStatus.AVAILABLE
    assert result[0].conflict_reason is None


def test_conflicts_are_checked_with_one_batched_query():
    source = FakeAvailabilitySource()
    occurrences = daily(date(2024, 1, 2), 30)
    asyncio.run(ConflictChecker(source).annotate(occurrences, "prov-1", 60))

    assert source.calls == [("prov-1", date(2024, 1, 1), date(2024, 1, 31))]


def test_touching_intervals_do_not_conflict():
    busy = [
        BusyInterval(datetime(2024, 1, 2, 13, 0), datetime(2024, 1, 2, 14, 0), "before"),
        BusyInterval(datetime(2024, 1, 2, 15, 0), datetime(2024, 1, 2, 16, 0), "after"),
    ]
    result = asyncio.run(
        ConflictChecker(FakeAvailabilitySource(busy)).annotate(
            daily(date(2024, 1, 2), 1), "prov-1", 60
        )
    )

    assert result[0].has_conflict is False


def test_failing_source_marks_every_occurrence_unknown():
    source = FakeAvailabilitySource(error=AvailabilityCheckException("prov-1", "timeout"))
    occurrences = daily(date(2024, 1, 2), 4)
    result = asyncio.run(ConflictChecker(source).annotate(occurrences, "prov-1", 60))

    assert len(result) == 4
    assert all(o.availability == AvailabilityStatus.UNKNOWN for o in result)
    assert all(o.has_conflict is False for o in result)
    assert [o.booking_date for o in result] == [o.booking_date for o in occurrences]


def test_no_occurrences_skips_the_query():
    source = FakeAvailabilitySource()
    assert asyncio.run(ConflictChecker(source).annotate([], "prov-1", 60)) == []
    assert source.calls == []


def test_format_clock():
    assert format_clock(time(14, 0)) == "2:00 PM"
    assert format_clock(time(9, 30)) == "9:30 AM"


def _booking(**overrides) -> Booking:
    data = dict(
        customer_id="cust-2",
        provider_id="prov-1",
        listing_id="listing-1",
        service_title="Lawn mowing",
        booking_date=date(2024, 1, 3),
        booking_time=TWO_PM,
        duration_minutes=60,
        total_price=Decimal("30.00"),
        status="confirmed",
    )
    data.update(overrides)
    return Booking(**data)


def test_database_source_reads_active_bookings_and_blocks(db_session):
    db_session.add_all(
        [
            _booking(),
            _booking(booking_date=date(2024, 1, 4), status="cancelled"),
            _booking(provider_id="prov-2", booking_date=date(2024, 1, 6)),
            ProviderBlock(
                provider_id="prov-1",
                start_date=date(2024, 1, 5),
                end_date=date(2024, 1, 5),
                reason="Vacation",
            ),
        ]
    )
    db_session.commit()

    checker = ConflictChecker(BookingAvailabilitySource(db_session))
    result = asyncio.run(checker.annotate(daily(date(2024, 1, 2), 5), "prov-1", 60))

    assert [o.has_conflict for o in result] == [False, True, False, True, False]
    assert result[1].conflict_reason == "Provider already booked 2:00 PM - 3:00 PM"
    assert result[3].conflict_reason == "Provider unavailable: Vacation"


def test_database_source_sees_overnight_booking_from_previous_day(db_session):
    db_session.add(
        _booking(booking_date=date(2024, 1, 1), booking_time=time(23, 30), duration_minutes=120)
    )
    db_session.commit()

    checker = ConflictChecker(BookingAvailabilitySource(db_session))
    occurrences = daily(date(2024, 1, 2), 2, at=time(0, 30))
    result = asyncio.run(checker.annotate(occurrences, "prov-1", 30))

    assert [o.has_conflict for o in result] == [True, False]


def test_database_source_applies_timed_block_every_day(db_session):
    db_session.add(
        ProviderBlock(
            provider_id="prov-1",
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 31),
            start_time=time(12, 0),
            end_time=time(13, 0),
            reason="Lunch",
        )
    )
    db_session.commit()

    checker = ConflictChecker(BookingAvailabilitySource(db_session))
    lunch = asyncio.run(checker.annotate(daily(date(2024, 1, 10), 3, at=time(12, 30)), "prov-1", 30))
    afternoon = asyncio.run(checker.annotate(daily(date(2024, 1, 10), 3), "prov-1", 30))

    assert all(o.conflict_reason == "Provider unavailable: Lunch" for o in lunch)
    assert not any(o.has_conflict for o in afternoon)


def _window(day_of_week, opens, closes, is_available=True) -> ProviderAvailability:
    return ProviderAvailability(
        provider_id="prov-1",
        day_of_week=day_of_week,
        start_time=opens,
        end_time=closes,
        is_available=is_available,
    )


def test_outside_working_hours_covers_days_off_and_gaps():
    schedule = [
        _window(1, time(9, 0), time(12, 0)),
        _window(1, time(13, 0), time(17, 0)),
        _window(2, time(9, 0), time(17, 0), is_available=False),
    ]
    # Monday 2024-01-01 and Tuesday 2024-01-02
    busy = outside_working_hours(schedule, date(2024, 1, 1), date(2024, 1, 2))

    assert [(b.start, b.end) for b in busy] == [
        (datetime(2024, 1, 1), datetime(2024, 1, 1, 9, 0)),
        (datetime(2024, 1, 1, 12, 0), datetime(2024, 1, 1, 13, 0)),
        (datetime(2024, 1, 1, 17, 0), datetime(2024, 1, 2)),
        (datetime(2024, 1, 2), datetime(2024, 1, 3)),
    ]
    assert busy[1].reason == "Time outside available hours"
    assert busy[3].reason == "Provider not available on this day"


def test_database_source_enforces_weekly_working_hours(db_session):
    db_session.add_all(
        [
            _window(1, time(9, 0), time(17, 0)),  # Monday
            _window(3, time(9, 0), time(17, 0)),  # Wednesday
            _window(5, time(9, 0), time(15, 0)),  # Friday, closes early
            _window(4, time(9, 0), time(17, 0), is_available=False),
        ]
    )
    db_session.commit()

    checker = ConflictChecker(BookingAvailabilitySource(db_session))
    # Mon 2024-01-01 .. Fri 2024-01-05 at 2 PM for an hour
    result = asyncio.run(checker.annotate(daily(date(2024, 1, 1), 5), "prov-1", 60))

    assert [o.availability for o in result] == [
        AvailabilityStatus.AVAILABLE,
        AvailabilityStatus.CONFLICT,
        AvailabilityStatus.AVAILABLE,
        AvailabilityStatus.CONFLICT,
        AvailabilityStatus.AVAILABLE,
    ]
    assert result[1].conflict_reason == "Provider not available on this day"
    assert result[3].conflict_reason == "Provider not available on this day"

    late = asyncio.run(checker.annotate(daily(date(2024, 1, 5), 1, at=time(14, 30)), "prov-1", 60))
    assert late[0].conflict_reason == "Time outside available hours"


def test_provider_without_schedule_has_no_working_hours_limit(db_session):
    db_session.add(_window(1, time(9, 0), time(17, 0)))
    db_session.commit()

    checker = ConflictChecker(BookingAvailabilitySource(db_session))
    result = asyncio.run(
        checker.annotate(daily(date(2024, 1, 2), 1, at=time(22, 0)), "prov-2", 60)
    )

    assert result[0].availability == AvailabilityStatus.AVAILABLE
