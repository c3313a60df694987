# tests/test_db_models.py
from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from servicehub.db.models import Booking, ProviderAvailability, ProviderBlock, RecurringBooking
from servicehub.db.models.base import ModelValidationError


def _series(**overrides) -> RecurringBooking:
    data = dict(
        customer_id="cust-1",
        provider_id="prov-1",
        listing_id="listing-1",
        service_title="Dog walking",
        service_price=Decimal("25.00"),
        start_date=date(2030, 1, 7),
        start_time=time(8, 0),
        duration_minutes=30,
        recurrence_pattern={"frequency": "daily", "interval": 1, "end_condition": {"type": "indefinite"}},
        idempotency_key="key-1",
        request_fingerprint="fingerprint-1",
    )
    data.update(overrides)
    return RecurringBooking(**data)


def _booking(series: RecurringBooking, **overrides) -> Booking:
    data = dict(
        customer_id=series.customer_id,
        provider_id=series.provider_id,
        listing_id=series.listing_id,
        service_title=series.service_title,
        booking_date=date(2030, 1, 7),
        booking_time=time(8, 0),
        duration_minutes=30,
        total_price=Decimal("25.00"),
        recurring_booking_id=series.id,
        occurrence_number=1,
    )
    data.update(overrides)
    return Booking(**data)


def test_series_defaults_and_relationship(db_session):
    series = _series()
    db_session.add(series)
    db_session.flush()
    db_session.add_all(
        [
            _booking(series, booking_date=date(2030, 1, 8), occurrence_number=2),
            _booking(series),
        ]
    )
    db_session.commit()
    db_session.refresh(series)

    assert series.status == "committed"
    assert series.is_active is True
    assert series.created_at is not None
    assert [b.occurrence_number for b in series.bookings] == [1, 2]
    assert all(b.status == "pending" for b in series.bookings)


def test_idempotency_key_is_unique(db_session):
    db_session.add(_series())
    db_session.commit()

    db_session.add(_series())
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_series_slot_is_unique(db_session):
    series = _series()
    db_session.add(series)
    db_session.flush()
    db_session.add_all([_booking(series), _booking(series, occurrence_number=2)])

    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_status_is_normalized_and_validated():
    series = _series(status="CANCELLED")
    assert series.status == "cancelled"

    with pytest.raises(ModelValidationError):
        _series(status="archived")


def test_booking_duration_must_be_positive():
    with pytest.raises(ValueError):
        _booking(_series(), duration_minutes=0)


def test_block_end_date_cannot_precede_start_date():
    with pytest.raises(ValueError):
        ProviderBlock(provider_id="prov-1", start_date=date(2030, 1, 7), end_date=date(2030, 1, 6))


def test_working_window_must_be_valid():
    with pytest.raises(ValueError):
        ProviderAvailability(
            provider_id="prov-1", day_of_week=7, start_time=time(9, 0), end_time=time(17, 0)
        )
    with pytest.raises(ValueError):
        ProviderAvailability(
            provider_id="prov-1", day_of_week=1, start_time=time(17, 0), end_time=time(9, 0)
        )
