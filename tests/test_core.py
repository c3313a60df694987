# tests/test_core.py
import asyncio
from datetime import date, timedelta

import pytest

from servicehub.core.config import Settings
from servicehub.core.events import EventBus, RecurringBookingCreated
from servicehub.core.exceptions import SeriesCommitException, UnauthorizedException
from servicehub.core.security import create_access_token, decode_access_token


def test_access_token_round_trip():
    token = create_access_token("cust-1")
    assert decode_access_token(token) == "cust-1"


def test_expired_token_is_rejected():
    token = create_access_token("cust-1", expires_delta=timedelta(minutes=-5))
    with pytest.raises(UnauthorizedException):
        decode_access_token(token)


def test_series_commit_exception_is_retryable():
    error = SeriesCommitException("failed", idempotency_key="abc", original_error="boom")
    payload = error.to_dict()

    assert payload["code"] == "BOOKING_001"
    assert payload["details"] == {"retryable": True, "idempotency_key": "abc", "original_error": "boom"}


def test_settings_parsing():
    settings = Settings(
        RECURRENCE_SAFETY_CAP=100000,
        ACTIVE_BOOKING_STATUSES="Pending, Confirmed",
        LOG_LEVEL="verbose",
        DATABASE_URL="sqlite:///./other.db",
    )

    assert settings.RECURRENCE_SAFETY_CAP == 5000
    assert settings.ACTIVE_BOOKING_STATUSES == ["pending", "confirmed"]
    assert settings.LOG_LEVEL == "INFO"
    assert settings.DATABASE_URL == "sqlite:///./other.db"


def test_event_bus_sync_and_async_handlers():
    bus = EventBus()
    seen = []

    def on_created(event):
        seen.append(("sync", event.series_id))

    async def on_created_async(event):
        seen.append(("async", event.series_id))

    def broken(event):
        raise RuntimeError("handler failure")

    bus.subscribe(RecurringBookingCreated, on_created)
    bus.subscribe("RecurringBookingCreated", broken)
    bus.subscribe(RecurringBookingCreated, on_created_async)

    event = RecurringBookingCreated(series_id="s-1", first_booking_date=date(2030, 1, 7))
    bus.publish(event)
    asyncio.run(bus.publish_async(event))

    assert ("sync", "s-1") in seen
    assert ("async", "s-1") in seen
    assert event.to_dict()["event_type"] == "RecurringBookingCreated"
    assert event.to_dict()["first_booking_date"] == "2030-01-07"

    assert bus.unsubscribe(RecurringBookingCreated, on_created) is True
    assert bus.unsubscribe(RecurringBookingCreated, on_created) is False
