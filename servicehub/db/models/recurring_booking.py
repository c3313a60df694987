# servicehub/db/models/recurring_booking.py
"""
Database model for recurring booking series.

A series owns the originating recurrence pattern and one Booking row per
committed occurrence.
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    Date,
    Time,
    Numeric,
    JSON,
)
from sqlalchemy.orm import relationship, validates

from servicehub.db.models.base import AbstractBase, ValidationMixin, TimestampMixin

SERIES_STATUSES = ["committed", "cancelled"]


class RecurringBooking(AbstractBase, ValidationMixin, TimestampMixin):
    """
    Model for recurring booking series.

    Stores the recurrence pattern as JSON exactly as the customer approved
    it, along with the pricing and scheduling metadata shared by every
    booking in the series.
    """

    __tablename__ = "recurring_bookings"

    customer_id = Column(String(36), nullable=False, index=True)
    provider_id = Column(String(36), nullable=False, index=True)
    listing_id = Column(String(36), nullable=False, index=True)
    service_title = Column(String(200), nullable=False)
    service_price = Column(Numeric(10, 2), nullable=False)
    start_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    recurrence_pattern = Column(JSON, nullable=False)

    # Customer-scoped; rotated on cancellation so the schedule can be booked again
    idempotency_key = Column(String(64), nullable=False, unique=True)
    request_fingerprint = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default="committed")
    is_active = Column(Boolean, nullable=False, default=True)
    created_bookings = Column(Integer, nullable=False, default=0)
    total_occurrences = Column(Integer, nullable=True)
    next_booking_date = Column(Date, nullable=True)

    bookings = relationship(
        "Booking",
        back_populates="recurring_booking",
        order_by="Booking.booking_date",
    )

    @validates("status")
    def validate_status(self, key, value):
        """Validate status value."""
        return self._validate_choice(key, value, SERIES_STATUSES)
