# servicehub/db/models/booking.py
"""
Database models for bookings, provider blocked periods and weekly working hours.
"""

from sqlalchemy import (
    Boolean,
    Column,
    String,
    Integer,
    Date,
    Time,
    Numeric,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, validates

from servicehub.db.models.base import AbstractBase, ValidationMixin, TimestampMixin

BOOKING_STATUSES = ["pending", "confirmed", "in_progress", "completed", "cancelled"]


class Booking(AbstractBase, ValidationMixin, TimestampMixin):
    """
    A single scheduled appointment between a customer and a provider.

    Bookings created from a recurring series carry the series id and their
    position within the series.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint(
            "recurring_booking_id",
            "booking_date",
            "booking_time",
            name="uq_bookings_recurring_slot",
        ),
        Index("ix_bookings_provider_date", "provider_id", "booking_date"),
    )

    customer_id = Column(String(36), nullable=False, index=True)
    provider_id = Column(String(36), nullable=False)
    listing_id = Column(String(36), nullable=False)
    service_title = Column(String(200), nullable=False)
    booking_date = Column(Date, nullable=False)
    booking_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    notes = Column(Text, nullable=True)

    recurring_booking_id = Column(
        String(36), ForeignKey("recurring_bookings.id"), nullable=True, index=True
    )
    occurrence_number = Column(Integer, nullable=True)

    recurring_booking = relationship("RecurringBooking", back_populates="bookings")

    @validates("status")
    def validate_status(self, key, value):
        """Validate status value."""
        return self._validate_choice(key, value, BOOKING_STATUSES)

    @validates("duration_minutes")
    def validate_duration(self, key, value):
        """Validate duration value."""
        if value is None or value < 1:
            raise ValueError("Duration must be at least 1 minute")
        return value


class ProviderBlock(AbstractBase, TimestampMixin):
    """
    A period during which a provider does not take bookings.

    A block without start/end times covers every day in its date range
    entirely.
    """

    __tablename__ = "provider_blocks"

    provider_id = Column(String(36), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    reason = Column(String(200), nullable=True)

    @validates("end_date")
    def validate_end_date(self, key, value):
        """End date may not precede start date."""
        if self.start_date is not None and value is not None and value < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return value


class ProviderAvailability(AbstractBase, TimestampMixin):
    """
    One weekly working window for a provider.

    Once a provider has any rows here, days without an available window
    are days off and times outside every window are unavailable. A
    provider with no rows at all has no working-hours restriction.
    """

    __tablename__ = "provider_availability"
    __table_args__ = (
        Index("ix_provider_availability_provider_day", "provider_id", "day_of_week"),
    )

    provider_id = Column(String(36), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday..6=Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    @validates("day_of_week")
    def validate_day_of_week(self, key, value):
        if value is None or not 0 <= value <= 6:
            raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        return value

    @validates("end_time")
    def validate_end_time(self, key, value):
        """Windows lie within a single day."""
        if self.start_time is not None and value is not None and value <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return value
