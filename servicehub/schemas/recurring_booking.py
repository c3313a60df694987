# servicehub/schemas/recurring_booking.py
"""
Recurring booking schemas for the ServiceHub API.

This module contains Pydantic models for recurrence patterns, generated
occurrences, previews, and committed recurring series.
"""

from datetime import datetime, date, time
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field
from typing_extensions import Annotated


class Frequency(str, Enum):
    """Base repetition unit of a recurrence pattern."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class AvailabilityStatus(str, Enum):
    """Outcome of checking one occurrence against provider commitments."""

    AVAILABLE = "available"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"


class OccurrencesEnd(BaseModel):
    """Stop after a fixed number of occurrences."""

    type: Literal["occurrences"] = "occurrences"
    occurrences: int = Field(..., description="Number of occurrences to generate")

    class Config:
        frozen = True


class UntilDateEnd(BaseModel):
    """Stop after the last occurrence on or before a date."""

    type: Literal["until_date"] = "until_date"
    until_date: date = Field(..., description="Last date an occurrence may fall on")

    class Config:
        frozen = True


class IndefiniteEnd(BaseModel):
    """Repeat without an end; bounded only by the safety cap."""

    type: Literal["indefinite"] = "indefinite"

    class Config:
        frozen = True


EndCondition = Annotated[
    Union[OccurrencesEnd, UntilDateEnd, IndefiniteEnd],
    Field(discriminator="type"),
]


class RecurrencePattern(BaseModel):
    """
    Immutable description of a repetition rule.

    Semantic checks (interval >= 1, weekday set present for weekly rules,
    day of month in range) are applied by validate_recurrence_pattern so
    that they surface as ValidationException rather than being coerced.
    """

    frequency: Frequency = Field(..., description="daily, weekly, biweekly or monthly")
    interval: int = Field(1, description="Multiplier of the base frequency unit")
    days_of_week: Optional[Tuple[int, ...]] = Field(
        None, description="Weekdays 0=Sunday..6=Saturday (weekly/biweekly only)"
    )
    day_of_month: Optional[int] = Field(
        None, description="Day of month 1-31 (monthly only)"
    )
    end_condition: EndCondition = Field(..., description="When the repetition stops")

    class Config:
        frozen = True


class Occurrence(BaseModel):
    """One concrete booking slot produced from a recurrence pattern."""

    booking_date: date = Field(..., description="Local date of the occurrence")
    booking_time: time = Field(..., description="Local start time of the occurrence")
    has_conflict: bool = Field(False, description="Overlaps an existing commitment")
    conflict_reason: Optional[str] = Field(
        None, description="Why the occurrence conflicts (present iff has_conflict)"
    )
    availability: Optional[AvailabilityStatus] = Field(
        None, description="Availability check outcome; null until checked"
    )

    class Config:
        frozen = True


class OccurrenceSlot(BaseModel):
    """A date/time pair the caller wants persisted."""

    booking_date: date
    booking_time: time


class RecurringBookingPreviewRequest(BaseModel):
    """Schema for requesting a recurring booking preview."""

    start_date: date = Field(..., description="First eligible date")
    start_time: time = Field(..., description="Start time of every occurrence")
    recurrence_pattern: RecurrencePattern
    provider_id: str = Field(..., description="Provider to check availability for")
    duration_minutes: int = Field(..., gt=0, description="Length of each booking")
    unit_price: Decimal = Field(..., ge=0, description="Price of a single booking")
    safety_cap: Optional[int] = Field(
        None, ge=1, le=5000, description="Override for the occurrence safety cap"
    )


class DateRange(BaseModel):
    start: date
    end: date


class RecurringBookingPreview(BaseModel):
    """Ephemeral preview shown to the customer before committing."""

    occurrences: List[Occurrence] = Field(default_factory=list)
    total_occurrences: int = 0
    estimated_cost: Decimal = Decimal("0")
    conflict_count: int = 0
    unknown_count: int = 0
    date_range: Optional[DateRange] = None
    description: str = ""
    truncated: bool = Field(
        False, description="True when the safety cap cut the sequence short"
    )


class SeriesMetadata(BaseModel):
    """Identifiers and pricing shared by every booking in a series."""

    customer_id: str
    provider_id: str
    listing_id: str
    service_title: str = Field(..., min_length=1, max_length=200)
    service_price: Decimal = Field(..., ge=0)
    start_date: date
    start_time: time
    duration_minutes: int = Field(..., gt=0)
    idempotency_key: Optional[str] = Field(None, max_length=64)


class RecurringBookingCommitRequest(BaseModel):
    """Schema for committing an approved preview as a recurring series."""

    provider_id: str
    listing_id: str
    service_title: str = Field(..., min_length=1, max_length=200)
    service_price: Decimal = Field(..., ge=0)
    start_date: date
    start_time: time
    duration_minutes: int = Field(..., gt=0)
    recurrence_pattern: RecurrencePattern
    occurrences: List[OccurrenceSlot] = Field(
        ..., description="Exactly the occurrences to persist, in any order"
    )
    idempotency_key: Optional[str] = Field(None, max_length=64)


class SeriesCommitState(str, Enum):
    DRAFT = "draft"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


class SeriesCommitResult(BaseModel):
    """Outcome of a successful commit."""

    series_id: str
    bookings_created: int
    idempotency_key: str
    replayed: bool = Field(
        False, description="True when an earlier commit with the same key was returned"
    )
    state: SeriesCommitState = SeriesCommitState.COMMITTED


class Booking(BaseModel):
    """Schema for booking information."""

    id: str
    customer_id: str
    provider_id: str
    listing_id: str
    service_title: str
    booking_date: date
    booking_time: time
    duration_minutes: int
    total_price: Decimal
    status: str
    recurring_booking_id: Optional[str] = None
    occurrence_number: Optional[int] = None

    class Config:
        from_attributes = True


class RecurringBooking(BaseModel):
    """Schema for recurring series information."""

    id: str
    customer_id: str
    provider_id: str
    listing_id: str
    service_title: str
    service_price: Decimal
    start_date: date
    start_time: time
    duration_minutes: int
    recurrence_pattern: RecurrencePattern
    status: str
    is_active: bool
    created_bookings: int
    total_occurrences: Optional[int] = None
    next_booking_date: Optional[date] = None
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RecurringBookingWithBookings(RecurringBooking):
    """Schema for a recurring series with its bookings."""

    bookings: List[Booking] = Field(default_factory=list)
