"""
Schemas package for the ServiceHub API.

Exports the Pydantic models used for request validation, response
serialization, and data transfer between services.
"""

from servicehub.schemas.recurring_booking import (
    AvailabilityStatus,
    Booking,
    DateRange,
    Frequency,
    IndefiniteEnd,
    Occurrence,
    OccurrenceSlot,
    OccurrencesEnd,
    RecurrencePattern,
    RecurringBooking,
    RecurringBookingCommitRequest,
    RecurringBookingPreview,
    RecurringBookingPreviewRequest,
    RecurringBookingWithBookings,
    SeriesCommitResult,
    SeriesCommitState,
    SeriesMetadata,
    UntilDateEnd,
)

__all__ = [
    "AvailabilityStatus",
    "Booking",
    "DateRange",
    "Frequency",
    "IndefiniteEnd",
    "Occurrence",
    "OccurrenceSlot",
    "OccurrencesEnd",
    "RecurrencePattern",
    "RecurringBooking",
    "RecurringBookingCommitRequest",
    "RecurringBookingPreview",
    "RecurringBookingPreviewRequest",
    "RecurringBookingWithBookings",
    "SeriesCommitResult",
    "SeriesCommitState",
    "SeriesMetadata",
    "UntilDateEnd",
]
