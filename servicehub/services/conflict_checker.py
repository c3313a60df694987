# servicehub/services/conflict_checker.py
"""
Conflict checking for generated occurrences.

Provider commitments for the whole span of a series are fetched with a
single query through an AvailabilitySource, then every occurrence is
compared against them in memory. Intervals are half-open, so a booking
ending at 10:00 does not conflict with one starting at 10:00.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple
import asyncio
import logging

from sqlalchemy.orm import Session

from servicehub.core.config import settings
from servicehub.core.exceptions import AvailabilityCheckException
from servicehub.repositories.booking_repository import (
    BookingRepository,
    ProviderAvailabilityRepository,
    ProviderBlockRepository,
)
from servicehub.schemas.recurring_booking import AvailabilityStatus, Occurrence
from servicehub.services.occurrence_generator import sunday_based_weekday

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusyInterval:
    """A half-open span [start, end) during which a provider is unavailable."""

    start: datetime
    end: datetime
    reason: str

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


class AvailabilitySource(Protocol):
    """Anything that can report a provider's busy intervals for a date range."""

    async def busy_intervals(
        self, provider_id: str, start_date: date, end_date: date
    ) -> List[BusyInterval]:
        """
        Return every interval touching [start_date, end_date] (inclusive dates).

        Raises:
            AvailabilityCheckException: If commitments cannot be read
        """
        ...


def format_clock(value: time) -> str:
    """Format a time as e.g. '2:00 PM'."""
    return value.strftime("%I:%M %p").lstrip("0")


def outside_working_hours(
    schedule: Iterable, start_date: date, end_date: date
) -> List[BusyInterval]:
    """
    Turn a weekly schedule into busy intervals for each day in a range.

    A day with no available window is busy from midnight to midnight.
    Otherwise the gaps before, between and after its windows are busy.

    Args:
        schedule: Rows with day_of_week, start_time, end_time, is_available
        start_date: First day (inclusive)
        end_date: Last day (inclusive)
    """
    windows: Dict[int, List[Tuple[time, time]]] = {}
    for row in schedule:
        if row.is_available:
            windows.setdefault(row.day_of_week, []).append((row.start_time, row.end_time))

    intervals: List[BusyInterval] = []
    day = start_date
    while day <= end_date:
        midnight = datetime.combine(day, time.min)
        next_midnight = midnight + timedelta(days=1)
        day_windows = sorted(windows.get(sunday_based_weekday(day), []))
        if not day_windows:
            intervals.append(
                BusyInterval(midnight, next_midnight, "Provider not available on this day")
            )
        else:
            cursor = midnight
            for window_start, window_end in day_windows:
                opens = datetime.combine(day, window_start)
                if opens > cursor:
                    intervals.append(BusyInterval(cursor, opens, "Time outside available hours"))
                cursor = max(cursor, datetime.combine(day, window_end))
            if cursor < next_midnight:
                intervals.append(
                    BusyInterval(cursor, next_midnight, "Time outside available hours")
                )
        day += timedelta(days=1)
    return intervals


class BookingAvailabilitySource:
    """
    Availability source backed by the bookings, provider_blocks and
    provider_availability tables.

    Database access is synchronous, so it runs in a worker thread to keep
    the event loop free.
    """

    def __init__(self, session: Session, active_statuses: Optional[Iterable[str]] = None):
        self.session = session
        self.active_statuses = list(active_statuses or settings.ACTIVE_BOOKING_STATUSES)
        self.booking_repository = BookingRepository(session)
        self.block_repository = ProviderBlockRepository(session)
        self.schedule_repository = ProviderAvailabilityRepository(session)

    async def busy_intervals(
        self, provider_id: str, start_date: date, end_date: date
    ) -> List[BusyInterval]:
        try:
            return await asyncio.to_thread(
                self._load_busy_intervals, provider_id, start_date, end_date
            )
        except AvailabilityCheckException:
            raise
        except Exception as e:
            logger.error(f"Error loading availability for provider {provider_id}: {e}")
            raise AvailabilityCheckException(provider_id, str(e)) from e

    def _load_busy_intervals(
        self, provider_id: str, start_date: date, end_date: date
    ) -> List[BusyInterval]:
        intervals: List[BusyInterval] = []

        bookings = self.booking_repository.find_active_in_range(
            provider_id, start_date, end_date, self.active_statuses
        )
        for booking in bookings:
            start = datetime.combine(booking.booking_date, booking.booking_time)
            end = start + timedelta(minutes=booking.duration_minutes)
            intervals.append(
                BusyInterval(
                    start=start,
                    end=end,
                    reason=f"Provider already booked {format_clock(start.time())} - {format_clock(end.time())}",
                )
            )

        blocks = self.block_repository.find_overlapping(provider_id, start_date, end_date)
        for block in blocks:
            reason = f"Provider unavailable: {block.reason or 'blocked'}"
            if block.start_time is None or block.end_time is None:
                # Whole-day block spanning its full date range
                intervals.append(
                    BusyInterval(
                        start=datetime.combine(block.start_date, time.min),
                        end=datetime.combine(block.end_date + timedelta(days=1), time.min),
                        reason=reason,
                    )
                )
                continue

            # Same daily window on every day of the block within the range
            day = max(block.start_date, start_date)
            last_day = min(block.end_date, end_date)
            while day <= last_day:
                window_start = datetime.combine(day, block.start_time)
                window_end = datetime.combine(day, block.end_time)
                if window_end <= window_start:
                    window_end += timedelta(days=1)
                intervals.append(BusyInterval(window_start, window_end, reason))
                day += timedelta(days=1)

        schedule = self.schedule_repository.list_weekly_schedule(provider_id)
        if schedule:
            intervals.extend(outside_working_hours(schedule, start_date, end_date))

        logger.debug(
            f"Loaded {len(intervals)} busy intervals for provider {provider_id} "
            f"between {start_date} and {end_date}"
        )
        return intervals


class ConflictChecker:
    """Annotates occurrences with availability against a provider's commitments."""

    def __init__(self, source: AvailabilitySource):
        self.source = source

    async def annotate(
        self,
        occurrences: Sequence[Occurrence],
        provider_id: str,
        duration_minutes: int,
    ) -> List[Occurrence]:
        """
        Mark each occurrence as available, conflicting, or unknown.

        Args:
            occurrences: Occurrences to check, in chronological order
            provider_id: Provider whose commitments are checked
            duration_minutes: Length of every occurrence

        Returns:
            New occurrences, same order and length, with availability set.
            If the source fails, every occurrence is returned as UNKNOWN.
        """
        if not occurrences:
            return []

        duration = timedelta(minutes=duration_minutes)
        first = min(o.booking_date for o in occurrences)
        last_end = max(
            datetime.combine(o.booking_date, o.booking_time) + duration for o in occurrences
        )
        # A commitment starting the previous day can run past midnight
        range_start = first - timedelta(days=1)
        range_end = last_end.date()

        try:
            busy = await self.source.busy_intervals(provider_id, range_start, range_end)
        except Exception as e:
            logger.warning(
                f"Availability check failed for provider {provider_id}; "
                f"marking {len(occurrences)} occurrences as unknown: {e}"
            )
            return [
                o.model_copy(
                    update={
                        "has_conflict": False,
                        "conflict_reason": None,
                        "availability": AvailabilityStatus.UNKNOWN,
                    }
                )
                for o in occurrences
            ]

        busy = sorted(busy, key=lambda interval: interval.start)
        annotated: List[Occurrence] = []
        for occurrence in occurrences:
            start = datetime.combine(occurrence.booking_date, occurrence.booking_time)
            end = start + duration
            clash = next((b for b in busy if b.overlaps(start, end)), None)
            if clash is None:
                annotated.append(
                    occurrence.model_copy(
                        update={
                            "has_conflict": False,
                            "conflict_reason": None,
                            "availability": AvailabilityStatus.AVAILABLE,
                        }
                    )
                )
            else:
                annotated.append(
                    occurrence.model_copy(
                        update={
                            "has_conflict": True,
                            "conflict_reason": clash.reason,
                            "availability": AvailabilityStatus.CONFLICT,
                        }
                    )
                )

        conflicts = sum(1 for o in annotated if o.has_conflict)
        if conflicts:
            logger.info(f"{conflicts} of {len(annotated)} occurrences conflict for provider {provider_id}")
        return annotated
