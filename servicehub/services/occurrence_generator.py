# servicehub/services/occurrence_generator.py
"""
Occurrence generation for recurring bookings.

This module expands a recurrence pattern and a start date/time into a
bounded, chronologically ordered list of occurrences. Everything here is
pure: no I/O, no shared state, and date values are never mutated.
"""

from dataclasses import dataclass, field
from datetime import date, time, timedelta
from itertools import islice
from typing import Dict, Iterator, List, Optional
import calendar
import logging

from servicehub.core.exceptions import ValidationException
from servicehub.schemas.recurring_booking import (
    Frequency,
    IndefiniteEnd,
    Occurrence,
    OccurrencesEnd,
    RecurrencePattern,
    UntilDateEnd,
)

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_CAP = 500

SHORT_DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

FREQUENCY_LABELS = {
    Frequency.DAILY: "Daily",
    Frequency.WEEKLY: "Weekly",
    Frequency.BIWEEKLY: "Bi-weekly",
    Frequency.MONTHLY: "Monthly",
}

WEEKLY_FREQUENCIES = (Frequency.WEEKLY, Frequency.BIWEEKLY)


# --- Date helpers ---

def add_days(value: date, days: int) -> date:
    """Return the date `days` days after `value`."""
    return value + timedelta(days=days)


def add_months_clamped(value: date, months: int, day: int) -> date:
    """
    Return `day` of the month `months` months after `value`'s month.

    Days past the end of the target month are clamped to its last day,
    so day 31 in February yields Feb 28 (or 29 in a leap year).
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    _, last_day = calendar.monthrange(year, month)
    return date(year, month, min(day, last_day))


def start_of_week(value: date) -> date:
    """Return the Sunday on or before `value`."""
    # date.weekday() is Monday=0; shift to Sunday=0
    return value - timedelta(days=(value.weekday() + 1) % 7)


def sunday_based_weekday(value: date) -> int:
    """Weekday index with 0=Sunday..6=Saturday."""
    return (value.weekday() + 1) % 7


# --- Validation ---

def validate_recurrence_pattern(
    pattern: RecurrencePattern, max_occurrences: Optional[int] = None
) -> None:
    """
    Check a recurrence pattern before any occurrence is generated.

    Args:
        pattern: Pattern to check
        max_occurrences: Optional upper bound for an occurrence-count end condition

    Raises:
        ValidationException: With one entry per offending field
    """
    errors: Dict[str, List[str]] = {}

    if pattern.interval < 1:
        errors["interval"] = ["Interval must be at least 1"]

    if pattern.frequency in WEEKLY_FREQUENCIES:
        if not pattern.days_of_week:
            errors["days_of_week"] = [
                "At least one day of the week is required for weekly and bi-weekly patterns"
            ]
        elif any(day < 0 or day > 6 for day in pattern.days_of_week):
            errors["days_of_week"] = ["Each day must be an integer from 0 (Sunday) to 6 (Saturday)"]

    if pattern.frequency == Frequency.MONTHLY:
        if pattern.day_of_month is None:
            errors["day_of_month"] = ["Day of month is required for monthly patterns"]
        elif not 1 <= pattern.day_of_month <= 31:
            errors["day_of_month"] = ["Day of month must be between 1 and 31"]

    end = pattern.end_condition
    if isinstance(end, OccurrencesEnd):
        if end.occurrences < 1:
            errors["end_condition.occurrences"] = ["Number of occurrences must be at least 1"]
        elif max_occurrences is not None and end.occurrences > max_occurrences:
            errors["end_condition.occurrences"] = [
                f"Number of occurrences may not exceed {max_occurrences}"
            ]

    if errors:
        raise ValidationException("Invalid recurrence pattern", errors)


# --- Expansion ---

def _iter_candidate_dates(start_date: date, pattern: RecurrencePattern) -> Iterator[date]:
    """Yield every date matching the pattern on or after start_date, ignoring end conditions."""
    try:
        if pattern.frequency == Frequency.DAILY:
            k = 0
            while True:
                yield add_days(start_date, k * pattern.interval)
                k += 1

        elif pattern.frequency in WEEKLY_FREQUENCIES:
            step_weeks = pattern.interval
            if pattern.frequency == Frequency.BIWEEKLY:
                step_weeks *= 2
            first_week = start_of_week(start_date)
            weekdays = sorted(set(pattern.days_of_week))
            week = 0
            while True:
                week_start = add_days(first_week, week * step_weeks * 7)
                for weekday in weekdays:
                    candidate = add_days(week_start, weekday)
                    if candidate >= start_date:
                        yield candidate
                week += 1

        elif pattern.frequency == Frequency.MONTHLY:
            k = 0
            while True:
                candidate = add_months_clamped(
                    start_date, k * pattern.interval, pattern.day_of_month
                )
                if candidate >= start_date:
                    yield candidate
                k += 1
    except (OverflowError, ValueError):
        # Ran past date.max; the sequence simply ends.
        logger.debug(f"Calendar range exhausted for {pattern.frequency.value} pattern")


def _iter_occurrence_dates(start_date: date, pattern: RecurrencePattern) -> Iterator[date]:
    """Yield pattern dates until the pattern's own end condition is met."""
    end = pattern.end_condition
    for index, candidate in enumerate(_iter_candidate_dates(start_date, pattern)):
        if isinstance(end, OccurrencesEnd) and index >= end.occurrences:
            return
        if isinstance(end, UntilDateEnd) and candidate > end.until_date:
            return
        yield candidate


@dataclass(frozen=True)
class GenerationResult:
    """Occurrences produced for a pattern and whether the safety cap cut them short."""

    occurrences: List[Occurrence] = field(default_factory=list)
    truncated: bool = False


class OccurrenceGenerator:
    """
    Expands recurrence patterns into concrete occurrences.

    Every expansion is bounded by a safety cap so that indefinite patterns
    still produce a finite result.
    """

    def __init__(self, safety_cap: int = DEFAULT_SAFETY_CAP):
        if safety_cap < 1:
            raise ValueError("safety_cap must be at least 1")
        self.safety_cap = safety_cap

    def expand(
        self,
        start_date: date,
        start_time: time,
        pattern: RecurrencePattern,
        safety_cap: Optional[int] = None,
    ) -> GenerationResult:
        """
        Expand a pattern and report truncation.

        Args:
            start_date: First eligible date
            start_time: Wall-clock time shared by every occurrence
            pattern: Recurrence pattern (validated here before expansion)
            safety_cap: Optional override of the generator's cap

        Returns:
            GenerationResult with at most `safety_cap` occurrences

        Raises:
            ValidationException: If the pattern or cap is malformed
        """
        validate_recurrence_pattern(pattern)
        cap = self.safety_cap if safety_cap is None else safety_cap
        if cap < 1:
            raise ValidationException(
                "Invalid safety cap", {"safety_cap": ["Safety cap must be at least 1"]}
            )

        # One extra date tells us whether the cap was the limiting factor.
        dates = list(islice(_iter_occurrence_dates(start_date, pattern), cap + 1))
        truncated = len(dates) > cap
        occurrences = [
            Occurrence(booking_date=d, booking_time=start_time) for d in dates[:cap]
        ]

        if truncated:
            logger.info(
                f"Occurrence expansion truncated at safety cap {cap} "
                f"({pattern.frequency.value}, end={pattern.end_condition.type})"
            )
        return GenerationResult(occurrences=occurrences, truncated=truncated)

    def generate(
        self,
        start_date: date,
        start_time: time,
        pattern: RecurrencePattern,
        safety_cap: Optional[int] = None,
    ) -> List[Occurrence]:
        """Expand a pattern into an ordered list of occurrences."""
        return self.expand(start_date, start_time, pattern, safety_cap).occurrences


def generate_occurrences(
    start_date: date,
    start_time: time,
    pattern: RecurrencePattern,
    safety_cap: int = DEFAULT_SAFETY_CAP,
) -> List[Occurrence]:
    """Module-level shortcut for OccurrenceGenerator().generate()."""
    return OccurrenceGenerator(safety_cap).generate(start_date, start_time, pattern)


def describe_pattern(pattern: RecurrencePattern) -> str:
    """
    Render a recurrence pattern as a short human-readable sentence.

    Examples:
        "Weekly on Mon, Wed, Fri for 6 occurrences"
        "Every 3 months on day 31 until 2025-12-31"
    """
    interval = pattern.interval
    if pattern.frequency == Frequency.BIWEEKLY:
        description = (
            FREQUENCY_LABELS[pattern.frequency] if interval == 1 else f"Every {2 * interval} weeks"
        )
    elif interval == 1:
        description = FREQUENCY_LABELS[pattern.frequency]
    else:
        unit = {
            Frequency.DAILY: "days",
            Frequency.WEEKLY: "weeks",
            Frequency.MONTHLY: "months",
        }[pattern.frequency]
        description = f"Every {interval} {unit}"

    if pattern.frequency in WEEKLY_FREQUENCIES and pattern.days_of_week:
        days = ", ".join(
            SHORT_DAY_NAMES[d] for d in sorted(set(pattern.days_of_week)) if 0 <= d <= 6
        )
        description += f" on {days}"

    if pattern.frequency == Frequency.MONTHLY and pattern.day_of_month:
        description += f" on day {pattern.day_of_month}"

    end = pattern.end_condition
    if isinstance(end, UntilDateEnd):
        description += f" until {end.until_date.isoformat()}"
    elif isinstance(end, OccurrencesEnd):
        plural = "s" if end.occurrences != 1 else ""
        description += f" for {end.occurrences} occurrence{plural}"
    elif isinstance(end, IndefiniteEnd):
        description += " with no end date"

    return description
