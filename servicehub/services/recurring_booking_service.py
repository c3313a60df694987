# servicehub/services/recurring_booking_service.py
"""
Recurring booking service for ServiceHub.

This module ties together occurrence generation, conflict checking and
preview aggregation, and commits an approved preview as a recurring
series with one booking per occurrence.
"""

from contextlib import contextmanager
from datetime import date, time
from decimal import Decimal
from typing import Iterator, List, Optional, Sequence, Set, Tuple, Union
import hashlib
import json
import logging
import threading

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from servicehub.core.config import settings
from servicehub.core.events import RecurringBookingCancelled, RecurringBookingCreated
from servicehub.core.exceptions import (
    BusinessRuleException,
    ConcurrentOperationException,
    ForbiddenException,
    IdempotencyKeyReusedException,
    SeriesCommitException,
    ServiceHubException,
    ValidationException,
)
from servicehub.db.models.recurring_booking import RecurringBooking
from servicehub.repositories.booking_repository import BookingRepository
from servicehub.repositories.recurring_booking_repository import RecurringBookingRepository
from servicehub.schemas import recurring_booking as schemas
from servicehub.schemas.recurring_booking import (
    Occurrence,
    OccurrenceSlot,
    RecurrencePattern,
    RecurringBookingPreview,
    RecurringBookingPreviewRequest,
    SeriesCommitResult,
    SeriesCommitState,
    SeriesMetadata,
)
from servicehub.services.base_service import BaseService
from servicehub.services.conflict_checker import (
    AvailabilitySource,
    BookingAvailabilitySource,
    ConflictChecker,
)
from servicehub.services.occurrence_generator import (
    OccurrenceGenerator,
    describe_pattern,
    validate_recurrence_pattern,
)
from servicehub.services.preview_aggregator import aggregate

logger = logging.getLogger(__name__)

Slot = Union[Occurrence, OccurrenceSlot]


class InFlightGuard:
    """
    Process-local registry of idempotency keys whose commit is in progress.

    A second commit with the same key is refused while the first is still
    running; the unique constraint on the key covers other processes.
    """

    def __init__(self):
        self._keys: Set[str] = set()
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._lock:
            if key in self._keys:
                raise ConcurrentOperationException(
                    "A commit for this recurring booking is already in progress",
                    operation="commit_series",
                    details={"idempotency_key": key},
                )
            self._keys.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._keys.discard(key)

    def is_held(self, key: str) -> bool:
        with self._lock:
            return key in self._keys


commit_guard = InFlightGuard()


def compute_idempotency_key(
    metadata: SeriesMetadata, pattern: RecurrencePattern, occurrences: Sequence[Slot]
) -> str:
    """
    Derive a stable key from everything that defines a series.

    The occurrence list is sorted first, so the same set of slots always
    yields the same key regardless of input order.
    """
    payload = {
        "metadata": metadata.model_dump(mode="json", exclude={"idempotency_key"}),
        "pattern": pattern.model_dump(mode="json"),
        "occurrences": sorted(
            [o.booking_date.isoformat(), o.booking_time.isoformat()] for o in occurrences
        ),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def scoped_idempotency_key(metadata: SeriesMetadata, fingerprint: str) -> str:
    """
    Key under which a commit is stored and guarded.

    A client-supplied key is namespaced by customer, so two customers
    choosing the same key never see each other's series. Without one, the
    request fingerprint (which already covers the customer) is the key.
    """
    if not metadata.idempotency_key:
        return fingerprint
    scoped = f"{metadata.customer_id}:{metadata.idempotency_key}"
    return hashlib.sha256(scoped.encode("utf-8")).hexdigest()


class RecurringBookingService(BaseService[RecurringBooking]):
    """
    Service for recurring bookings in the ServiceHub system.

    Provides functionality for:
    - Building previews (occurrences, availability, totals)
    - Committing a series atomically and idempotently
    - Listing, viewing and cancelling a customer's series
    """

    def __init__(
        self,
        session: Session,
        repository=None,
        booking_repository=None,
        availability_source: Optional[AvailabilitySource] = None,
        generator: Optional[OccurrenceGenerator] = None,
        event_bus=None,
        in_flight_guard: Optional[InFlightGuard] = None,
    ):
        """
        Initialize RecurringBookingService with dependencies.

        Args:
            session: Database session for persistence operations
            repository: Optional repository for recurring series
            booking_repository: Optional repository for bookings
            availability_source: Optional source of provider busy intervals
            generator: Optional occurrence generator
            event_bus: Optional event bus for publishing domain events
            in_flight_guard: Optional guard against concurrent duplicate commits
        """
        self.session = session
        self.repository = repository or RecurringBookingRepository(session)
        self.booking_repository = booking_repository or BookingRepository(session)
        self.conflict_checker = ConflictChecker(
            availability_source or BookingAvailabilitySource(session)
        )
        self.generator = generator or OccurrenceGenerator(settings.RECURRENCE_SAFETY_CAP)
        self.event_bus = event_bus
        self.in_flight_guard = in_flight_guard or commit_guard

    # --- Preview ---

    async def build_preview(
        self, request: RecurringBookingPreviewRequest
    ) -> RecurringBookingPreview:
        """
        Generate, check and total the occurrences of a prospective series.

        Nothing is persisted. Availability failures degrade individual
        occurrences to "unknown" instead of failing the preview.

        Raises:
            ValidationException: If the recurrence pattern is malformed
        """
        pattern = request.recurrence_pattern
        validate_recurrence_pattern(pattern, settings.RECURRENCE_MAX_OCCURRENCES)

        result = self.generator.expand(
            request.start_date, request.start_time, pattern, request.safety_cap
        )
        occurrences = await self.conflict_checker.annotate(
            result.occurrences, request.provider_id, request.duration_minutes
        )
        totals = aggregate(occurrences, request.unit_price)

        self._log_operation(
            "preview",
            "RecurringBooking",
            details={
                "provider_id": request.provider_id,
                "occurrences": totals.total_occurrences,
                "conflicts": totals.conflict_count,
                "truncated": result.truncated,
            },
        )

        return RecurringBookingPreview(
            occurrences=occurrences,
            total_occurrences=totals.total_occurrences,
            estimated_cost=totals.estimated_cost,
            conflict_count=totals.conflict_count,
            unknown_count=totals.unknown_count,
            date_range=totals.date_range,
            description=describe_pattern(pattern),
            truncated=result.truncated,
        )

    # --- Commit ---

    def commit_series(
        self,
        pattern: RecurrencePattern,
        occurrences: Sequence[Slot],
        metadata: SeriesMetadata,
    ) -> SeriesCommitResult:
        """
        Persist a series and exactly the given occurrences as bookings.

        The series row and every booking row are written in one
        transaction. Conflict flags are not consulted; the caller has
        already decided which occurrences to keep.

        Args:
            pattern: Pattern the occurrences were generated from
            occurrences: Slots to persist (order does not matter)
            metadata: Customer, provider, listing and pricing details

        Returns:
            SeriesCommitResult; `replayed` is True when the same commit
            had already succeeded

        Raises:
            ValidationException: If the pattern or occurrence list is invalid
            ConcurrentOperationException: If the same commit is already running
            IdempotencyKeyReusedException: If the key already committed a different request
            SeriesCommitException: If nothing could be persisted
        """
        validate_recurrence_pattern(pattern, settings.RECURRENCE_MAX_OCCURRENCES)
        slots = self._normalize_slots(occurrences)
        fingerprint = compute_idempotency_key(metadata, pattern, occurrences)
        key = scoped_idempotency_key(metadata, fingerprint)
        client_key = metadata.idempotency_key or fingerprint

        state = SeriesCommitState.DRAFT
        existing = self.repository.find_by_idempotency_key(key)
        if existing is not None:
            return self._replay_result(existing, fingerprint, client_key)

        with self.in_flight_guard.hold(key):
            state = SeriesCommitState.COMMITTING
            logger.info(
                f"Committing recurring series: {len(slots)} bookings for customer "
                f"{metadata.customer_id} with provider {metadata.provider_id} ({state.value})"
            )
            try:
                with self.transaction():
                    series = self._create_series(pattern, slots, metadata, key, fingerprint)
                    self._create_bookings(series, slots, metadata)
            except IntegrityError as e:
                # Another process may have committed the same key first
                existing = self.repository.find_by_idempotency_key(key)
                if existing is not None:
                    logger.info(f"Lost commit race for key {key[:12]}; series {existing.id} exists")
                    return self._replay_result(existing, fingerprint, client_key)
                state = SeriesCommitState.FAILED
                logger.error(f"Recurring series commit {state.value}: {e}")
                raise SeriesCommitException(
                    "Could not create recurring bookings; please review the preview and try again",
                    idempotency_key=client_key,
                    original_error=str(e.orig) if e.orig is not None else str(e),
                ) from e
            except ServiceHubException:
                state = SeriesCommitState.FAILED
                raise
            except Exception as e:
                state = SeriesCommitState.FAILED
                logger.error(f"Recurring series commit {state.value}: {e}")
                raise SeriesCommitException(
                    "Could not create recurring bookings; please review the preview and try again",
                    idempotency_key=client_key,
                    original_error=str(e),
                ) from e

            state = SeriesCommitState.COMMITTED

        self._log_operation(
            "commit",
            "RecurringBooking",
            series.id,
            user_id=metadata.customer_id,
            details={"bookings_created": len(slots), "state": state.value},
        )
        self._publish(
            RecurringBookingCreated(
                series_id=series.id,
                customer_id=metadata.customer_id,
                provider_id=metadata.provider_id,
                bookings_created=len(slots),
                first_booking_date=slots[0][0],
            )
        )

        return SeriesCommitResult(
            series_id=series.id,
            bookings_created=len(slots),
            idempotency_key=client_key,
            replayed=False,
            state=state,
        )

    @staticmethod
    def _normalize_slots(occurrences: Sequence[Slot]) -> List[Tuple[date, time]]:
        if not occurrences:
            raise ValidationException(
                "At least one occurrence is required",
                {"occurrences": ["Select at least one date to book"]},
            )
        slots = sorted({(o.booking_date, o.booking_time) for o in occurrences})
        if len(slots) != len(occurrences):
            raise ValidationException(
                "Duplicate occurrences",
                {"occurrences": ["Each date and time may only be booked once"]},
            )
        return slots

    def _create_series(
        self,
        pattern: RecurrencePattern,
        slots: List[Tuple[date, time]],
        metadata: SeriesMetadata,
        key: str,
        fingerprint: str,
    ) -> RecurringBooking:
        today = date.today()
        upcoming = [d for d, _ in slots if d >= today]
        return self.repository.create(
            {
                "customer_id": metadata.customer_id,
                "provider_id": metadata.provider_id,
                "listing_id": metadata.listing_id,
                "service_title": metadata.service_title,
                "service_price": metadata.service_price,
                "start_date": metadata.start_date,
                "start_time": metadata.start_time,
                "duration_minutes": metadata.duration_minutes,
                "recurrence_pattern": pattern.model_dump(mode="json"),
                "idempotency_key": key,
                "request_fingerprint": fingerprint,
                "status": "committed",
                "is_active": True,
                "created_bookings": len(slots),
                "total_occurrences": len(slots),
                "next_booking_date": upcoming[0] if upcoming else None,
            }
        )

    def _create_bookings(
        self,
        series: RecurringBooking,
        slots: List[Tuple[date, time]],
        metadata: SeriesMetadata,
    ) -> None:
        price = Decimal(metadata.service_price)
        rows = [
            {
                "customer_id": metadata.customer_id,
                "provider_id": metadata.provider_id,
                "listing_id": metadata.listing_id,
                "service_title": metadata.service_title,
                "booking_date": booking_date,
                "booking_time": booking_time,
                "duration_minutes": metadata.duration_minutes,
                "total_price": price,
                "status": "pending",
                "recurring_booking_id": series.id,
                "occurrence_number": index,
            }
            for index, (booking_date, booking_time) in enumerate(slots, start=1)
        ]
        self.booking_repository.create_many(rows)

    @staticmethod
    def _replay_result(
        series: RecurringBooking, fingerprint: str, client_key: str
    ) -> SeriesCommitResult:
        """Return the stored series, provided it was created by this same request."""
        if series.request_fingerprint != fingerprint:
            logger.warning(
                f"Idempotency key {client_key[:12]} reused with a different request "
                f"(series {series.id})"
            )
            raise IdempotencyKeyReusedException(client_key, series.id)
        logger.info(f"Replaying recurring series {series.id} for key {client_key[:12]}")
        return SeriesCommitResult(
            series_id=series.id,
            bookings_created=series.created_bookings,
            idempotency_key=client_key,
            replayed=True,
            state=SeriesCommitState.COMMITTED,
        )

    # --- Queries ---

    def list_for_customer(
        self, customer_id: str, skip: int = 0, limit: int = 100, active_only: bool = False
    ) -> List[RecurringBooking]:
        """List a customer's series, newest first."""
        filters = {"is_active": True} if active_only else {}
        return self.repository.list_for_customer(customer_id, skip=skip, limit=limit, **filters)

    def get_series(self, series_id: str, customer_id: Optional[str] = None) -> RecurringBooking:
        """
        Get a series, optionally checking that it belongs to a customer.

        Raises:
            EntityNotFoundException: If the series does not exist
            ForbiddenException: If it belongs to someone else
        """
        series = self.get_entity_or_404(series_id)
        if customer_id is not None and series.customer_id != customer_id:
            raise ForbiddenException("RecurringBooking", series_id)
        return series

    def cancel_series(self, series_id: str, user_id: Optional[str] = None) -> RecurringBooking:
        """
        Deactivate a series and cancel its upcoming pending bookings.

        Bookings already confirmed, in progress, or in the past are left
        for the provider to handle.

        Raises:
            EntityNotFoundException: If the series does not exist
            ForbiddenException: If the user does not own the series
            BusinessRuleException: If the series is already cancelled
        """
        with self.transaction():
            series = self.get_series(series_id, user_id)
            if not series.is_active:
                raise BusinessRuleException(
                    "Recurring booking is already cancelled", "series_already_cancelled"
                )

            today = date.today()
            cancelled = 0
            for booking in self.booking_repository.list_for_series(series.id):
                if booking.status == "pending" and booking.booking_date >= today:
                    booking.status = "cancelled"
                    cancelled += 1

            series.is_active = False
            series.status = "cancelled"
            series.next_booking_date = None
            # Frees the key so the same schedule can be committed again
            series.idempotency_key = f"cancelled:{series.id}"
            self.session.flush()

        self._log_operation(
            "cancel", "RecurringBooking", series_id, user_id=user_id,
            details={"cancelled_bookings": cancelled},
        )
        self._publish(
            RecurringBookingCancelled(
                series_id=series_id, cancelled_bookings=cancelled, user_id=user_id
            )
        )
        return series

    # --- Serialization ---

    @staticmethod
    def to_schema(series: RecurringBooking, with_bookings: bool = False):
        """Convert a series entity to its response schema, adding its description."""
        schema_class = schemas.RecurringBookingWithBookings if with_bookings else schemas.RecurringBooking
        result = schema_class.model_validate(series)
        return result.model_copy(update={"description": describe_pattern(result.recurrence_pattern)})
