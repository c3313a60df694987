# servicehub/repositories/booking_repository.py
"""
Repository implementations for bookings, provider blocked periods and
weekly working hours.
"""

from typing import List, Iterable
from datetime import date

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from servicehub.repositories.base_repository import BaseRepository
from servicehub.db.models.booking import Booking, ProviderAvailability, ProviderBlock


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking entities."""

    def __init__(self, session: Session):
        super().__init__(session, Booking)

    def find_active_in_range(
        self,
        provider_id: str,
        start_date: date,
        end_date: date,
        statuses: Iterable[str],
    ) -> List[Booking]:
        """
        Find a provider's bookings in a date range that still occupy time.

        Args:
            provider_id: ID of the provider
            start_date: First booking date to include
            end_date: Last booking date to include
            statuses: Booking statuses considered active

        Returns:
            Matching bookings ordered by date and time
        """
        stmt = (
            select(self.model)
            .where(
                and_(
                    self.model.provider_id == provider_id,
                    self.model.booking_date >= start_date,
                    self.model.booking_date <= end_date,
                    self.model.status.in_(list(statuses)),
                )
            )
            .order_by(self.model.booking_date, self.model.booking_time)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_for_series(self, recurring_booking_id: str) -> List[Booking]:
        """List the bookings belonging to a recurring series in chronological order."""
        stmt = (
            select(self.model)
            .where(self.model.recurring_booking_id == recurring_booking_id)
            .order_by(self.model.booking_date, self.model.booking_time)
        )
        return list(self.session.execute(stmt).scalars().all())


class ProviderBlockRepository(BaseRepository[ProviderBlock]):
    """Repository for provider blocked periods."""

    def __init__(self, session: Session):
        super().__init__(session, ProviderBlock)

    def find_overlapping(
        self, provider_id: str, start_date: date, end_date: date
    ) -> List[ProviderBlock]:
        """
        Find blocks for a provider that overlap the given date range.

        Args:
            provider_id: ID of the provider
            start_date: Range start (inclusive)
            end_date: Range end (inclusive)

        Returns:
            Overlapping blocks ordered by start date
        """
        stmt = (
            select(self.model)
            .where(
                and_(
                    self.model.provider_id == provider_id,
                    self.model.start_date <= end_date,
                    self.model.end_date >= start_date,
                )
            )
            .order_by(self.model.start_date)
        )
        return list(self.session.execute(stmt).scalars().all())


class ProviderAvailabilityRepository(BaseRepository[ProviderAvailability]):
    """Repository for provider weekly working windows."""

    def __init__(self, session: Session):
        super().__init__(session, ProviderAvailability)

    def list_weekly_schedule(self, provider_id: str) -> List[ProviderAvailability]:
        """
        List every weekly window of a provider, available or not.

        Returns:
            Windows ordered by day of week and start time
        """
        stmt = (
            select(self.model)
            .where(self.model.provider_id == provider_id)
            .order_by(self.model.day_of_week, self.model.start_time)
        )
        return list(self.session.execute(stmt).scalars().all())
