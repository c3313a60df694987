# servicehub/repositories/recurring_booking_repository.py
"""
Repository implementation for recurring booking series.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from servicehub.repositories.base_repository import BaseRepository
from servicehub.db.models.recurring_booking import RecurringBooking


class RecurringBookingRepository(BaseRepository[RecurringBooking]):
    """Repository for recurring booking series."""

    def __init__(self, session: Session):
        super().__init__(session, RecurringBooking)

    def find_by_idempotency_key(self, idempotency_key: str) -> Optional[RecurringBooking]:
        """
        Find a series by the idempotency key it was committed with.

        Args:
            idempotency_key: Key derived from (or supplied with) the commit request

        Returns:
            The series if found, None otherwise
        """
        stmt = select(self.model).where(self.model.idempotency_key == idempotency_key)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_customer(
        self, customer_id: str, skip: int = 0, limit: int = 100, **filters
    ) -> List[RecurringBooking]:
        """
        List a customer's series, newest first.

        Args:
            customer_id: ID of the customer
            skip: Number of records to skip
            limit: Maximum number of records to return
            **filters: Additional equality filters (is_active, provider_id, ...)

        Returns:
            Matching series
        """
        stmt = select(self.model).where(self.model.customer_id == customer_id)
        for key, value in filters.items():
            if hasattr(self.model, key):
                stmt = stmt.where(getattr(self.model, key) == value)
        stmt = stmt.order_by(self.model.created_at.desc()).offset(skip).limit(limit)
        return list(self.session.execute(stmt).scalars().all())
