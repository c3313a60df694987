"""
Initializes the models package for SQLAlchemy declarative base.

Importing every model here ensures that SQLAlchemy's metadata is populated
with all table definitions when `Base.metadata.create_all()` is called.
"""

from servicehub.db.models.base import Base
from servicehub.db.models.booking import Booking, ProviderAvailability, ProviderBlock
from servicehub.db.models.recurring_booking import RecurringBooking

__all__ = ["Base", "Booking", "ProviderAvailability", "ProviderBlock", "RecurringBooking"]
