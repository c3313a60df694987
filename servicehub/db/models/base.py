# File: servicehub/db/models/base.py
"""
Base models and mixins for the ServiceHub marketplace.

This module provides the foundation for all database models in the system:
- Base SQLAlchemy model class
- Common mixins for shared functionality (timestamps, validation helpers)
"""

from datetime import datetime, timezone
from typing import Any, Iterable
import uuid

from sqlalchemy import Column, String, DateTime, MetaData
from sqlalchemy.orm import declarative_base

Base = declarative_base(metadata=MetaData())


def generate_uuid() -> str:
    """Primary key factory for string-keyed tables."""
    return str(uuid.uuid4())


class ModelValidationError(ValueError):
    """
    Exception raised for model validation errors.

    Attributes:
        model: The model instance that failed validation
        field: The field that failed validation
        message: Explanation of the error
    """

    def __init__(self, model: Any, field: str, message: str):
        self.model = model
        self.field = field
        self.message = message
        super().__init__(
            f"Validation error in {model.__class__.__name__}.{field}: {message}"
        )


class ValidationMixin:
    """Mixin providing helpers for @validates hooks on enumerated columns."""

    def _validate_choice(self, key: str, value: str, choices: Iterable[str]) -> str:
        """Normalise a string column to lower case and check it against allowed values."""
        if value is None:
            raise ModelValidationError(self, key, "Value is required")
        normalized = value.lower()
        allowed = list(choices)
        if normalized not in allowed:
            raise ModelValidationError(
                self, key, f"Invalid value: {value}. Must be one of {allowed}"
            )
        return normalized


class TimestampMixin:
    """
    Mixin providing automatic timestamp functionality.

    Adds created_at and updated_at timestamps that are automatically
    maintained when records are created or updated.
    """

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class AbstractBase(Base):
    """
    Abstract base class for all model entities.

    Attributes:
        id: String UUID primary key
    """

    __abstract__ = True

    id = Column(String(36), primary_key=True, default=generate_uuid)
