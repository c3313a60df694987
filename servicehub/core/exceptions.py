# File: servicehub/core/exceptions.py

from typing import Dict, Any, List, Optional
from datetime import datetime


class ServiceHubException(Exception):
    """Base exception for all ServiceHub errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a ServiceHub exception.

        Args:
            message: Human-readable error message
            code: Optional machine-processable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or "GENERIC_ERROR"
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now().isoformat(),
        }


# Domain-specific exceptions
class DomainException(ServiceHubException):
    """Base exception for domain-related errors."""

    CODE_PREFIX = "DOMAIN_"


class EntityNotFoundException(DomainException):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            f"{self.CODE_PREFIX}001",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


# Validation exceptions
class ValidationException(ServiceHubException):
    """Raised when input validation fails."""

    def __init__(
        self, message: str, validation_errors: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(
            message, "VALIDATION_001", {"validation_errors": validation_errors or {}}
        )


# Business rule exceptions
class BusinessRuleException(ServiceHubException):
    """Raised when a business rule or constraint is violated."""

    CODE_PREFIX = "BUSINESS_"

    def __init__(
        self,
        message: str,
        rule_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if rule_name:
            error_details["rule_name"] = rule_name
        super().__init__(message, f"{self.CODE_PREFIX}001", error_details)


# Concurrent operation exceptions
class ConcurrentOperationException(ServiceHubException):
    """Raised when a concurrent operation fails."""

    CODE_PREFIX = "CONCURRENT_"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if operation:
            error_details["operation"] = operation
        super().__init__(message, f"{self.CODE_PREFIX}001", error_details)


# Booking-related exceptions
class BookingException(ServiceHubException):
    """Base exception for booking-related errors."""

    CODE_PREFIX = "BOOKING_"


class SeriesCommitException(BookingException):
    """
    Raised when a recurring series could not be committed.

    Nothing is persisted when this is raised. The caller should rebuild
    the preview (occurrence dates may have shifted) and retry.
    """

    def __init__(
        self,
        message: str,
        idempotency_key: Optional[str] = None,
        original_error: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"retryable": True}
        if idempotency_key:
            details["idempotency_key"] = idempotency_key
        if original_error:
            details["original_error"] = original_error
        super().__init__(message, f"{self.CODE_PREFIX}001", details)


class AvailabilityCheckException(BookingException):
    """Raised by an availability source when provider commitments cannot be read."""

    def __init__(self, provider_id: Any, original_error: Optional[str] = None):
        details = {"provider_id": provider_id}
        if original_error:
            details["original_error"] = original_error
        super().__init__(
            f"Could not read availability for provider {provider_id}",
            f"{self.CODE_PREFIX}002",
            details,
        )


class IdempotencyKeyReusedException(BookingException):
    """Raised when an idempotency key already committed a different request."""

    def __init__(self, idempotency_key: str, series_id: Optional[str] = None):
        details: Dict[str, Any] = {"idempotency_key": idempotency_key, "retryable": False}
        super().__init__(
            "This idempotency key was already used for a different recurring booking",
            f"{self.CODE_PREFIX}003",
            details,
        )
        self.series_id = series_id


# Security exceptions
class SecurityException(ServiceHubException):
    """Base exception for security-related errors."""

    CODE_PREFIX = "SECURITY_"


class UnauthorizedException(SecurityException):
    """Raised when a user is not authorized to perform an action."""

    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message, f"{self.CODE_PREFIX}001", {})


class ForbiddenException(SecurityException):
    """Raised when a user is forbidden from accessing a resource."""

    def __init__(self, resource_type: str, resource_id: Any = None):
        details = {"resource_type": resource_type}
        if resource_id is not None:
            details["resource_id"] = resource_id
        super().__init__(
            f"Access forbidden to {resource_type}"
            + (f" with ID {resource_id}" if resource_id else ""),
            f"{self.CODE_PREFIX}002",
            details,
        )
