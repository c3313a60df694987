# servicehub/api/endpoints/recurring_bookings.py
"""
Recurring Bookings API endpoints for ServiceHub.

This module provides endpoints for previewing, committing, listing and
cancelling recurring booking series.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Path, status

from servicehub.api.deps import get_current_user_id, get_recurring_booking_service
from servicehub.schemas.recurring_booking import (
    RecurringBooking,
    RecurringBookingCommitRequest,
    RecurringBookingPreview,
    RecurringBookingPreviewRequest,
    RecurringBookingWithBookings,
    SeriesCommitResult,
    SeriesMetadata,
)
from servicehub.services.recurring_booking_service import RecurringBookingService
from servicehub.core.exceptions import (
    BusinessRuleException,
    ConcurrentOperationException,
    EntityNotFoundException,
    ForbiddenException,
    IdempotencyKeyReusedException,
    SeriesCommitException,
    ValidationException,
)

router = APIRouter()


@router.post("/preview", response_model=RecurringBookingPreview)
async def preview_recurring_booking(
    *,
    preview_in: RecurringBookingPreviewRequest,
    current_user_id: str = Depends(get_current_user_id),
    service: RecurringBookingService = Depends(get_recurring_booking_service),
):
    """
    Preview the occurrences of a recurring booking before committing it.

    Args:
        preview_in: Start date/time, recurrence pattern, provider and pricing
        current_user_id: ID of the authenticated customer
        service: Recurring booking service

    Returns:
        Occurrences annotated with availability plus totals

    Raises:
        HTTPException: 422 if the recurrence pattern is invalid
    """
    try:
        return await service.build_preview(preview_in)
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.to_dict())


@router.post("/", response_model=SeriesCommitResult, status_code=status.HTTP_201_CREATED)
def commit_recurring_booking(
    *,
    commit_in: RecurringBookingCommitRequest,
    current_user_id: str = Depends(get_current_user_id),
    service: RecurringBookingService = Depends(get_recurring_booking_service),
):
    """
    Commit the selected occurrences as a recurring series.

    Submitting the same request twice returns the original series.

    Raises:
        HTTPException: 422 for invalid input, 409 if the commit failed, is in progress,
            or reuses a key from a different request
    """
    metadata = SeriesMetadata(
        customer_id=current_user_id,
        provider_id=commit_in.provider_id,
        listing_id=commit_in.listing_id,
        service_title=commit_in.service_title,
        service_price=commit_in.service_price,
        start_date=commit_in.start_date,
        start_time=commit_in.start_time,
        duration_minutes=commit_in.duration_minutes,
        idempotency_key=commit_in.idempotency_key,
    )
    try:
        return service.commit_series(
            commit_in.recurrence_pattern, commit_in.occurrences, metadata
        )
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.to_dict())
    except (
        SeriesCommitException, ConcurrentOperationException, IdempotencyKeyReusedException
    ) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.to_dict())


@router.get("/", response_model=List[RecurringBooking])
def list_recurring_bookings(
    *,
    current_user_id: str = Depends(get_current_user_id),
    service: RecurringBookingService = Depends(get_recurring_booking_service),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    active_only: bool = Query(False, description="Only return active series"),
):
    """List the current customer's recurring series, newest first."""
    series_list = service.list_for_customer(
        current_user_id, skip=skip, limit=limit, active_only=active_only
    )
    return [service.to_schema(series) for series in series_list]


@router.get("/{series_id}", response_model=RecurringBookingWithBookings)
def get_recurring_booking(
    *,
    series_id: str = Path(..., description="The ID of the recurring series"),
    current_user_id: str = Depends(get_current_user_id),
    service: RecurringBookingService = Depends(get_recurring_booking_service),
):
    """
    Get a recurring series with its bookings.

    Raises:
        HTTPException: 404 if the series doesn't exist, 403 if it isn't the caller's
    """
    try:
        series = service.get_series(series_id, current_user_id)
    except EntityNotFoundException:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recurring booking with ID {series_id} not found",
        )
    except ForbiddenException as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    return service.to_schema(series, with_bookings=True)


@router.post("/{series_id}/cancel", response_model=RecurringBooking)
def cancel_recurring_booking(
    *,
    series_id: str = Path(..., description="The ID of the recurring series to cancel"),
    current_user_id: str = Depends(get_current_user_id),
    service: RecurringBookingService = Depends(get_recurring_booking_service),
):
    """
    Cancel a recurring series and its upcoming pending bookings.

    Raises:
        HTTPException: 404 if missing, 403 if not the caller's, 400 if already cancelled
    """
    try:
        series = service.cancel_series(series_id, current_user_id)
    except EntityNotFoundException:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recurring booking with ID {series_id} not found",
        )
    except ForbiddenException as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except BusinessRuleException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.to_schema(series)
