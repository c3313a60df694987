# servicehub/api/api.py

from fastapi import APIRouter

from servicehub.api.endpoints import recurring_bookings

api_router = APIRouter()

api_router.include_router(
    recurring_bookings.router,
    prefix="/recurring-bookings",
    tags=["Recurring Bookings"],
)
