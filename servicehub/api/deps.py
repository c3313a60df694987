# servicehub/api/deps.py
"""
FastAPI dependencies for ServiceHub.

Provides dependency functions for user authentication and service
injection for API routes.
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from servicehub.core import security
from servicehub.core.config import settings
from servicehub.core.events import global_event_bus
from servicehub.core.exceptions import UnauthorizedException
from servicehub.db.session import get_db
from servicehub.services.recurring_booking_service import RecurringBookingService

logger = logging.getLogger(__name__)

# --- Authentication ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=settings.TOKEN_URL)


def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """
    Resolve the authenticated user's ID from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    try:
        return security.decode_access_token(token)
    except UnauthorizedException as e:
        logger.warning(f"Rejected access token: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


# --- Services ---
def get_recurring_booking_service(db: Session = Depends(get_db)) -> RecurringBookingService:
    """Provide a RecurringBookingService bound to the request's session."""
    return RecurringBookingService(db, event_bus=global_event_bus)
