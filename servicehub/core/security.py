# File: servicehub/core/security.py
"""
Security utilities for ServiceHub.

This module provides JWT access token creation and decoding. Users are
authenticated by an upstream identity provider; ServiceHub only needs the
subject (user id) carried by the token.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Union, Optional

from jose import jwt, JWTError

from servicehub.core.config import settings
from servicehub.core.exceptions import UnauthorizedException

ALGORITHM = settings.JWT_ALGORITHM


def create_access_token(
    subject: Union[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Token subject (typically user ID)
        expires_delta: Optional token expiration time

    Returns:
        str: JWT access token
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {"exp": expire, "sub": str(subject), "type": "access"}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Decode an access token and return its subject.

    Raises:
        UnauthorizedException: If the token is invalid, expired or not an access token
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise UnauthorizedException(f"Could not validate credentials: {e}")

    if payload.get("type") != "access" or not payload.get("sub"):
        raise UnauthorizedException("Could not validate credentials")
    return payload["sub"]
