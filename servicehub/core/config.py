# File: servicehub/core/config.py
"""
Configuration settings for ServiceHub.

This module defines application settings using Pydantic's BaseSettings,
which supports environment variable loading and validation.
"""

import json
import secrets
from typing import Any, Dict, List, Optional, Union

from pydantic import AnyHttpUrl, validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    This class uses Pydantic's BaseSettings to load configuration from
    environment variables, with validation and type conversion.
    """

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "ServiceHub"

    # Environment
    ENVIRONMENT: str = "development"
    PRODUCTION: bool = False
    LOG_LEVEL: str = "INFO"

    # Security
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8  # 8 days
    JWT_ALGORITHM: str = "HS256"
    TOKEN_URL: str = "/api/v1/auth/token"

    # CORS
    BACKEND_CORS_ORIGINS: List[Union[AnyHttpUrl, str]] = []

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS origins from environment variables."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                return [i.strip() for i in v.split(",") if i.strip()]
        return v or []

    # Database
    DATABASE_PATH: str = "servicehub.db"
    DATABASE_HOST: Optional[str] = None
    DATABASE_PORT: Optional[str] = None
    DATABASE_USER: Optional[str] = None
    DATABASE_PASSWORD: Optional[str] = None
    DATABASE_NAME: Optional[str] = None
    DATABASE_URL: Optional[str] = None
    DB_ECHO: bool = False

    @validator("DATABASE_URL", pre=True, always=True)
    def assemble_db_connection(cls, v: Optional[str], values: Dict[str, Any]) -> Any:
        """Assemble database connection string."""
        if isinstance(v, str) and v:
            return v
        if (
                values.get("DATABASE_HOST")
                and values.get("DATABASE_PORT")
                and values.get("DATABASE_USER")
                and values.get("DATABASE_NAME")
        ):
            password = values.get("DATABASE_PASSWORD") or ""
            return f"postgresql://{values['DATABASE_USER']}:{password}@{values['DATABASE_HOST']}:{values['DATABASE_PORT']}/{values['DATABASE_NAME']}"
        return f"sqlite:///{values.get('DATABASE_PATH', 'servicehub.db')}"

    # ================================
    # Recurring booking configuration
    # ================================

    # Hard upper bound on generated occurrences per preview/commit
    RECURRENCE_SAFETY_CAP: int = 500

    # Largest "end after N occurrences" value a customer may request
    RECURRENCE_MAX_OCCURRENCES: int = 500

    # Booking statuses that occupy a provider's time slot
    ACTIVE_BOOKING_STATUSES: List[str] = ["pending", "confirmed", "in_progress"]

    @validator("RECURRENCE_SAFETY_CAP")
    def validate_safety_cap(cls, v: int) -> int:
        """Keep the safety cap within a sane range."""
        return max(1, min(v, 5000))

    @validator("ACTIVE_BOOKING_STATUSES", pre=True)
    def parse_active_statuses(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse active booking statuses from a JSON or comma-separated string."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(s).lower() for s in parsed]
            except json.JSONDecodeError:
                return [i.strip().lower() for i in v.split(",") if i.strip()]
        return [s.lower() for s in v]

    @validator("LOG_LEVEL")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        return v.upper() if v.upper() in valid_levels else "INFO"

    class Config:
        """Pydantic settings configuration."""

        case_sensitive = True
        env_file = ".env"


# Create settings instance
settings = Settings()
