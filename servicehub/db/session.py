"""
Database session management for ServiceHub.

Usage:
    from servicehub.db.session import get_db

    # In FastAPI dependency
    def some_endpoint(db: Session = Depends(get_db)):
        ...
"""

import logging
import threading
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session

from servicehub.core.config import settings
from servicehub.db.models import Base

logger = logging.getLogger(__name__)


def _build_engine(database_url: str):
    """Create the engine, enabling SQLite foreign keys when applicable."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=settings.DB_ECHO,
        pool_pre_ping=True,
    )

    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = _build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get a database session with proper resource management.

    Returns:
        SQLAlchemy Session for database operations
    """
    thread_id = threading.get_ident()
    logger.debug(f"Creating DB session for thread {thread_id}")
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Error in get_db for thread {thread_id}: {e}")
        raise
    finally:
        db.close()
        logger.debug(f"Closed DB session for thread {thread_id}")


def init_db(reset: bool = False) -> None:
    """
    Initialize the database schema.

    Args:
        reset: Whether to drop all tables before recreating them
    """
    logger.info("Initializing database schema...")
    if reset:
        logger.warning("Dropping all tables before initialization")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema initialized")
