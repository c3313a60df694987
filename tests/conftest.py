# tests/conftest.py
from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from servicehub.db.models.base import Base
from servicehub.schemas.recurring_booking import RecurrencePattern, SeriesMetadata

TEST_DATABASE_URL = "sqlite://"

# One shared in-memory connection so worker threads see the same tables
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def weekly_pattern():
    """Mon/Wed/Fri for six occurrences."""
    return RecurrencePattern(
        frequency="weekly",
        interval=1,
        days_of_week=[1, 3, 5],
        end_condition={"type": "occurrences", "occurrences": 6},
    )


def make_metadata(**overrides) -> SeriesMetadata:
    data = dict(
        customer_id="cust-1",
        provider_id="prov-1",
        listing_id="listing-1",
        service_title="House cleaning",
        service_price=Decimal("40.00"),
        start_date=date(2030, 1, 7),
        start_time=time(9, 0),
        duration_minutes=60,
    )
    data.update(overrides)
    return SeriesMetadata(**data)
