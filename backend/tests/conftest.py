# backend/tests/conftest.py
"""
Shared fixtures for the classbook test suite.

Every test gets a fresh in-memory SQLite database built from the model
metadata through the same engine factory production code uses, so the
BEGIN IMMEDIATE and foreign-key settings are exercised too.
"""

import os

# Set testing mode BEFORE any classbook imports
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional

import pytest
from sqlalchemy.orm import Session, sessionmaker

from classbook.core.enums import RoleName
from classbook.database import Base, create_db_engine

# Import models so Base.metadata is populated for create_all.
import classbook.models  # noqa: F401
from classbook.models.reservation import Reservation, ReservationStatus
from classbook.models.time_slot import TimeSlot
from classbook.principal import UserPrincipal
from classbook.services.base import BaseService

SLOT_START = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_engine():
    engine = create_db_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(db_engine) -> Session:
    """Session on the per-test database; services commit through it as in production."""
    SessionLocal = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _reset_service_metrics():
    BaseService._class_metrics.clear()
    yield
    BaseService._class_metrics.clear()


@pytest.fixture
def make_slot(db: Session) -> Callable[..., TimeSlot]:
    """Create and commit a time slot."""

    def _make(capacity: int = 2, title: str = "Morning Yoga", offset_days: int = 0, **kwargs):
        start = SLOT_START + timedelta(days=offset_days)
        slot = TimeSlot(
            title=title,
            capacity=capacity,
            start_at=start,
            end_at=start + timedelta(hours=1),
            price=Decimal("15.00"),
            **kwargs,
        )
        db.add(slot)
        db.commit()
        return slot

    return _make


@pytest.fixture
def make_reservation(db: Session) -> Callable[..., Reservation]:
    """Insert a reservation row directly, bypassing the capacity checks."""

    def _make(user_id: str, slot: TimeSlot, status: str = ReservationStatus.BOOKED.value):
        reservation = Reservation(user_id=user_id, time_slot_id=slot.id, status=status)
        db.add(reservation)
        db.commit()
        return reservation

    return _make


def make_principal(
    user_id: str, email: Optional[str] = None, role: RoleName = RoleName.USER
) -> UserPrincipal:
    return UserPrincipal(user_id=user_id, email=email, role=role)


@pytest.fixture
def user_a() -> UserPrincipal:
    return make_principal("user-a", "a@example.com")


@pytest.fixture
def user_b() -> UserPrincipal:
    return make_principal("user-b", "b@example.com")


@pytest.fixture
def user_c() -> UserPrincipal:
    return make_principal("user-c", "c@example.com")


@pytest.fixture
def lector() -> UserPrincipal:
    return make_principal("lector-1", "lector@example.com", RoleName.LECTOR)


@pytest.fixture
def admin() -> UserPrincipal:
    return make_principal("admin-1", "admin@example.com", RoleName.ADMIN)
