# backend/classbook/models/reservation.py
"""
Reservation model for the classbook platform.

A reservation is a user's claim on one seat of a time slot. Reservations
are never deleted: cancellation flips the status to ``canceled``, which is
terminal. Re-booking after a cancellation creates a new row.

The partial unique index on (user_id, time_slot_id) for booked rows is the
storage-level guard behind the service's duplicate check.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class ReservationStatus(str, Enum):
    """Reservation lifecycle statuses."""

    BOOKED = "booked"
    CANCELED = "canceled"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class Reservation(Base):
    """One user's seat on one time slot."""

    __tablename__ = "reservations"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    user_id = Column(String(64), nullable=False, index=True)
    time_slot_id = Column(String(26), ForeignKey("time_slots.id"), nullable=False)
    status = Column(String(20), nullable=False, default=ReservationStatus.BOOKED.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    canceled_at = Column(DateTime(timezone=True), nullable=True)
    canceled_by_id = Column(String(64), nullable=True)

    time_slot = relationship("TimeSlot")
    customer = relationship(
        "CustomerProfile",
        primaryjoin="foreign(Reservation.user_id) == CustomerProfile.user_id",
        uselist=False,
        viewonly=True,
    )

    __table_args__ = (
        CheckConstraint("status IN ('booked', 'canceled')", name="ck_reservations_status"),
        Index("ix_reservations_slot_status", "time_slot_id", "status"),
        Index(
            "uq_reservations_active_user_slot",
            "user_id",
            "time_slot_id",
            unique=True,
            postgresql_where=text("status = 'booked'"),
            sqlite_where=text("status = 'booked'"),
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        """New reservations start booked."""
        super().__init__(**kwargs)
        if not self.status:
            self.status = ReservationStatus.BOOKED.value
        logger.info(f"Creating reservation for user {self.user_id} on slot {self.time_slot_id}")

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.id}: user={self.user_id}, slot={self.time_slot_id}, "
            f"status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.BOOKED.value

    @property
    def is_canceled(self) -> bool:
        return self.status == ReservationStatus.CANCELED.value

    def cancel(self, canceled_by_user_id: Optional[str] = None) -> None:
        """Cancel this reservation. Canceled is terminal, so a second call changes nothing."""
        if self.is_canceled:
            return
        self.status = ReservationStatus.CANCELED.value
        self.canceled_at = datetime.now(timezone.utc)
        self.canceled_by_id = canceled_by_user_id
        logger.info(f"Reservation {self.id} canceled by user {canceled_by_user_id}")

    def move_to(self, time_slot_id: str) -> None:
        """Point this booked reservation at another slot. The status is left as is."""
        if self.is_canceled:
            raise ValueError(f"Canceled reservation {self.id} cannot be moved")
        previous = self.time_slot_id
        self.time_slot_id = time_slot_id
        logger.info(f"Reservation {self.id} rescheduled from slot {previous} to {time_slot_id}")
