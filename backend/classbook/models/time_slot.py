# backend/classbook/models/time_slot.py
"""
TimeSlot model for the classbook platform.

A time slot is one scheduled, capacity-limited occurrence of a class type
at a venue. Slots are managed by the catalog; the reservation core only
reads them. The number of booked seats is never stored on the slot, it is
always counted from the reservations table.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.sql import func
import ulid

from ..database import Base


class TimeSlot(Base):
    """A bookable event occurrence."""

    __tablename__ = "time_slots"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Owned by the catalog, opaque to the reservation core
    class_type_id = Column(String(64), nullable=True, index=True)
    venue_id = Column(String(64), nullable=True, index=True)

    start_at = Column(DateTime(timezone=True), nullable=False, index=True)
    end_at = Column(DateTime(timezone=True), nullable=False)
    capacity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_time_slots_capacity_positive"),
        CheckConstraint("price >= 0", name="ck_time_slots_price_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<TimeSlot {self.id}: title={self.title!r}, start={self.start_at}, "
            f"capacity={self.capacity}>"
        )
