# backend/classbook/repositories/time_slot_repository.py
"""
Time Slot Repository for the classbook platform

Read side of the catalog as seen by the reservation core:
- Slot lookup, optionally with a row lock for check-then-write sequences
- Booked-seat counting (always recomputed, never cached)
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.reservation import Reservation, ReservationStatus
from ..models.time_slot import TimeSlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TimeSlotRepository(BaseRepository[TimeSlot]):
    """Repository for time slot reads and seat counting."""

    def __init__(self, db: Session):
        super().__init__(db, TimeSlot)

    def get_slot(self, slot_id: str) -> Optional[TimeSlot]:
        """Return the slot or None."""
        return self.get_by_id(slot_id, load_relationships=False)

    def get_slot_for_update(self, slot_id: str) -> Optional[TimeSlot]:
        """
        Return the slot with its row locked for the rest of the transaction.

        Concurrent bookers of the same slot queue on this lock, so the
        count-then-insert sequence that follows sees every committed seat.
        """
        try:
            return (
                self.db.query(TimeSlot)
                .filter(TimeSlot.id == slot_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking time slot {slot_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock time slot: {str(e)}") from e

    def count_booked(self, slot_id: str) -> int:
        """Count booked reservations on the slot."""
        query = self.db.query(func.count(Reservation.id)).filter(
            Reservation.time_slot_id == slot_id,
            Reservation.status == ReservationStatus.BOOKED.value,
        )
        return int(self._execute_scalar(query) or 0)

    def get_availability(self, slot_id: str) -> Optional[Tuple[int, int]]:
        """
        Return (capacity, booked_count) for the slot, or None if it does not exist.
        """
        slot = self.get_slot(slot_id)
        if slot is None:
            return None
        return int(slot.capacity), self.count_booked(slot_id)
