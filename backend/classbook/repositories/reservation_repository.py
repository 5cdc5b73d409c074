# backend/classbook/repositories/reservation_repository.py
"""
Reservation Repository for the classbook platform

Implements all data access operations for reservation management:
- Active-booking lookup per (user, slot)
- Creation, status changes and slot moves (flush only, no commit)
- Row-locked re-fetch for read-modify-write sequences
- Listing queries for users and staff with slot and customer eager loaded
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException, ReservationCanceledException
from ..models.reservation import Reservation, ReservationStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReservationRepository(BaseRepository[Reservation]):
    """Repository for reservation data access."""

    def __init__(self, db: Session):
        """Initialize with Reservation model."""
        super().__init__(db, Reservation)
        self.logger = logging.getLogger(__name__)

    def create(self, **kwargs: Any) -> Reservation:
        """Create a reservation, exposing integrity errors for conflict handling."""
        try:
            return super().create(**kwargs)
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exc.__cause__
            raise

    def find_active_by_user_and_slot(self, user_id: str, slot_id: str) -> Optional[Reservation]:
        """Return the user's booked reservation on the slot, if any."""
        return self.find_one_by(
            user_id=user_id,
            time_slot_id=slot_id,
            status=ReservationStatus.BOOKED.value,
        )

    def get_for_update(self, reservation_id: str) -> Optional[Reservation]:
        """
        Re-fetch a reservation inside the current transaction with its row locked.

        populate_existing() discards whatever the identity map holds so the
        caller never decides on a pre-transaction read.
        """
        try:
            return (
                self.db.query(Reservation)
                .filter(Reservation.id == reservation_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking reservation {reservation_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock reservation: {str(e)}") from e

    def update_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        canceled_by_id: Optional[str] = None,
    ) -> Optional[Reservation]:
        """
        Set the reservation status; cancellation stamps who and when.

        Canceled is terminal: canceling again is a no-op and any other
        status raises ReservationCanceledException.
        """
        reservation = self.get_by_id(reservation_id, load_relationships=False)
        if reservation is None:
            return None

        if status == ReservationStatus.CANCELED:
            reservation.cancel(canceled_by_id)
        elif reservation.is_canceled:
            raise ReservationCanceledException(reservation_id, action=f"set to {status.value}")
        else:
            reservation.status = status.value
        self._flush(f"update status of reservation {reservation_id}")
        return reservation

    def update_slot(self, reservation_id: str, new_slot_id: str) -> Optional[Reservation]:
        """
        Move a booked reservation to another slot, keeping its status.

        Canceled reservations raise ReservationCanceledException. IntegrityError
        propagates unwrapped, like create().
        """
        reservation = self.get_by_id(reservation_id, load_relationships=False)
        if reservation is None:
            return None
        if reservation.is_canceled:
            raise ReservationCanceledException(reservation_id, action="moved")

        reservation.move_to(new_slot_id)
        self._flush(f"move reservation {reservation_id}")
        # Drop the stale relationship so the next access loads the new slot
        self.db.expire(reservation, ["time_slot"])
        return reservation

    def get_with_details(self, reservation_id: str) -> Optional[Reservation]:
        """Get a reservation with slot and customer loaded."""
        return self.get_by_id(reservation_id, load_relationships=True)

    def list_for_user(self, user_id: str) -> List[Reservation]:
        """All reservations of a user, newest first."""
        query = self._detailed_query().filter(Reservation.user_id == user_id)
        return self._execute_query(self._newest_first(query))

    def list_filtered(
        self,
        time_slot_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[ReservationStatus] = None,
    ) -> List[Reservation]:
        """Staff listing with optional filters, newest first."""
        query = self._detailed_query()
        if time_slot_id:
            query = query.filter(Reservation.time_slot_id == time_slot_id)
        if user_id:
            query = query.filter(Reservation.user_id == user_id)
        if status is not None:
            query = query.filter(Reservation.status == status.value)
        return self._execute_query(self._newest_first(query))

    def list_for_slot(self, time_slot_id: str) -> List[Reservation]:
        """All reservations on a slot regardless of status, newest first."""
        return self.list_filtered(time_slot_id=time_slot_id)

    def distinct_user_ids(self) -> List[str]:
        """Every user id that has at least one reservation."""
        query = self.db.query(Reservation.user_id).distinct()
        return [row[0] for row in self._execute_query(query)]

    def _flush(self, action: str) -> None:
        try:
            self.db.flush()
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to {action}: {str(e)}")
            raise RepositoryException(f"Failed to {action}: {str(e)}") from e

    def _detailed_query(self) -> Query:
        return self._apply_eager_loading(self._build_query())

    @staticmethod
    def _newest_first(query: Query) -> Query:
        return query.order_by(Reservation.created_at.desc(), Reservation.id.desc())

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Reservation.time_slot),
            joinedload(Reservation.customer),
        )
