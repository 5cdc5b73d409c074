# backend/classbook/services/reservation_service.py
"""
Reservation Service for the classbook platform

Owns every state change of a reservation:
- book: claim one seat of a time slot
- cancel / admin_cancel: move a booked reservation to canceled (terminal)
- reschedule: move a booked reservation to another slot atomically

Capacity and duplicate checks run inside the same transaction as the
write, after the slot row is locked, so concurrent bookers of one slot are
serialized by the database. The partial unique index on active
(user, slot) pairs turns any race that slips past the checks into a
DuplicateReservationException instead of a second seat.

The service holds no state between calls; the acting user is passed in
as a UserPrincipal on every operation.
"""

from dataclasses import dataclass
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    DuplicateReservationException,
    ForbiddenException,
    ReservationCanceledException,
    ReservationNotFoundException,
    ServiceException,
    TimeSlotFullException,
    TimeSlotNotFoundException,
    ValidationException,
)
from ..models.reservation import Reservation, ReservationStatus
from ..principal import UserPrincipal
from ..repositories.factory import RepositoryFactory
from ..repositories.reservation_repository import ReservationRepository
from ..repositories.time_slot_repository import TimeSlotRepository
from .base import BaseService
from .customer_profile_service import CustomerProfileService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotAvailability:
    """Seat accounting of one slot at the moment it was read."""

    time_slot_id: str
    capacity: int
    booked_count: int

    @property
    def spots_left(self) -> int:
        return max(self.capacity - self.booked_count, 0)

    @property
    def is_full(self) -> bool:
        return self.booked_count >= self.capacity


class ReservationService(BaseService):
    """
    Service layer for reservation operations.

    Handles booking, cancellation and rescheduling with capacity and
    duplicate enforcement, plus the user and staff read paths.
    """

    def __init__(
        self,
        db: Session,
        reservation_repository: Optional[ReservationRepository] = None,
        time_slot_repository: Optional[TimeSlotRepository] = None,
        customer_profile_service: Optional[CustomerProfileService] = None,
    ):
        """Initialize reservation service with its repositories."""
        super().__init__(db)
        self.reservation_repository = (
            reservation_repository or RepositoryFactory.create_reservation_repository(db)
        )
        self.time_slot_repository = (
            time_slot_repository or RepositoryFactory.create_time_slot_repository(db)
        )
        self.customer_profile_service = customer_profile_service or CustomerProfileService(db)

    # Writes

    @BaseService.measure_operation("book")
    def book(self, principal: UserPrincipal, time_slot_id: str) -> Reservation:
        """
        Book one seat of a time slot for the acting user.

        Args:
            principal: Acting user
            time_slot_id: Slot to book

        Returns:
            The new booked reservation with its slot loaded

        Raises:
            ValidationException: time_slot_id is blank
            DuplicateReservationException: user already holds a booked seat on the slot
            TimeSlotNotFoundException: slot does not exist
            TimeSlotFullException: every seat is taken
        """
        time_slot_id = self._require_id(time_slot_id, "time_slot_id")
        self.log_operation("book", user_id=principal.user_id, time_slot_id=time_slot_id)
        self._sync_customer_profile(principal)

        with self.transaction():
            # Lock first: everything below must see every committed seat
            slot = self.time_slot_repository.get_slot_for_update(time_slot_id)

            if self.reservation_repository.find_active_by_user_and_slot(
                principal.user_id, time_slot_id
            ):
                raise DuplicateReservationException(principal.user_id, time_slot_id)

            if slot is None:
                raise TimeSlotNotFoundException(time_slot_id)

            booked = self.time_slot_repository.count_booked(time_slot_id)
            if booked >= slot.capacity:
                self.logger.info(
                    f"Slot {time_slot_id} is full ({booked}/{slot.capacity}), "
                    f"rejecting booking for {principal.user_id}"
                )
                raise TimeSlotFullException(time_slot_id, slot.capacity)

            try:
                reservation = self.reservation_repository.create(
                    user_id=principal.user_id,
                    time_slot_id=time_slot_id,
                    status=ReservationStatus.BOOKED.value,
                )
            except IntegrityError as e:
                self.logger.warning(
                    f"Unique index rejected second active booking for {principal.user_id} "
                    f"on slot {time_slot_id}"
                )
                raise DuplicateReservationException(principal.user_id, time_slot_id) from e

        return self._load_details(reservation.id)

    @BaseService.measure_operation("cancel")
    def cancel(self, principal: UserPrincipal, reservation_id: str) -> Reservation:
        """
        Cancel one of the acting user's reservations.

        Reservations of other users are reported as not found. Canceling an
        already canceled reservation returns it unchanged.
        """
        reservation_id = self._require_id(reservation_id, "reservation_id")
        self.log_operation("cancel", user_id=principal.user_id, reservation_id=reservation_id)
        self._sync_customer_profile(principal)
        return self._cancel(principal, reservation_id, enforce_ownership=True)

    @BaseService.measure_operation("admin_cancel")
    def admin_cancel(self, principal: UserPrincipal, reservation_id: str) -> Reservation:
        """Cancel any user's reservation. Requires the ADMIN role."""
        reservation_id = self._require_id(reservation_id, "reservation_id")
        if not principal.is_admin:
            raise ForbiddenException(
                "Only administrators can cancel other users' reservations",
                code="ADMIN_REQUIRED",
            )
        self.log_operation(
            "admin_cancel", user_id=principal.user_id, reservation_id=reservation_id
        )
        self._sync_customer_profile(principal)
        return self._cancel(principal, reservation_id, enforce_ownership=False)

    def cancel_reservation(
        self, principal: UserPrincipal, reservation_id: str, as_admin: bool = False
    ) -> Reservation:
        """Single cancel entry point: admin path when as_admin, owner path otherwise."""
        if as_admin:
            return self.admin_cancel(principal, reservation_id)
        return self.cancel(principal, reservation_id)

    @BaseService.measure_operation("reschedule")
    def reschedule(
        self,
        principal: UserPrincipal,
        reservation_id: str,
        target_time_slot_id: str,
    ) -> Reservation:
        """
        Move one of the acting user's booked reservations to another slot.

        All checks and the move run in one transaction. The reservation
        never points at both slots or at neither.

        Raises:
            ValidationException: target missing, or equal to the current slot
            ReservationNotFoundException: missing or owned by someone else
            ReservationCanceledException: the reservation is canceled
            DuplicateReservationException: user already booked the target
            TimeSlotNotFoundException: target slot does not exist
            TimeSlotFullException: target slot has no seats left
        """
        reservation_id = self._require_id(reservation_id, "reservation_id")
        target_time_slot_id = self._require_id(target_time_slot_id, "target_time_slot_id")
        self.log_operation(
            "reschedule",
            user_id=principal.user_id,
            reservation_id=reservation_id,
            target_time_slot_id=target_time_slot_id,
        )
        self._sync_customer_profile(principal)

        with self.transaction():
            # Ownership is re-checked on the locked row, never on an earlier read
            reservation = self.reservation_repository.get_for_update(reservation_id)
            if reservation is None or reservation.user_id != principal.user_id:
                raise ReservationNotFoundException(reservation_id)

            if reservation.is_canceled:
                raise ReservationCanceledException(reservation_id)

            if reservation.time_slot_id == target_time_slot_id:
                raise ValidationException(
                    "Reservation is already on this event",
                    code="SAME_TIME_SLOT",
                    details={"time_slot_id": target_time_slot_id},
                )

            target = self.time_slot_repository.get_slot_for_update(target_time_slot_id)

            if self.reservation_repository.find_active_by_user_and_slot(
                principal.user_id, target_time_slot_id
            ):
                raise DuplicateReservationException(
                    principal.user_id, target_time_slot_id, target=True
                )

            if target is None:
                raise TimeSlotNotFoundException(target_time_slot_id, target=True)

            booked = self.time_slot_repository.count_booked(target_time_slot_id)
            if booked >= target.capacity:
                raise TimeSlotFullException(target_time_slot_id, target.capacity, target=True)

            try:
                self.reservation_repository.update_slot(reservation_id, target_time_slot_id)
            except IntegrityError as e:
                raise DuplicateReservationException(
                    principal.user_id, target_time_slot_id, target=True
                ) from e

        return self._load_details(reservation_id)

    # Reads

    @BaseService.measure_operation("list_my_reservations")
    def list_my_reservations(self, principal: UserPrincipal) -> List[Reservation]:
        """The acting user's reservations of every status, newest first."""
        self._sync_customer_profile(principal)
        with self.transaction():
            return self.reservation_repository.list_for_user(principal.user_id)

    @BaseService.measure_operation("list_reservations")
    def list_reservations(
        self,
        principal: UserPrincipal,
        time_slot_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Reservation]:
        """
        Staff listing across all users.

        Args:
            principal: Acting lector or admin
            time_slot_id: Only reservations on this slot
            user_id: Only reservations of this user
            status: "booked" or "canceled"

        Raises:
            ForbiddenException: principal is not staff
            ValidationException: status is not a reservation status
        """
        self._require_staff(principal)
        status_filter = self._parse_status(status)
        self._sync_customer_profile(principal)
        with self.transaction():
            return self.reservation_repository.list_filtered(
                time_slot_id=time_slot_id or None,
                user_id=user_id or None,
                status=status_filter,
            )

    @BaseService.measure_operation("list_reservations_for_slot")
    def list_reservations_for_slot(
        self, principal: UserPrincipal, time_slot_id: str
    ) -> List[Reservation]:
        self._require_staff(principal)
        time_slot_id = self._require_id(time_slot_id, "time_slot_id")
        self._sync_customer_profile(principal)
        with self.transaction():
            return self.reservation_repository.list_for_slot(time_slot_id)

    @BaseService.measure_operation("get_reservation")
    def get_reservation(self, principal: UserPrincipal, reservation_id: str) -> Reservation:
        """Staff lookup of a single reservation with slot and customer details."""
        self._require_staff(principal)
        reservation_id = self._require_id(reservation_id, "reservation_id")
        self._sync_customer_profile(principal)
        return self._load_details(reservation_id)

    @BaseService.measure_operation("get_slot_availability")
    def get_slot_availability(self, time_slot_id: str) -> SlotAvailability:
        """Current capacity and booked count of a slot; the count is never cached."""
        time_slot_id = self._require_id(time_slot_id, "time_slot_id")
        with self.transaction():
            availability = self.time_slot_repository.get_availability(time_slot_id)
        if availability is None:
            raise TimeSlotNotFoundException(time_slot_id)
        capacity, booked = availability
        return SlotAvailability(time_slot_id=time_slot_id, capacity=capacity, booked_count=booked)

    # Helpers

    def _cancel(
        self, principal: UserPrincipal, reservation_id: str, enforce_ownership: bool
    ) -> Reservation:
        with self.transaction():
            reservation = self.reservation_repository.get_for_update(reservation_id)
            if reservation is None:
                raise ReservationNotFoundException(reservation_id)
            # Someone else's reservation looks exactly like a missing one
            if enforce_ownership and reservation.user_id != principal.user_id:
                raise ReservationNotFoundException(reservation_id)

            if reservation.is_canceled:
                self.logger.info(f"Reservation {reservation_id} already canceled, nothing to do")
            else:
                self.reservation_repository.update_status(
                    reservation_id,
                    ReservationStatus.CANCELED,
                    canceled_by_id=principal.user_id,
                )

        return self._load_details(reservation_id)

    def _load_details(self, reservation_id: str) -> Reservation:
        with self.transaction():
            reservation = self.reservation_repository.get_with_details(reservation_id)
        if reservation is None:
            raise ReservationNotFoundException(reservation_id)
        return reservation

    def _sync_customer_profile(self, principal: UserPrincipal) -> None:
        """Best effort: a failed profile upsert never blocks a reservation operation."""
        try:
            self.customer_profile_service.sync_profile(principal.user_id, principal.email)
        except ServiceException as e:
            self.logger.warning(f"Customer profile sync failed for {principal.user_id}: {e}")

    @staticmethod
    def _require_id(value: Optional[str], field: str) -> str:
        cleaned = str(value).strip() if value is not None else ""
        if not cleaned:
            raise ValidationException(
                f"{field} is required",
                code="MISSING_IDENTIFIER",
                details={"field": field},
            )
        return cleaned

    @staticmethod
    def _require_staff(principal: UserPrincipal) -> None:
        if not principal.is_staff:
            raise ForbiddenException(
                "Only lectors and administrators can view all reservations",
                code="STAFF_REQUIRED",
            )

    @staticmethod
    def _parse_status(status: Optional[str]) -> Optional[ReservationStatus]:
        if not status:
            return None
        try:
            return ReservationStatus(status.strip().lower())
        except ValueError as e:
            raise ValidationException(
                f"Unknown reservation status: {status}",
                code="INVALID_STATUS",
                details={"allowed": ReservationStatus.values()},
            ) from e
