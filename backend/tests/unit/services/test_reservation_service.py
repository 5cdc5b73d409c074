"""
Reservation service behavior against a real (in-memory SQLite) database.

Covers booking to capacity, duplicate detection, cancel idempotence and
ownership, admin cancel, and every reschedule failure path.
"""

from unittest.mock import Mock, patch

import pytest

from classbook.core.enums import RoleName
from classbook.core.exceptions import (
    DuplicateReservationException,
    ForbiddenException,
    ReservationCanceledException,
    ReservationNotFoundException,
    ServiceException,
    TimeSlotFullException,
    TimeSlotNotFoundException,
    ValidationException,
)
from classbook.models.customer_profile import CustomerProfile
from classbook.models.reservation import Reservation, ReservationStatus
from classbook.principal import UserPrincipal
from classbook.services.reservation_service import ReservationService, SlotAvailability


def _booked_count(db, slot_id):
    return (
        db.query(Reservation)
        .filter_by(time_slot_id=slot_id, status=ReservationStatus.BOOKED.value)
        .count()
    )


@pytest.mark.unit
class TestBook:
    def test_booking_to_full(self, db, reservation_service, make_slot, user_a, user_b, user_c):
        slot = make_slot(capacity=2)

        first = reservation_service.book(user_a, slot.id)
        second = reservation_service.book(user_b, slot.id)

        assert first.status == ReservationStatus.BOOKED.value
        assert second.status == ReservationStatus.BOOKED.value
        assert first.time_slot.id == slot.id

        with pytest.raises(TimeSlotFullException) as exc_info:
            reservation_service.book(user_c, slot.id)

        assert exc_info.value.message == "Event is full"
        assert _booked_count(db, slot.id) == 2

    def test_duplicate_booking(self, db, reservation_service, make_slot, user_a):
        slot = make_slot(capacity=5)
        reservation_service.book(user_a, slot.id)

        with pytest.raises(DuplicateReservationException) as exc_info:
            reservation_service.book(user_a, slot.id)

        assert exc_info.value.message == "You already have a reservation for this event"
        assert _booked_count(db, slot.id) == 1

    def test_duplicate_reported_before_full(self, reservation_service, make_slot, user_a):
        slot = make_slot(capacity=1)
        reservation_service.book(user_a, slot.id)

        with pytest.raises(DuplicateReservationException):
            reservation_service.book(user_a, slot.id)

    def test_missing_slot(self, reservation_service, user_a):
        with pytest.raises(TimeSlotNotFoundException):
            reservation_service.book(user_a, "01JNOSUCHSLOT0000000000000")

    @pytest.mark.parametrize("slot_id", ["", "   ", None])
    def test_blank_slot_id(self, reservation_service, user_a, slot_id):
        with pytest.raises(ValidationException):
            reservation_service.book(user_a, slot_id)

    def test_cancel_then_rebook_creates_new_reservation(
        self, db, reservation_service, make_slot, user_a
    ):
        slot = make_slot(capacity=1)
        original = reservation_service.book(user_a, slot.id)

        canceled = reservation_service.cancel(user_a, original.id)
        rebooked = reservation_service.book(user_a, slot.id)

        assert canceled.status == ReservationStatus.CANCELED.value
        assert rebooked.id != original.id
        assert rebooked.status == ReservationStatus.BOOKED.value
        db.expire_all()
        assert db.get(Reservation, original.id).status == ReservationStatus.CANCELED.value

    def test_canceled_seats_do_not_count(self, reservation_service, make_slot, user_a, user_b):
        slot = make_slot(capacity=1)
        reservation = reservation_service.book(user_a, slot.id)
        reservation_service.cancel(user_a, reservation.id)

        assert reservation_service.book(user_b, slot.id).status == ReservationStatus.BOOKED.value

    def test_unique_index_race_reported_as_duplicate(
        self, db, reservation_service, make_slot, user_a, make_reservation
    ):
        slot = make_slot(capacity=5)
        make_reservation(user_a.user_id, slot)

        # Simulate a concurrent booking that committed after the duplicate check
        with patch.object(
            reservation_service.reservation_repository,
            "find_active_by_user_and_slot",
            return_value=None,
        ):
            with pytest.raises(DuplicateReservationException):
                reservation_service.book(user_a, slot.id)

        assert _booked_count(db, slot.id) == 1

    def test_syncs_customer_profile(self, db, reservation_service, make_slot, user_a):
        slot = make_slot()

        reservation = reservation_service.book(user_a, slot.id)

        profile = db.query(CustomerProfile).filter_by(user_id=user_a.user_id).one()
        assert profile.email == "a@example.com"
        assert reservation.customer.email == "a@example.com"

    def test_profile_sync_failure_does_not_block_booking(self, db, make_slot, user_a):
        profiles = Mock()
        profiles.sync_profile.side_effect = ServiceException("profile store down")
        service = ReservationService(db, customer_profile_service=profiles)
        slot = make_slot()

        reservation = service.book(user_a, slot.id)

        assert reservation.status == ReservationStatus.BOOKED.value
        profiles.sync_profile.assert_called_once_with(user_a.user_id, user_a.email)

    def test_without_email_no_profile_is_written(self, db, reservation_service, make_slot):
        slot = make_slot()

        reservation_service.book(UserPrincipal(user_id="anon"), slot.id)

        assert db.query(CustomerProfile).count() == 0

    def test_records_metrics(self, reservation_service, make_slot, user_a, user_b):
        slot = make_slot(capacity=1)
        reservation_service.book(user_a, slot.id)
        with pytest.raises(TimeSlotFullException):
            reservation_service.book(user_b, slot.id)

        metrics = reservation_service.get_metrics()["book"]
        assert metrics["success_count"] == 1
        assert metrics["failure_count"] == 1


@pytest.mark.unit
class TestCancel:
    def test_cancel_own_reservation(self, reservation_service, make_slot, user_a):
        reservation = reservation_service.book(user_a, make_slot().id)

        canceled = reservation_service.cancel(user_a, reservation.id)

        assert canceled.status == ReservationStatus.CANCELED.value
        assert canceled.canceled_by_id == user_a.user_id
        assert canceled.canceled_at is not None

    def test_cancel_is_idempotent(self, reservation_service, make_slot, user_a):
        reservation = reservation_service.book(user_a, make_slot().id)

        first = reservation_service.cancel(user_a, reservation.id)
        second = reservation_service.cancel(user_a, reservation.id)

        assert first.status == second.status == ReservationStatus.CANCELED.value
        assert first.canceled_at == second.canceled_at

    def test_foreign_reservation_looks_missing(self, reservation_service, make_slot, user_a, user_b):
        reservation = reservation_service.book(user_a, make_slot().id)

        with pytest.raises(ReservationNotFoundException) as foreign:
            reservation_service.cancel(user_b, reservation.id)
        with pytest.raises(ReservationNotFoundException) as missing:
            reservation_service.cancel(user_b, "01JNOSUCHRESERVATION000000")

        assert foreign.value.message == missing.value.message == "Reservation not found"
        assert foreign.value.code == missing.value.code

    def test_admin_cancels_any_reservation(self, reservation_service, make_slot, user_a, admin):
        reservation = reservation_service.book(user_a, make_slot().id)

        canceled = reservation_service.admin_cancel(admin, reservation.id)

        assert canceled.status == ReservationStatus.CANCELED.value
        assert canceled.canceled_by_id == admin.user_id

    def test_admin_cancel_is_idempotent(self, reservation_service, make_slot, user_a, admin):
        reservation = reservation_service.book(user_a, make_slot().id)
        by_owner = reservation_service.cancel(user_a, reservation.id)

        again = reservation_service.admin_cancel(admin, reservation.id)

        assert again.status == ReservationStatus.CANCELED.value
        assert again.canceled_at == by_owner.canceled_at
        assert again.canceled_by_id == user_a.user_id

    def test_admin_cancel_missing(self, reservation_service, admin):
        with pytest.raises(ReservationNotFoundException):
            reservation_service.admin_cancel(admin, "01JNOSUCHRESERVATION000000")

    @pytest.mark.parametrize("role", [RoleName.USER, RoleName.LECTOR])
    def test_admin_cancel_requires_admin(self, reservation_service, make_slot, user_a, role):
        reservation = reservation_service.book(user_a, make_slot().id)
        principal = UserPrincipal(user_id="someone", role=role)

        with pytest.raises(ForbiddenException):
            reservation_service.admin_cancel(principal, reservation.id)

    def test_cancel_reservation_dispatches_on_as_admin(
        self, reservation_service, make_slot, user_a, admin
    ):
        own = reservation_service.book(user_a, make_slot().id)
        other = reservation_service.book(user_a, make_slot(title="Evening Pilates").id)

        assert (
            reservation_service.cancel_reservation(user_a, own.id, as_admin=False).status
            == ReservationStatus.CANCELED.value
        )
        assert (
            reservation_service.cancel_reservation(admin, other.id, as_admin=True).canceled_by_id
            == admin.user_id
        )
        with pytest.raises(ReservationNotFoundException):
            reservation_service.cancel_reservation(admin, other.id, as_admin=False)


@pytest.mark.unit
class TestReschedule:
    def test_moves_reservation(self, db, reservation_service, make_slot, user_a):
        source = make_slot(capacity=1)
        target = make_slot(capacity=1, title="Evening Pilates")
        reservation = reservation_service.book(user_a, source.id)

        moved = reservation_service.reschedule(user_a, reservation.id, target.id)

        assert moved.id == reservation.id
        assert moved.time_slot_id == target.id
        assert moved.time_slot.title == "Evening Pilates"
        assert moved.status == ReservationStatus.BOOKED.value
        assert _booked_count(db, source.id) == 0
        assert _booked_count(db, target.id) == 1

    def test_freed_seat_can_be_booked(self, reservation_service, make_slot, user_a, user_b):
        source = make_slot(capacity=1)
        target = make_slot(capacity=1, title="Evening Pilates")
        reservation = reservation_service.book(user_a, source.id)

        reservation_service.reschedule(user_a, reservation.id, target.id)

        assert reservation_service.book(user_b, source.id).status == ReservationStatus.BOOKED.value

    def test_into_duplicate(self, reservation_service, make_slot, user_a):
        slot_x = make_slot()
        slot_y = make_slot(title="Evening Pilates")
        on_x = reservation_service.book(user_a, slot_x.id)
        reservation_service.book(user_a, slot_y.id)

        with pytest.raises(DuplicateReservationException) as exc_info:
            reservation_service.reschedule(user_a, on_x.id, slot_y.id)

        assert exc_info.value.message == "You already have a reservation for the target event"

    def test_into_full_slot(self, db, reservation_service, make_slot, user_a, user_b):
        source = make_slot()
        target = make_slot(capacity=1, title="Evening Pilates")
        reservation = reservation_service.book(user_a, source.id)
        reservation_service.book(user_b, target.id)

        with pytest.raises(TimeSlotFullException) as exc_info:
            reservation_service.reschedule(user_a, reservation.id, target.id)

        assert exc_info.value.message == "Target event is full"
        db.expire_all()
        assert db.get(Reservation, reservation.id).time_slot_id == source.id

    def test_missing_target(self, reservation_service, make_slot, user_a):
        reservation = reservation_service.book(user_a, make_slot().id)

        with pytest.raises(TimeSlotNotFoundException) as exc_info:
            reservation_service.reschedule(user_a, reservation.id, "01JNOSUCHSLOT0000000000000")

        assert exc_info.value.message == "Target event not found"

    def test_same_slot(self, reservation_service, make_slot, user_a):
        slot = make_slot()
        reservation = reservation_service.book(user_a, slot.id)

        with pytest.raises(ValidationException):
            reservation_service.reschedule(user_a, reservation.id, slot.id)

    def test_blank_target(self, reservation_service, make_slot, user_a):
        reservation = reservation_service.book(user_a, make_slot().id)

        with pytest.raises(ValidationException):
            reservation_service.reschedule(user_a, reservation.id, "")

    def test_foreign_reservation(self, reservation_service, make_slot, user_a, user_b):
        reservation = reservation_service.book(user_a, make_slot().id)
        target = make_slot(title="Evening Pilates")

        with pytest.raises(ReservationNotFoundException):
            reservation_service.reschedule(user_b, reservation.id, target.id)

    def test_canceled_reservation_stays_canceled(self, db, reservation_service, make_slot, user_a):
        source = make_slot()
        target = make_slot(title="Evening Pilates")
        reservation = reservation_service.book(user_a, source.id)
        reservation_service.cancel(user_a, reservation.id)

        with pytest.raises(ReservationCanceledException):
            reservation_service.reschedule(user_a, reservation.id, target.id)

        db.expire_all()
        row = db.get(Reservation, reservation.id)
        assert row.status == ReservationStatus.CANCELED.value
        assert row.time_slot_id == source.id


@pytest.mark.unit
class TestReads:
    def test_list_my_reservations(self, reservation_service, make_slot, user_a, user_b):
        slot = make_slot(capacity=5)
        mine = reservation_service.book(user_a, slot.id)
        reservation_service.book(user_b, slot.id)
        reservation_service.cancel(user_a, mine.id)

        rows = reservation_service.list_my_reservations(user_a)

        assert [row.id for row in rows] == [mine.id]
        assert rows[0].status == ReservationStatus.CANCELED.value

    def test_staff_listing_with_filters(
        self, reservation_service, make_slot, user_a, user_b, lector
    ):
        slot = make_slot(capacity=5)
        other = make_slot(capacity=5, title="Evening Pilates")
        first = reservation_service.book(user_a, slot.id)
        reservation_service.book(user_b, slot.id)
        reservation_service.book(user_b, other.id)
        reservation_service.cancel(user_a, first.id)

        assert len(reservation_service.list_reservations(lector)) == 3
        assert len(reservation_service.list_reservations(lector, time_slot_id=slot.id)) == 2
        assert len(reservation_service.list_reservations(lector, user_id=user_b.user_id)) == 2
        canceled = reservation_service.list_reservations(lector, status="CANCELED")
        assert [row.id for row in canceled] == [first.id]
        assert len(reservation_service.list_reservations_for_slot(lector, slot.id)) == 2

    def test_staff_listing_includes_customer(self, reservation_service, make_slot, user_a, admin):
        slot = make_slot()
        reservation_service.book(user_a, slot.id)

        rows = reservation_service.list_reservations_for_slot(admin, slot.id)

        assert rows[0].customer.email == "a@example.com"

    def test_listing_rejects_unknown_status(self, reservation_service, lector):
        with pytest.raises(ValidationException) as exc_info:
            reservation_service.list_reservations(lector, status="pending")

        assert exc_info.value.details["allowed"] == ["booked", "canceled"]

    def test_staff_reads_forbidden_for_users(self, reservation_service, make_slot, user_a):
        slot = make_slot()
        reservation = reservation_service.book(user_a, slot.id)

        with pytest.raises(ForbiddenException):
            reservation_service.list_reservations(user_a)
        with pytest.raises(ForbiddenException):
            reservation_service.list_reservations_for_slot(user_a, slot.id)
        with pytest.raises(ForbiddenException):
            reservation_service.get_reservation(user_a, reservation.id)

    def test_get_reservation(self, reservation_service, make_slot, user_a, lector):
        reservation = reservation_service.book(user_a, make_slot().id)

        assert reservation_service.get_reservation(lector, reservation.id).id == reservation.id
        with pytest.raises(ReservationNotFoundException):
            reservation_service.get_reservation(lector, "01JNOSUCHRESERVATION000000")

    def test_slot_availability(self, reservation_service, make_slot, user_a, user_b):
        slot = make_slot(capacity=2)
        reservation_service.book(user_a, slot.id)

        availability = reservation_service.get_slot_availability(slot.id)
        assert availability == SlotAvailability(slot.id, capacity=2, booked_count=1)
        assert availability.spots_left == 1
        assert availability.is_full is False

        reservation_service.book(user_b, slot.id)
        assert reservation_service.get_slot_availability(slot.id).is_full is True

    def test_slot_availability_missing(self, reservation_service):
        with pytest.raises(TimeSlotNotFoundException):
            reservation_service.get_slot_availability("01JNOSUCHSLOT0000000000000")
