# backend/classbook/schemas/reservation.py
"""
Reservation response schemas.

Rendered from ORM rows after a service call returns. Nested slot and
customer blocks are filled only when the relationship was loaded, so
building a response never triggers a lazy load outside a transaction.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import ConfigDict
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable

from .base import Money, StandardizedModel


def _loaded_relationship(obj: Any, name: str) -> Any:
    try:
        state = sa_inspect(obj)
    except NoInspectionAvailable:
        return getattr(obj, name, None)
    if name in state.unloaded:
        return None
    return getattr(obj, name)


class TimeSlotInfo(StandardizedModel):
    """Slot details shown next to a reservation."""

    id: str
    title: str
    start_at: datetime
    end_at: datetime
    capacity: int
    price: Optional[Money] = None
    class_type_id: Optional[str] = None
    venue_id: Optional[str] = None


class CustomerInfo(StandardizedModel):
    """Cached contact details of the reservation holder (staff views)."""

    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None


class ReservationResponse(StandardizedModel):
    """A reservation with its slot and, when known, its customer."""

    id: str
    user_id: str
    time_slot_id: str
    status: str
    created_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    canceled_by_id: Optional[str] = None

    time_slot: Optional[TimeSlotInfo] = None
    customer: Optional[CustomerInfo] = None

    model_config = ConfigDict(from_attributes=True, validate_assignment=False)

    @classmethod
    def from_reservation(cls, reservation: Any) -> "ReservationResponse":
        """Create ReservationResponse from a Reservation ORM row."""
        time_slot = _loaded_relationship(reservation, "time_slot")
        customer = _loaded_relationship(reservation, "customer")

        return cls(
            id=reservation.id,
            user_id=reservation.user_id,
            time_slot_id=reservation.time_slot_id,
            status=reservation.status,
            created_at=reservation.created_at,
            canceled_at=reservation.canceled_at,
            canceled_by_id=reservation.canceled_by_id,
            time_slot=TimeSlotInfo.model_validate(time_slot) if time_slot is not None else None,
            customer=CustomerInfo.model_validate(customer) if customer is not None else None,
        )


class SlotAvailabilityResponse(StandardizedModel):
    time_slot_id: str
    capacity: int
    booked_count: int
    spots_left: int
    is_full: bool


class PrincipalResponse(StandardizedModel):
    """Who the caller is, as the reservation core sees them."""

    user_id: str
    email: Optional[str] = None
    role: str

    @classmethod
    def from_principal(cls, principal: Any) -> "PrincipalResponse":
        role = principal.role
        return cls(
            user_id=principal.user_id,
            email=principal.email,
            role=getattr(role, "value", role),
        )
