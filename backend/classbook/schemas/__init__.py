# backend/classbook/schemas/__init__.py
"""Response schemas of the classbook reservation core."""

from .base import Money, StandardizedModel
from .reservation import (
    CustomerInfo,
    PrincipalResponse,
    ReservationResponse,
    SlotAvailabilityResponse,
    TimeSlotInfo,
)

__all__ = [
    "CustomerInfo",
    "Money",
    "PrincipalResponse",
    "ReservationResponse",
    "SlotAvailabilityResponse",
    "StandardizedModel",
    "TimeSlotInfo",
]
