"""
Database models for the classbook platform.

- TimeSlot: catalog-owned bookable occurrences (read-only here)
- Reservation: a user's seat on a time slot
- CustomerProfile: cached contact info for staff views
- UserRole: role assignments (USER / LECTOR / ADMIN)
"""

from .customer_profile import CustomerProfile
from .rbac import UserRole
from .reservation import Reservation, ReservationStatus
from .time_slot import TimeSlot

__all__ = [
    "CustomerProfile",
    "Reservation",
    "ReservationStatus",
    "TimeSlot",
    "UserRole",
]
