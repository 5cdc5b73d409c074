# backend/classbook/repositories/__init__.py
"""
Repository Pattern Implementation for the classbook platform

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Generic lookups, counting and flush-only creation
- RepositoryFactory: Factory for creating repository instances
- TimeSlotRepository: Slot lookups, row locks and booked-seat counting
- ReservationRepository: Reservation store (create, status, slot moves, listings)
- CustomerProfileRepository: Customer contact upserts and backfill helpers
- UserRoleRepository: Role lookups

Usage:
    from classbook.repositories import RepositoryFactory

    repository = RepositoryFactory.create_reservation_repository(db)
    active = repository.find_active_by_user_and_slot(user_id, slot_id)
"""

from .base_repository import BaseRepository
from .customer_profile_repository import CustomerProfileRepository
from .factory import RepositoryFactory
from .reservation_repository import ReservationRepository
from .time_slot_repository import TimeSlotRepository
from .user_role_repository import UserRoleRepository

__all__ = [
    "BaseRepository",
    "CustomerProfileRepository",
    "RepositoryFactory",
    "ReservationRepository",
    "TimeSlotRepository",
    "UserRoleRepository",
]
