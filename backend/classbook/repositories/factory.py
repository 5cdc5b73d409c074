# backend/classbook/repositories/factory.py
"""
Repository Factory for the classbook platform

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .customer_profile_repository import CustomerProfileRepository
    from .reservation_repository import ReservationRepository
    from .time_slot_repository import TimeSlotRepository
    from .user_role_repository import UserRoleRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_reservation_repository(db: Session) -> "ReservationRepository":
        """Create repository for reservation operations."""
        from .reservation_repository import ReservationRepository

        return ReservationRepository(db)

    @staticmethod
    def create_time_slot_repository(db: Session) -> "TimeSlotRepository":
        """Create repository for time slot reads and seat counting."""
        from .time_slot_repository import TimeSlotRepository

        return TimeSlotRepository(db)

    @staticmethod
    def create_customer_profile_repository(db: Session) -> "CustomerProfileRepository":
        """Create repository for customer profile upserts."""
        from .customer_profile_repository import CustomerProfileRepository

        return CustomerProfileRepository(db)

    @staticmethod
    def create_user_role_repository(db: Session) -> "UserRoleRepository":
        """Create repository for role lookups."""
        from .user_role_repository import UserRoleRepository

        return UserRoleRepository(db)
