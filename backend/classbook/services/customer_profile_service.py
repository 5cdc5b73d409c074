"""
Customer Profile Service for the classbook platform

Keeps the denormalized customer contact cache in step with the identity
provider. Reservation operations call sync_profile opportunistically; the
backfill command fills gaps for users who booked before profiles existed.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.customer_profile import CustomerProfile
from ..repositories.customer_profile_repository import CustomerProfileRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.reservation_repository import ReservationRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class CustomerProfileService(BaseService):
    """Customer profile upserts and backfill."""

    def __init__(
        self,
        db: Session,
        profile_repository: Optional[CustomerProfileRepository] = None,
        reservation_repository: Optional[ReservationRepository] = None,
    ):
        super().__init__(db)
        self.profile_repository = (
            profile_repository or RepositoryFactory.create_customer_profile_repository(db)
        )
        self.reservation_repository = (
            reservation_repository or RepositoryFactory.create_reservation_repository(db)
        )

    @BaseService.measure_operation("sync_profile")
    def sync_profile(self, user_id: str, email: Optional[str]) -> Optional[CustomerProfile]:
        """
        Record the user's current email.

        Returns None without touching the database when no email is known.
        """
        if not email:
            return None

        with self.transaction():
            profile = self.profile_repository.upsert_email(user_id, email)

        self.logger.debug(f"Synced customer profile for {user_id}")
        return profile

    @BaseService.measure_operation("find_missing_profiles")
    def find_users_missing_profiles(self) -> List[str]:
        """User ids that hold reservations but have no profile row."""
        with self.transaction():
            return self._missing_user_ids()

    def _missing_user_ids(self) -> List[str]:
        user_ids = self.reservation_repository.distinct_user_ids()
        existing = self.profile_repository.find_existing_user_ids(user_ids)
        return sorted(user_id for user_id in user_ids if user_id not in existing)

    @BaseService.measure_operation("backfill_missing_profiles")
    def backfill_missing_profiles(self) -> int:
        """
        Create empty profiles for every reservation holder without one.

        Returns:
            Number of profiles created
        """
        with self.transaction():
            created = self.profile_repository.create_missing(self._missing_user_ids())

        self.log_operation("backfill_missing_profiles", profiles_created=created)
        return created
