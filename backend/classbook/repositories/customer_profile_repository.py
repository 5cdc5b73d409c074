"""Repository for cached customer contact details."""

import logging
from typing import Iterable, Optional, Set

from sqlalchemy import insert, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func
import ulid

from ..core.exceptions import RepositoryException
from ..models.customer_profile import CustomerProfile
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CustomerProfileRepository(BaseRepository[CustomerProfile]):
    """Upserts and lookups of customer profiles keyed by user id."""

    def __init__(self, db: Session):
        super().__init__(db, CustomerProfile)

    def get_by_user_id(self, user_id: str) -> Optional[CustomerProfile]:
        return self.find_one_by(user_id=user_id)

    def upsert_email(self, user_id: str, email: str) -> CustomerProfile:
        """
        Insert the profile or overwrite its email.

        Uses the dialect's INSERT ... ON CONFLICT so concurrent first
        requests from the same user cannot collide on the unique user_id.
        """
        values = {"id": str(ulid.ULID()), "user_id": user_id, "email": email}
        try:
            dialect = self.dialect_name
            if dialect in ("postgresql", "sqlite"):
                insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
                stmt = insert_fn(CustomerProfile).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["user_id"],
                    set_={"email": stmt.excluded.email, "updated_at": func.now()},
                )
                self.db.execute(stmt)
            else:
                updated = self.db.execute(
                    update(CustomerProfile)
                    .where(CustomerProfile.user_id == user_id)
                    .values(email=email)
                )
                if not updated.rowcount:
                    self.db.execute(insert(CustomerProfile).values(**values))
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error upserting customer profile for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to upsert customer profile: {str(e)}") from e

        profile = (
            self.db.query(CustomerProfile)
            .filter(CustomerProfile.user_id == user_id)
            .populate_existing()
            .first()
        )
        if profile is None:
            raise RepositoryException(f"Customer profile for {user_id} missing after upsert")
        return profile

    def find_existing_user_ids(self, user_ids: Iterable[str]) -> Set[str]:
        """Return the subset of user ids that already have a profile."""
        ids = list(user_ids)
        if not ids:
            return set()
        query = self.db.query(CustomerProfile.user_id).filter(CustomerProfile.user_id.in_(ids))
        return {row[0] for row in self._execute_query(query)}

    def create_missing(self, user_ids: Iterable[str]) -> int:
        """
        Create empty profiles for the given user ids.

        Rows that appear concurrently (a profile sync racing the backfill)
        are skipped through ON CONFLICT DO NOTHING.

        Returns:
            Number of profiles actually inserted
        """
        rows = [{"id": str(ulid.ULID()), "user_id": user_id} for user_id in user_ids]
        if not rows:
            return 0
        try:
            dialect = self.dialect_name
            if dialect in ("postgresql", "sqlite"):
                insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
                stmt = insert_fn(CustomerProfile).values(rows)
                stmt = stmt.on_conflict_do_nothing(index_elements=["user_id"])
                inserted = self.db.execute(stmt).rowcount
            else:
                existing = self.find_existing_user_ids(row["user_id"] for row in rows)
                rows = [row for row in rows if row["user_id"] not in existing]
                if rows:
                    self.db.execute(insert(CustomerProfile).values(rows))
                inserted = len(rows)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating customer profiles: {str(e)}")
            raise RepositoryException(f"Failed to create customer profiles: {str(e)}") from e
        return inserted
