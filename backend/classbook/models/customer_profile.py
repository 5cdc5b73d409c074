"""Denormalized contact details of users who hold reservations."""

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class CustomerProfile(Base):
    """
    Cached contact info keyed by the auth provider's user id.

    Not authoritative identity; kept for staff-facing reservation lists.
    """

    __tablename__ = "customer_profiles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=True)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<CustomerProfile user_id={self.user_id} email={self.email}>"


__all__ = ["CustomerProfile"]
