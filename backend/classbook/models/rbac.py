"""Role assignments for users authenticated by the external provider."""

from sqlalchemy import CheckConstraint, Column, DateTime, String
from sqlalchemy.sql import func

from ..core.enums import RoleName
from ..database import Base


class UserRole(Base):
    """One role per user; users without a row are regular users."""

    __tablename__ = "user_roles"

    user_id = Column(String(64), primary_key=True)
    role = Column(String(20), nullable=False, default=RoleName.USER.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("role IN ('USER', 'LECTOR', 'ADMIN')", name="ck_user_roles_role"),
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<UserRole user_id={self.user_id} role={self.role}>"


__all__ = ["UserRole"]
