"""Repository for user role assignments."""

from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..models.rbac import UserRole
from .base_repository import BaseRepository


class UserRoleRepository(BaseRepository[UserRole]):
    """Role lookups keyed by user id."""

    def __init__(self, db: Session):
        super().__init__(db, UserRole)

    def get_role(self, user_id: str) -> RoleName:
        """Return the stored role, or USER when none is assigned."""
        row = self.find_one_by(user_id=user_id)
        if row is None:
            return RoleName.USER
        return RoleName.parse(row.role)

    def set_role(self, user_id: str, role: RoleName) -> UserRole:
        """Assign a role, replacing any previous one."""
        row = self.find_one_by(user_id=user_id)
        if row is None:
            return self.create(user_id=user_id, role=role.value)
        row.role = role.value
        self.db.flush()
        return row
