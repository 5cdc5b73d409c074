"""Role lookups and principal resolution."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..principal import UserPrincipal
from ..repositories.factory import RepositoryFactory
from ..repositories.user_role_repository import UserRoleRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class RoleService(BaseService):
    """Turns a verified identity into a UserPrincipal carrying its role."""

    def __init__(self, db: Session, role_repository: Optional[UserRoleRepository] = None):
        super().__init__(db)
        self.role_repository = role_repository or RepositoryFactory.create_user_role_repository(db)

    @BaseService.measure_operation("get_role")
    def get_role(self, user_id: str) -> RoleName:
        with self.transaction():
            return self.role_repository.get_role(user_id)

    @BaseService.measure_operation("resolve_principal")
    def resolve_principal(self, user_id: str, email: Optional[str] = None) -> UserPrincipal:
        """Build the principal for an authenticated user; unknown users are USER."""
        return UserPrincipal(user_id=user_id, email=email, role=self.get_role(user_id))
