"""Identity context passed explicitly into every reservation operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.enums import STAFF_ROLES, RoleName


@dataclass(frozen=True)
class UserPrincipal:
    """Authenticated end user resolved from a verified token."""

    user_id: str
    email: Optional[str] = None
    role: RoleName = RoleName.USER

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN

    @property
    def is_staff(self) -> bool:
        """Lectors and admins may read every reservation."""
        return self.role in STAFF_ROLES
