# backend/classbook/core/enums.py
"""
Core enums for the classbook platform.

Roles are stored per user in the user_roles table; a user without a
stored role is a regular USER.
"""

from enum import Enum


class RoleName(str, Enum):
    """Standard role names."""

    USER = "USER"
    LECTOR = "LECTOR"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: object) -> "RoleName":
        """Return the matching role, falling back to USER for unknown values."""
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.USER


STAFF_ROLES = frozenset({RoleName.LECTOR, RoleName.ADMIN})
