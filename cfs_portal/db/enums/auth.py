"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Organization membership roles with increasing privilege levels.

    - VIEWER: Read-only access to the CFS queue
    - INTAKE: Takes calls and records notes
    - COORDINATOR: Triage, verification, closure, sharing
    - ADMIN: Everything above plus dispatch, deletion and public tracking
    """

    VIEWER = "viewer"
    INTAKE = "intake"
    COORDINATOR = "coordinator"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class OverrideType(str, Enum):
    """Per-profile permission override direction."""

    GRANT = "grant"
    REVOKE = "revoke"
