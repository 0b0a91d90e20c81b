"""Permission registry with metadata for UI and validation.

All CFS permissions are defined here with labels, descriptions, and
categories. Capabilities in the AccessContext are derived from these keys.

Precedence: revoke > grant > role_default
Global admins: always hold every permission (immutable)
Unapproved profiles: hold nothing
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class PermissionDef:
    """Permission definition with metadata."""
    key: str
    label: str
    description: str
    category: str


class PermissionCategory(str, Enum):
    """Permission categories for UI grouping."""
    CALLS = "Calls for Service"
    DISPATCH = "Dispatch"
    SHARING = "Sharing"


# =============================================================================
# Permission Registry
# =============================================================================

PERMISSION_REGISTRY: dict[str, PermissionDef] = {
    "cfs.read": PermissionDef(
        "cfs.read", "View Calls",
        "See the call queue and call details", PermissionCategory.CALLS
    ),
    "cfs.create": PermissionDef(
        "cfs.create", "Create Calls",
        "Record new calls for service", PermissionCategory.CALLS
    ),
    "cfs.update": PermissionDef(
        "cfs.update", "Update Calls",
        "Close, merge, annotate calls and upload evidence", PermissionCategory.CALLS
    ),
    "cfs.triage": PermissionDef(
        "cfs.triage", "Triage Calls",
        "Assess priority and verify reports", PermissionCategory.CALLS
    ),
    "cfs.delete": PermissionDef(
        "cfs.delete", "Delete Call Files",
        "Remove evidence attachments", PermissionCategory.CALLS
    ),
    "cfs.dispatch": PermissionDef(
        "cfs.dispatch", "Dispatch Calls",
        "Convert calls to incidents and transfer ownership", PermissionCategory.DISPATCH
    ),
    "cfs.share": PermissionDef(
        "cfs.share", "Share Calls",
        "Grant and revoke partner organization access", PermissionCategory.SHARING
    ),
    "cfs.public_track": PermissionDef(
        "cfs.public_track", "Public Tracking",
        "Publish a call on the public tracking page", PermissionCategory.SHARING
    ),
}


# =============================================================================
# Default Role Permissions
# =============================================================================

# Which permissions each role has by default (before overrides)
ROLE_DEFAULTS: dict[str, set[str]] = {
    "viewer": {
        "cfs.read",
    },
    "intake": {
        "cfs.read",
        "cfs.create",
        "cfs.update",
    },
    "coordinator": {
        "cfs.read",
        "cfs.create",
        "cfs.update",
        "cfs.triage",
        "cfs.share",
    },
    "admin": set(PERMISSION_REGISTRY.keys()),  # All permissions
}


# =============================================================================
# Helper Functions
# =============================================================================

def is_valid_permission(key: str) -> bool:
    """Check if permission key exists."""
    return key in PERMISSION_REGISTRY


def get_role_default_permissions(role: str) -> set[str]:
    """Get default permissions for a role."""
    return ROLE_DEFAULTS.get(role, set())
