"""Permission service for RBAC with precedence.

Resolution order: revoke > grant > role_default
Global admins: always hold every permission (no DB lookup)
Missing permission: defaults to False (deny)
"""

import uuid

from sqlalchemy.orm import Session

from cfs_portal.core.permissions import (
    PERMISSION_REGISTRY,
    get_role_default_permissions,
    is_valid_permission,
)
from cfs_portal.db.enums import OverrideType
from cfs_portal.db.models import ProfilePermissionOverride


# =============================================================================
# Permission Resolution
# =============================================================================

def get_effective_permissions(
    db: Session,
    org_id: int,
    profile_id: uuid.UUID,
    role: str | None,
) -> set[str]:
    """
    Get effective permissions for a profile inside one organization.

    Resolution: role_defaults + grants - revokes
    Unknown permission keys in override rows are ignored.
    """
    effective = get_role_default_permissions(role).copy() if role else set()

    overrides = db.query(ProfilePermissionOverride).filter(
        ProfilePermissionOverride.organization_id == org_id,
        ProfilePermissionOverride.profile_id == profile_id,
    ).all()

    # Grants first so a revoke always wins
    for override in overrides:
        if override.override_type == OverrideType.GRANT.value and is_valid_permission(override.permission):
            effective.add(override.permission)
    for override in overrides:
        if override.override_type == OverrideType.REVOKE.value:
            effective.discard(override.permission)

    return effective


def all_permissions() -> set[str]:
    """Every registered permission key (global admins)."""
    return set(PERMISSION_REGISTRY.keys())


# =============================================================================
# Permission Modification
# =============================================================================

def set_override(
    db: Session,
    org_id: int,
    profile_id: uuid.UUID,
    permission: str,
    override_type: OverrideType,
) -> ProfilePermissionOverride:
    """Create or replace a profile override. Caller commits."""
    if not is_valid_permission(permission):
        raise ValueError(f"Unknown permission: {permission}")

    existing = db.query(ProfilePermissionOverride).filter(
        ProfilePermissionOverride.organization_id == org_id,
        ProfilePermissionOverride.profile_id == profile_id,
        ProfilePermissionOverride.permission == permission,
    ).first()
    if existing:
        existing.override_type = override_type.value
        db.flush()
        return existing

    override = ProfilePermissionOverride(
        organization_id=org_id,
        profile_id=profile_id,
        permission=permission,
        override_type=override_type.value,
    )
    db.add(override)
    db.flush()
    return override
