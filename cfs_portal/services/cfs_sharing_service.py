"""Sharing a call with partner organizations.

One grant row per (call, organization); granting again updates the level.
Neither operation notifies the reporter.
"""

from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext, require_capability
from cfs_portal.schemas.cfs import OrgAccessGrant
from cfs_portal.services import cfs_procedures
from cfs_portal.services.cfs_lifecycle import CfsActionResult, complete_transition


def grant_org_access(db: Session, ctx: AccessContext, cfs_id: int, data: OrgAccessGrant) -> CfsActionResult:
    require_capability(ctx, "can_share_cfs", "You do not have permission to share this call.")

    cfs_procedures.grant_org_access(
        db,
        ctx,
        cfs_id,
        organization_id=data.organization_id,
        access_level=data.access_level.value,
        reason=data.reason,
    )
    return complete_transition(db, ctx, cfs_id, "Organization added.")


def revoke_org_access(
    db: Session,
    ctx: AccessContext,
    cfs_id: int,
    organization_id: int,
    reason: str | None = None,
) -> CfsActionResult:
    """Remove a grant. Revoking a grant that does not exist still succeeds."""
    require_capability(ctx, "can_share_cfs", "You do not have permission to revoke access.")

    cfs_procedures.revoke_org_access(db, ctx, cfs_id, organization_id=organization_id, reason=reason)
    return complete_transition(db, ctx, cfs_id, "Access revoked.")
