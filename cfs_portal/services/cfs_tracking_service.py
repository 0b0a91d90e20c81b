"""Public tracking projection for a call."""

from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext, require_capability
from cfs_portal.schemas.cfs import PublicTrackingEnable
from cfs_portal.services import cfs_procedures
from cfs_portal.services.cfs_errors import CfsValidationError
from cfs_portal.services.cfs_lifecycle import CfsActionResult, complete_transition


def enable_public_tracking(
    db: Session, ctx: AccessContext, cfs_id: int, data: PublicTrackingEnable
) -> CfsActionResult:
    require_capability(ctx, "can_public_track_cfs", "You do not have permission to update public tracking.")

    field_errors: dict[str, str] = {}
    if not data.public_category:
        field_errors["public_category"] = "Select a public category."
    if not data.public_location_area:
        field_errors["public_location_area"] = "Provide a public location area."
    if field_errors:
        raise CfsValidationError("Provide a public category and location to enable tracking.", field_errors)

    tracking_id = cfs_procedures.public_tracking_upsert(
        db,
        ctx,
        cfs_id,
        category=data.public_category.value,
        location_area=data.public_location_area,
        summary=data.public_summary,
    )
    return complete_transition(db, ctx, cfs_id, "Public tracking enabled.", tracking_id=tracking_id)


def disable_public_tracking(db: Session, ctx: AccessContext, cfs_id: int) -> CfsActionResult:
    require_capability(ctx, "can_public_track_cfs", "You do not have permission to update public tracking.")

    cfs_procedures.public_tracking_disable(db, ctx, cfs_id)
    return complete_transition(db, ctx, cfs_id, "Public tracking disabled.")
