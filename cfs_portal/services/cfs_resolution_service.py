"""Resolution of calls: dismiss, merge, convert to incident, transfer ownership."""

import logging

from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext, require_capability
from cfs_portal.core.structured_logging import build_log_context
from cfs_portal.schemas.cfs import CfsConvert, CfsDismiss, CfsDuplicate, CfsTransfer
from cfs_portal.services import cfs_notifications, cfs_procedures
from cfs_portal.services.cfs_errors import StoreProcedureError
from cfs_portal.services.cfs_lifecycle import CfsActionResult, complete_transition

logger = logging.getLogger(__name__)


def dismiss_call(db: Session, ctx: AccessContext, cfs_id: int, data: CfsDismiss) -> CfsActionResult:
    require_capability(ctx, "can_update_cfs", "You do not have permission to close this call.")

    report_status = data.report_status.value
    cfs_procedures.dismiss(db, ctx, cfs_id, report_status=report_status, notes=data.notes)
    return complete_transition(
        db,
        ctx,
        cfs_id,
        "Call closed.",
        template=cfs_notifications.closed_template(cfs_id, report_status),
        refresh_list=True,
    )


def mark_duplicate(db: Session, ctx: AccessContext, cfs_id: int, data: CfsDuplicate) -> CfsActionResult:
    require_capability(ctx, "can_update_cfs", "You do not have permission to mark duplicates.")

    cfs_procedures.mark_duplicate(db, ctx, cfs_id, duplicate_of=data.duplicate_of, notes=data.notes)
    return complete_transition(
        db,
        ctx,
        cfs_id,
        "Marked as duplicate.",
        template=cfs_notifications.duplicate_template(cfs_id),
        refresh_list=True,
    )


def convert_to_incident(db: Session, ctx: AccessContext, cfs_id: int, data: CfsConvert) -> CfsActionResult:
    """Spawn an incident from the call. The result carries the new incident id."""
    require_capability(ctx, "can_dispatch_cfs", "You do not have permission to dispatch this call.")

    incident_id = cfs_procedures.convert_to_incident(
        db,
        ctx,
        cfs_id,
        incident_type=data.incident_type.value if data.incident_type else None,
        description=data.description,
        incident_status=data.incident_status,
        dispatch_notes=data.dispatch_notes,
    )
    if not incident_id:
        logger.error(
            "Conversion returned no incident id",
            extra=build_log_context(
                profile_id=ctx.profile_id, org_id=ctx.organization_id, cfs_id=cfs_id, operation="convert"
            ),
        )
        raise StoreProcedureError("Unable to convert call.", procedure="cfs_convert_to_incident")

    return complete_transition(
        db,
        ctx,
        cfs_id,
        "Converted to incident.",
        template=cfs_notifications.dispatched_template(cfs_id),
        incident_id=incident_id,
    )


def transfer_ownership(db: Session, ctx: AccessContext, cfs_id: int, data: CfsTransfer) -> CfsActionResult:
    require_capability(ctx, "can_dispatch_cfs", "You do not have permission to transfer ownership.")

    cfs_procedures.transfer_ownership(
        db, ctx, cfs_id, organization_id=data.organization_id, reason=data.reason
    )
    return complete_transition(db, ctx, cfs_id, "Ownership transferred.", refresh_list=True)
