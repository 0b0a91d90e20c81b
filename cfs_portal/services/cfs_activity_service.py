"""Staff notes and manual status changes on a call."""

from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext, require_capability, require_organization
from cfs_portal.db.enums import format_label
from cfs_portal.schemas.cfs import CfsNoteCreate, CfsStatusUpdate
from cfs_portal.services import cfs_procedures
from cfs_portal.services.cfs_lifecycle import CfsActionResult, complete_transition


def add_note(db: Session, ctx: AccessContext, cfs_id: int, data: CfsNoteCreate) -> CfsActionResult:
    require_capability(ctx, "can_update_cfs", "You do not have permission to add notes.")
    require_organization(ctx, "Select an acting organization to add a note.")

    cfs_procedures.add_note(db, ctx, cfs_id, note=data.note)
    return complete_transition(db, ctx, cfs_id, "Note added.")


def update_status(db: Session, ctx: AccessContext, cfs_id: int, data: CfsStatusUpdate) -> CfsActionResult:
    require_capability(ctx, "can_update_cfs", "You do not have permission to update status.")

    cfs_procedures.update_status(db, ctx, cfs_id, status=data.status.value, notes=data.notes)
    return complete_transition(db, ctx, cfs_id, f"Status updated: {format_label(data.status.value)}.")
