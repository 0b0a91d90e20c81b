"""Triage and verification of calls for service."""

from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext, require_capability
from cfs_portal.schemas.cfs import CfsTriage, CfsVerify
from cfs_portal.services import cfs_notifications, cfs_procedures
from cfs_portal.services.cfs_lifecycle import CfsActionResult, complete_transition


def triage_call(db: Session, ctx: AccessContext, cfs_id: int, data: CfsTriage) -> CfsActionResult:
    require_capability(ctx, "can_triage_cfs", "You do not have permission to triage this call.")

    cfs_procedures.triage(
        db,
        ctx,
        cfs_id,
        report_priority_assessment=data.report_priority_assessment.value,
        type_hint=data.type_hint.value if data.type_hint else None,
        priority_hint=data.priority_hint.value if data.priority_hint else None,
        urgency_indicators=data.urgency_indicators,
        phase_notes=data.phase_notes,
    )
    return complete_transition(
        db, ctx, cfs_id, "Triage saved.", template=cfs_notifications.triaged_template(cfs_id)
    )


def verify_call(db: Session, ctx: AccessContext, cfs_id: int, data: CfsVerify) -> CfsActionResult:
    require_capability(ctx, "can_triage_cfs", "You do not have permission to verify this call.")

    cfs_procedures.verify(
        db,
        ctx,
        cfs_id,
        verification_status=data.verification_status.value,
        verification_method=data.verification_method.value,
        notes=data.notes,
    )
    return complete_transition(
        db, ctx, cfs_id, "Verification saved.", template=cfs_notifications.verified_template(cfs_id)
    )
