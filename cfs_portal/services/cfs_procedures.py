"""Atomic store procedures for Call-for-Service transitions.

Each procedure applies one transition, its timeline entry and its audit row,
then commits. Any failure rolls the whole unit back:
- CfsError subclasses (not found, scope, rule violations) propagate as-is
- SQLAlchemy errors are logged and wrapped in StoreProcedureError

Lifecycle services call exactly one procedure per operation; they never
touch the ORM for writes themselves. The store serializes concurrent writes
(row locks on PostgreSQL) and the last committed write wins.
"""

import functools
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext
from cfs_portal.core.structured_logging import build_log_context
from cfs_portal.db.enums import (
    DEFAULT_INCIDENT_STATUS,
    AuditEventType,
    CfsAccessLevel,
    CfsStatus,
    ReportStatus,
    TimelinePhase,
    VerificationStatus,
)
from cfs_portal.db.models import (
    CallForService,
    CfsAttachment,
    CfsOrgAccess,
    CfsPublicTracking,
    CfsTimelineEntry,
    Incident,
    Organization,
)
from cfs_portal.services import audit_service
from cfs_portal.services.cfs_errors import (
    AuthorizationError,
    CfsError,
    NotFoundError,
    StoreProcedureError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

WRITE_ACCESS_LEVELS = {
    CfsAccessLevel.COLLABORATE.value,
    CfsAccessLevel.EDIT.value,
    CfsAccessLevel.DISPATCH.value,
}

TRACKING_ID_PREFIX = "TRK-"
TRACKING_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
TRACKING_ID_LENGTH = 8

# Phases that triage/verify advance from; later phases are left alone
TRIAGE_ADVANCES_FROM = {CfsStatus.RECEIVED.value}
VERIFY_ADVANCES_FROM = {CfsStatus.RECEIVED.value, CfsStatus.TRIAGED.value}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Procedure boundary
# =============================================================================

def store_procedure(name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Run the wrapped function as one transaction named ``name``."""

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(db: Session, actor: AccessContext, *args: Any, **kwargs: Any) -> T:
            try:
                result = fn(db, actor, *args, **kwargs)
                db.commit()
                return result
            except CfsError:
                db.rollback()
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception(
                    "Store procedure %s failed",
                    name,
                    extra=build_log_context(
                        profile_id=actor.profile_id,
                        org_id=actor.organization_id,
                        operation=name,
                    ),
                )
                raise StoreProcedureError(procedure=name) from exc

        wrapper.procedure_name = name  # type: ignore[attr-defined]
        return wrapper

    return decorator


# =============================================================================
# Helpers
# =============================================================================

def _get_grant(db: Session, cfs_id: int, org_id: int | None) -> CfsOrgAccess | None:
    if org_id is None:
        return None
    return db.execute(
        select(CfsOrgAccess).where(
            CfsOrgAccess.cfs_id == cfs_id,
            CfsOrgAccess.organization_id == org_id,
        )
    ).scalar_one_or_none()


def _load_call(db: Session, cfs_id: int) -> CallForService:
    call = db.get(CallForService, cfs_id, with_for_update=True, populate_existing=True)
    if call is None:
        raise NotFoundError("Call not found.")
    return call


def _authorize_call(
    db: Session,
    actor: AccessContext,
    call: CallForService,
    *,
    owner_only: bool = False,
) -> None:
    """
    Organization scope for a call.

    Owners and global admins may do anything the capability allows.
    Partner organizations need a non-view grant to write and cannot manage
    ownership or sharing. Calls the organization cannot see are not found.
    """
    if actor.is_global_admin or call.owning_organization_id == actor.organization_id:
        return
    grant = _get_grant(db, call.id, actor.organization_id)
    if grant is None:
        raise NotFoundError("Call not found.")
    if owner_only:
        raise AuthorizationError("Only the owning organization can manage this call.")
    if grant.access_level not in WRITE_ACCESS_LEVELS:
        raise AuthorizationError("Your organization has view-only access to this call.")


def _load_authorized_call(
    db: Session, actor: AccessContext, cfs_id: int, *, owner_only: bool = False
) -> CallForService:
    call = _load_call(db, cfs_id)
    _authorize_call(db, actor, call, owner_only=owner_only)
    return call


def _append_timeline(
    db: Session,
    actor: AccessContext,
    call: CallForService,
    phase: TimelinePhase,
    *,
    notes: str | None = None,
    details: dict[str, Any] | None = None,
) -> CfsTimelineEntry:
    entry = CfsTimelineEntry(
        cfs_id=call.id,
        organization_id=actor.organization_id,
        actor_profile_id=actor.profile_id,
        phase=phase.value,
        status=call.status,
        notes=notes,
        details=details,
    )
    db.add(entry)
    return entry


def _audit(
    db: Session,
    actor: AccessContext,
    event_type: AuditEventType,
    target_type: str,
    target_id: int | UUID | str,
    details: dict[str, Any] | None = None,
) -> None:
    audit_service.log_event(
        db=db,
        org_id=actor.organization_id,
        event_type=event_type,
        actor_profile_id=actor.profile_id,
        target_type=target_type,
        target_id=target_id,
        details=details,
    )


def _require_organization(db: Session, org_id: int) -> Organization:
    organization = db.get(Organization, org_id)
    if organization is None or not organization.is_active:
        raise NotFoundError("Organization not found.")
    return organization


def _generate_tracking_id(db: Session) -> str:
    while True:
        candidate = TRACKING_ID_PREFIX + "".join(
            secrets.choice(TRACKING_ID_ALPHABET) for _ in range(TRACKING_ID_LENGTH)
        )
        taken = db.execute(
            select(CallForService.id).where(CallForService.public_tracking_id == candidate)
        ).first()
        if not taken:
            return candidate


def _upsert_tracking(
    db: Session,
    call: CallForService,
    *,
    category: str,
    location_area: str,
    summary: str | None,
) -> str:
    if not call.public_tracking_id:
        call.public_tracking_id = _generate_tracking_id(db)
    projection = db.get(CfsPublicTracking, call.id)
    if projection is None:
        projection = CfsPublicTracking(cfs_id=call.id, public_tracking_id=call.public_tracking_id)
        db.add(projection)
    projection.category = category
    projection.location_area = location_area
    projection.summary = summary
    projection.updated_at = _utcnow()
    return call.public_tracking_id


def format_report_number(cfs_id: int, received_at: datetime | None = None) -> str:
    year = (received_at or _utcnow()).year
    return f"CFS-{year}-{cfs_id:06d}"


def check_call_access(db: Session, actor: AccessContext, cfs_id: int) -> CallForService:
    """Read-only scope check used before non-transactional side effects (blob writes)."""
    call = db.get(CallForService, cfs_id)
    if call is None:
        raise NotFoundError("Call not found.")
    _authorize_call(db, actor, call)
    return call


# =============================================================================
# Intake
# =============================================================================

CREATE_FIELDS = (
    "origin",
    "source",
    "report_method",
    "report_priority_assessment",
    "type_hint",
    "priority_hint",
    "urgency_indicators",
    "anonymous_reporter",
    "anonymous_reporter_details",
    "reporting_person_id",
    "reporting_organization_id",
    "referring_organization_id",
    "referring_agency_name",
    "reporter_name",
    "reporter_phone",
    "reporter_email",
    "reporter_address",
    "reporter_relationship",
    "location_text",
    "reported_location",
    "reported_coordinates",
    "location_confidence",
    "initial_report_narrative",
    "notify_opt_in",
    "notify_channel",
    "notify_target",
)


@store_procedure("cfs_create_call")
def create_call(db: Session, actor: AccessContext, payload: dict[str, Any]) -> dict[str, Any]:
    """
    Insert a call, its intake timeline entry and (optionally) its public
    tracking projection. Returns ``{"call_id", "tracking_id"}``.
    """
    owner_id = payload["owning_organization_id"]
    _require_organization(db, owner_id)

    values = {key: payload.get(key) for key in CREATE_FIELDS if payload.get(key) is not None}
    received_at = payload.get("received_at") or _utcnow()
    call = CallForService(
        owning_organization_id=owner_id,
        created_by_profile_id=actor.profile_id,
        status=CfsStatus.RECEIVED.value,
        report_status=ReportStatus.ACTIVE.value,
        received_at=received_at,
        report_received_at=payload.get("report_received_at") or received_at,
        **values,
    )
    db.add(call)
    db.flush()
    call.report_number = format_report_number(call.id, received_at)

    tracking_id = None
    if payload.get("public_tracking_enabled"):
        tracking_id = _upsert_tracking(
            db,
            call,
            category=payload["public_category"],
            location_area=payload["public_location_area"],
            summary=payload.get("public_summary"),
        )

    _append_timeline(db, actor, call, TimelinePhase.INTAKE, details={"source": call.source})
    _audit(
        db,
        actor,
        AuditEventType.CFS_CREATED,
        "cfs",
        call.id,
        {"report_number": call.report_number, "public_tracking": bool(tracking_id)},
    )
    db.flush()
    return {"call_id": call.id, "tracking_id": tracking_id}


# =============================================================================
# Triage & verification
# =============================================================================

@store_procedure("cfs_triage")
def triage(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    report_priority_assessment: str,
    type_hint: str | None = None,
    priority_hint: str | None = None,
    urgency_indicators: list[str] | None = None,
    phase_notes: str | None = None,
) -> CallForService:
    call = _load_authorized_call(db, actor, cfs_id)

    call.report_priority_assessment = report_priority_assessment
    call.type_hint = type_hint
    call.priority_hint = priority_hint
    if urgency_indicators is not None:
        call.urgency_indicators = list(urgency_indicators)
    call.triaged_at = _utcnow()
    call.triaged_by_profile_id = actor.profile_id
    if call.status in TRIAGE_ADVANCES_FROM:
        call.status = CfsStatus.TRIAGED.value

    _append_timeline(
        db,
        actor,
        call,
        TimelinePhase.TRIAGE,
        notes=phase_notes,
        details={
            "report_priority_assessment": report_priority_assessment,
            "type_hint": type_hint,
            "priority_hint": priority_hint,
        },
    )
    _audit(db, actor, AuditEventType.CFS_TRIAGED, "cfs", call.id, {"status": call.status})
    return call


@store_procedure("cfs_verify")
def verify(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    verification_status: str,
    verification_method: str,
    notes: str | None = None,
) -> CallForService:
    call = _load_authorized_call(db, actor, cfs_id)

    call.verification_status = verification_status
    call.verification_method = verification_method
    call.verification_notes = notes
    call.verified_at = _utcnow()
    call.verified_by_profile_id = actor.profile_id
    if verification_status == VerificationStatus.VERIFIED.value and call.status in VERIFY_ADVANCES_FROM:
        call.status = CfsStatus.VERIFIED.value

    _append_timeline(
        db,
        actor,
        call,
        TimelinePhase.VERIFICATION,
        notes=notes,
        details={
            "verification_status": verification_status,
            "verification_method": verification_method,
        },
    )
    _audit(
        db,
        actor,
        AuditEventType.CFS_VERIFIED,
        "cfs",
        call.id,
        {"verification_status": verification_status},
    )
    return call


# =============================================================================
# Resolution & conversion
# =============================================================================

@store_procedure("cfs_dismiss")
def dismiss(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    report_status: str,
    notes: str | None = None,
) -> CallForService:
    call = _load_authorized_call(db, actor, cfs_id)

    call.status = CfsStatus.DISMISSED.value
    call.report_status = report_status
    call.resolution_notes = notes
    call.closed_at = _utcnow()

    _append_timeline(
        db, actor, call, TimelinePhase.RESOLUTION, notes=notes, details={"report_status": report_status}
    )
    _audit(db, actor, AuditEventType.CFS_DISMISSED, "cfs", call.id, {"report_status": report_status})
    return call


@store_procedure("cfs_mark_duplicate")
def mark_duplicate(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    duplicate_of: int,
    notes: str | None = None,
) -> CallForService:
    if duplicate_of == cfs_id:
        raise StoreProcedureError("A call cannot be marked as a duplicate of itself.")

    call = _load_authorized_call(db, actor, cfs_id)
    original = db.get(CallForService, duplicate_of)
    if original is None:
        raise NotFoundError("Duplicate report not found.")

    # Walk the chain so merges never loop back to this call
    seen = {cfs_id}
    cursor = original
    while cursor is not None and cursor.duplicate_of_report_id is not None:
        if cursor.duplicate_of_report_id in seen:
            raise StoreProcedureError("A call cannot be marked as a duplicate of itself.")
        seen.add(cursor.id)
        cursor = db.get(CallForService, cursor.duplicate_of_report_id)

    call.duplicate_of_report_id = duplicate_of
    call.status = CfsStatus.DUPLICATE.value
    call.report_status = ReportStatus.DUPLICATE.value
    call.resolution_notes = notes
    call.closed_at = _utcnow()

    _append_timeline(
        db, actor, call, TimelinePhase.RESOLUTION, notes=notes, details={"duplicate_of": duplicate_of}
    )
    _audit(
        db, actor, AuditEventType.CFS_MARKED_DUPLICATE, "cfs", call.id, {"duplicate_of": duplicate_of}
    )
    return call


@store_procedure("cfs_convert_to_incident")
def convert_to_incident(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    incident_type: str | None = None,
    description: str | None = None,
    incident_status: str | None = None,
    dispatch_notes: str | None = None,
) -> int:
    """Create an incident linked to the call and mark the call dispatched. Returns the incident id."""
    call = _load_authorized_call(db, actor, cfs_id)
    existing = db.execute(select(Incident.id).where(Incident.cfs_id == call.id)).first()
    if existing:
        raise StoreProcedureError("This call has already been converted to an incident.")

    incident = Incident(
        cfs_id=call.id,
        owning_organization_id=call.owning_organization_id,
        incident_type=incident_type or call.type_hint,
        priority=call.priority_hint,
        status=incident_status or DEFAULT_INCIDENT_STATUS,
        description=description or call.initial_report_narrative,
        dispatch_notes=dispatch_notes,
        created_by_profile_id=actor.profile_id,
    )
    db.add(incident)
    db.flush()

    call.status = CfsStatus.DISPATCHED.value

    _append_timeline(
        db, actor, call, TimelinePhase.DISPATCH, notes=dispatch_notes, details={"incident_id": incident.id}
    )
    _audit(db, actor, AuditEventType.CFS_CONVERTED, "cfs", call.id, {"incident_id": incident.id})
    return incident.id


@store_procedure("cfs_transfer_ownership")
def transfer_ownership(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    organization_id: int,
    reason: str | None = None,
) -> CallForService:
    call = _load_authorized_call(db, actor, cfs_id, owner_only=True)
    _require_organization(db, organization_id)
    if call.owning_organization_id == organization_id:
        raise StoreProcedureError("The call is already owned by that organization.")

    previous_owner = call.owning_organization_id
    call.owning_organization_id = organization_id

    # Owner access is implicit; drop any grant the new owner held
    grant = _get_grant(db, call.id, organization_id)
    if grant is not None:
        db.delete(grant)

    _append_timeline(
        db,
        actor,
        call,
        TimelinePhase.OWNERSHIP,
        notes=reason,
        details={"from_organization_id": previous_owner, "to_organization_id": organization_id},
    )
    _audit(
        db,
        actor,
        AuditEventType.CFS_OWNERSHIP_TRANSFERRED,
        "cfs",
        call.id,
        {"from_organization_id": previous_owner, "to_organization_id": organization_id},
    )
    return call


# =============================================================================
# Sharing
# =============================================================================

@store_procedure("cfs_grant_org_access")
def grant_org_access(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    organization_id: int,
    access_level: str,
    reason: str | None = None,
) -> CfsOrgAccess:
    """Create or update the grant for (cfs_id, organization_id)."""
    call = _load_authorized_call(db, actor, cfs_id, owner_only=True)
    _require_organization(db, organization_id)
    if call.owning_organization_id == organization_id:
        raise StoreProcedureError("The owning organization already has access to this call.")

    grant = _get_grant(db, call.id, organization_id)
    previous_level = grant.access_level if grant else None
    if grant is None:
        grant = CfsOrgAccess(cfs_id=call.id, organization_id=organization_id)
        db.add(grant)
    grant.access_level = access_level
    grant.reason = reason
    grant.granted_by_profile_id = actor.profile_id

    _append_timeline(
        db,
        actor,
        call,
        TimelinePhase.SHARING,
        notes=reason,
        details={"organization_id": organization_id, "access_level": access_level},
    )
    _audit(
        db,
        actor,
        AuditEventType.CFS_ACCESS_GRANTED,
        "cfs",
        call.id,
        {
            "organization_id": organization_id,
            "access_level": access_level,
            "previous_level": previous_level,
        },
    )
    db.flush()
    return grant


@store_procedure("cfs_revoke_org_access")
def revoke_org_access(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    organization_id: int,
    reason: str | None = None,
) -> bool:
    """Remove the grant. Returns False (not an error) when none existed."""
    call = _load_authorized_call(db, actor, cfs_id, owner_only=True)
    grant = _get_grant(db, call.id, organization_id)
    removed = grant is not None
    if grant is not None:
        db.delete(grant)
        _append_timeline(
            db,
            actor,
            call,
            TimelinePhase.SHARING,
            notes=reason,
            details={"organization_id": organization_id, "revoked": True},
        )

    _audit(
        db,
        actor,
        AuditEventType.CFS_ACCESS_REVOKED,
        "cfs",
        call.id,
        {"organization_id": organization_id, "removed": removed},
    )
    return removed


# =============================================================================
# Public tracking
# =============================================================================

@store_procedure("cfs_public_tracking_upsert")
def public_tracking_upsert(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    category: str,
    location_area: str,
    summary: str | None = None,
) -> str:
    call = _load_authorized_call(db, actor, cfs_id)
    tracking_id = _upsert_tracking(
        db, call, category=category, location_area=location_area, summary=summary
    )
    _append_timeline(
        db, actor, call, TimelinePhase.PUBLIC_TRACKING, details={"enabled": True, "category": category}
    )
    _audit(
        db,
        actor,
        AuditEventType.CFS_PUBLIC_TRACKING_ENABLED,
        "cfs",
        call.id,
        {"public_tracking_id": tracking_id},
    )
    return tracking_id


@store_procedure("cfs_public_tracking_disable")
def public_tracking_disable(db: Session, actor: AccessContext, cfs_id: int) -> bool:
    call = _load_authorized_call(db, actor, cfs_id)
    projection = db.get(CfsPublicTracking, call.id)
    if projection is None:
        return False
    db.delete(projection)
    _append_timeline(db, actor, call, TimelinePhase.PUBLIC_TRACKING, details={"enabled": False})
    _audit(db, actor, AuditEventType.CFS_PUBLIC_TRACKING_DISABLED, "cfs", call.id)
    return True


# =============================================================================
# Notes & status
# =============================================================================

@store_procedure("cfs_add_note")
def add_note(db: Session, actor: AccessContext, cfs_id: int, *, note: str) -> CfsTimelineEntry:
    call = _load_authorized_call(db, actor, cfs_id)
    entry = _append_timeline(db, actor, call, TimelinePhase.NOTE, notes=note)
    _audit(db, actor, AuditEventType.CFS_NOTE_ADDED, "cfs", call.id)
    db.flush()
    return entry


@store_procedure("cfs_update_status")
def update_status(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    status: str,
    notes: str | None = None,
) -> CallForService:
    call = _load_authorized_call(db, actor, cfs_id)
    previous = call.status
    call.status = status
    _append_timeline(
        db, actor, call, TimelinePhase.STATUS, notes=notes, details={"from": previous, "to": status}
    )
    _audit(
        db, actor, AuditEventType.CFS_STATUS_UPDATED, "cfs", call.id, {"from": previous, "to": status}
    )
    return call


# =============================================================================
# Attachments (metadata half of the upload saga)
# =============================================================================

@store_procedure("cfs_insert_attachment")
def insert_attachment(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    file_name: str,
    file_type: str | None,
    file_size: int,
    storage_bucket: str,
    storage_path: str,
    metadata: dict[str, Any] | None = None,
) -> CfsAttachment:
    call = _load_authorized_call(db, actor, cfs_id)
    attachment = CfsAttachment(
        cfs_id=call.id,
        organization_id=actor.organization_id,
        uploaded_by_profile_id=actor.profile_id,
        file_name=file_name,
        file_type=file_type,
        file_size=file_size,
        storage_bucket=storage_bucket,
        storage_path=storage_path,
        attachment_metadata=metadata,
    )
    db.add(attachment)
    db.flush()
    _audit(
        db,
        actor,
        AuditEventType.CFS_ATTACHMENT_UPLOADED,
        "cfs_attachment",
        attachment.id,
        {"cfs_id": call.id, "file_name": file_name, "file_size": file_size},
    )
    return attachment


@store_procedure("cfs_delete_attachment")
def delete_attachment_row(
    db: Session,
    actor: AccessContext,
    cfs_id: int,
    *,
    attachment_id: UUID,
) -> None:
    call = _load_authorized_call(db, actor, cfs_id)
    attachment = db.execute(
        select(CfsAttachment).where(
            CfsAttachment.id == attachment_id,
            CfsAttachment.cfs_id == call.id,
        )
    ).scalar_one_or_none()
    if attachment is None:
        raise NotFoundError("Attachment not found.")
    details = {
        "cfs_id": call.id,
        "file_name": attachment.file_name,
        "file_size": attachment.file_size,
    }
    db.delete(attachment)
    _audit(db, actor, AuditEventType.CFS_ATTACHMENT_DELETED, "cfs_attachment", attachment_id, details)
