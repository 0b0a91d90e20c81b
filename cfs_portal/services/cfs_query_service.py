"""Read side for calls for service: queue, detail and satellite lists.

Non-global callers only see calls their acting organization owns or holds
a grant on. Anything outside that scope is reported as not found.
"""

from datetime import datetime, timezone

from sqlalchemy import exists, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from cfs_portal.core.access import AccessContext, require_capability
from cfs_portal.db.enums import CfsStatus, OwnerScope, PublicStatus, ReportStatus
from cfs_portal.db.models import (
    CallForService,
    CfsAttachment,
    CfsOrgAccess,
    CfsPublicTracking,
    CfsTimelineEntry,
    Incident,
)
from cfs_portal.schemas.cfs import PublicTrackingStatus
from cfs_portal.services.cfs_errors import NotFoundError

DEFAULT_LIST_LIMIT = 200
MAX_LIST_LIMIT = 500

READ_DENIED_MESSAGE = "You do not have permission to view calls for service."

PUBLIC_STATUS_BY_PHASE = {
    CfsStatus.RECEIVED.value: PublicStatus.RECEIVED,
    CfsStatus.TRIAGED.value: PublicStatus.TRIAGED,
    CfsStatus.VERIFIED.value: PublicStatus.TRIAGED,
    CfsStatus.DISPATCHED.value: PublicStatus.DISPATCHED,
    CfsStatus.DISMISSED.value: PublicStatus.RESOLVED,
    CfsStatus.DUPLICATE.value: PublicStatus.RESOLVED,
}


def _shared_with(org_id: int) -> ColumnElement[bool]:
    return exists().where(
        CfsOrgAccess.cfs_id == CallForService.id,
        CfsOrgAccess.organization_id == org_id,
    )


def visible_calls_filter(ctx: AccessContext) -> ColumnElement[bool] | None:
    """WHERE clause restricting calls to the caller's scope (None = unrestricted)."""
    if ctx.is_global_admin:
        return None
    if ctx.organization_id is None:
        return CallForService.id.is_(None)
    return or_(
        CallForService.owning_organization_id == ctx.organization_id,
        _shared_with(ctx.organization_id),
    )


def list_calls(
    db: Session,
    ctx: AccessContext,
    *,
    status: str | None = None,
    priority: str | None = None,
    source: str | None = None,
    owner_scope: OwnerScope = OwnerScope.ALL,
    search: str | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
) -> list[CallForService]:
    require_capability(ctx, "can_read_cfs", READ_DENIED_MESSAGE)

    stmt = select(CallForService)
    scope = visible_calls_filter(ctx)
    if scope is not None:
        stmt = stmt.where(scope)

    if owner_scope == OwnerScope.OWNED and ctx.organization_id is not None:
        stmt = stmt.where(CallForService.owning_organization_id == ctx.organization_id)
    elif owner_scope == OwnerScope.SHARED and ctx.organization_id is not None:
        stmt = stmt.where(
            CallForService.owning_organization_id != ctx.organization_id,
            _shared_with(ctx.organization_id),
        )

    if status:
        stmt = stmt.where(CallForService.status == status)
    if priority:
        stmt = stmt.where(CallForService.report_priority_assessment == priority)
    if source:
        stmt = stmt.where(CallForService.source == source)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                CallForService.report_number.ilike(pattern),
                CallForService.location_text.ilike(pattern),
            )
        )

    limit = max(1, min(limit, MAX_LIST_LIMIT))
    stmt = stmt.order_by(CallForService.report_received_at.desc(), CallForService.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def get_call(db: Session, ctx: AccessContext, cfs_id: int) -> CallForService:
    require_capability(ctx, "can_read_cfs", READ_DENIED_MESSAGE)

    stmt = select(CallForService).where(CallForService.id == cfs_id)
    scope = visible_calls_filter(ctx)
    if scope is not None:
        stmt = stmt.where(scope)
    call = db.execute(stmt).scalar_one_or_none()
    if call is None:
        raise NotFoundError("Call not found.")
    return call


def list_timeline(db: Session, ctx: AccessContext, cfs_id: int) -> list[CfsTimelineEntry]:
    get_call(db, ctx, cfs_id)
    return (
        db.query(CfsTimelineEntry)
        .filter(CfsTimelineEntry.cfs_id == cfs_id)
        .order_by(CfsTimelineEntry.created_at.asc(), CfsTimelineEntry.id.asc())
        .all()
    )


def list_org_access(db: Session, ctx: AccessContext, cfs_id: int) -> list[CfsOrgAccess]:
    get_call(db, ctx, cfs_id)
    return (
        db.query(CfsOrgAccess)
        .filter(CfsOrgAccess.cfs_id == cfs_id)
        .order_by(CfsOrgAccess.created_at.asc(), CfsOrgAccess.id.asc())
        .all()
    )


def list_attachments(db: Session, ctx: AccessContext, cfs_id: int) -> list[CfsAttachment]:
    get_call(db, ctx, cfs_id)
    return (
        db.query(CfsAttachment)
        .filter(CfsAttachment.cfs_id == cfs_id)
        .order_by(CfsAttachment.created_at.desc())
        .all()
    )


def get_incident_for_call(db: Session, ctx: AccessContext, cfs_id: int) -> Incident | None:
    get_call(db, ctx, cfs_id)
    return db.query(Incident).filter(Incident.cfs_id == cfs_id).first()


def get_public_tracking(db: Session, ctx: AccessContext, cfs_id: int) -> CfsPublicTracking | None:
    get_call(db, ctx, cfs_id)
    return db.get(CfsPublicTracking, cfs_id)


# =============================================================================
# Public (unauthenticated)
# =============================================================================

def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on reload
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def public_status_for(call: CallForService) -> PublicStatus:
    if call.report_status == ReportStatus.RESOLVED.value:
        return PublicStatus.RESOLVED
    return PUBLIC_STATUS_BY_PHASE.get(call.status, PublicStatus.RECEIVED)


def lookup_public_tracking(db: Session, tracking_id: str) -> PublicTrackingStatus:
    """Public status for a tracking id. Disabled or unknown ids are not found."""
    normalized = (tracking_id or "").strip().upper()
    row = db.execute(
        select(CfsPublicTracking, CallForService)
        .join(CallForService, CallForService.id == CfsPublicTracking.cfs_id)
        .where(CfsPublicTracking.public_tracking_id == normalized)
    ).first()
    if row is None:
        raise NotFoundError("Tracking ID not found.")

    projection, call = row
    last_updated = max(
        (_as_utc(value) for value in (projection.updated_at, call.updated_at) if value is not None),
        default=None,
    )
    return PublicTrackingStatus(
        public_tracking_id=projection.public_tracking_id,
        category=projection.category,
        location_area=projection.location_area,
        summary=projection.summary,
        status=public_status_for(call),
        last_updated_at=last_updated,
    )
