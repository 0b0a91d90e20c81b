"""Calls for service router - intake, lifecycle transitions and reads.

Every mutation requires the CSRF header. Errors raised by the services are
translated by the exception handlers registered in ``cfs_portal.main``.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext
from cfs_portal.core.deps import get_access_context, get_db, require_csrf_header
from cfs_portal.db.enums import CfsSource, CfsStatus, OwnerScope, ReportPriority
from cfs_portal.schemas.cfs import (
    AttachmentRead,
    CfsActionResponse,
    CfsConvert,
    CfsCreate,
    CfsDismiss,
    CfsDuplicate,
    CfsListItem,
    CfsNoteCreate,
    CfsRead,
    CfsStatusUpdate,
    CfsTransfer,
    CfsTriage,
    CfsVerify,
    IncidentRead,
    OrgAccessGrant,
    OrgAccessRead,
    PublicTrackingEnable,
    PublicTrackingRead,
    TimelineEntryRead,
)
from cfs_portal.services import (
    cfs_activity_service,
    cfs_events,
    cfs_intake_service,
    cfs_query_service,
    cfs_resolution_service,
    cfs_sharing_service,
    cfs_tracking_service,
    cfs_triage_service,
)
from cfs_portal.services.cfs_lifecycle import CfsActionResult

router = APIRouter(prefix="/cfs", tags=["cfs"])


def to_action_response(result: CfsActionResult, redirect_to: str | None = None) -> CfsActionResponse:
    return CfsActionResponse(
        cfs_id=result.cfs_id,
        message=result.message,
        incident_id=result.incident_id,
        tracking_id=result.tracking_id,
        attachment_id=result.attachment_id,
        revalidate=result.invalidated_paths,
        redirect_to=redirect_to,
    )


# =============================================================================
# Queue & intake
# =============================================================================

@router.get("", response_model=list[CfsListItem])
def list_calls(
    status: CfsStatus | None = Query(None),
    priority: ReportPriority | None = Query(None),
    source: CfsSource | None = Query(None),
    owner_scope: OwnerScope = Query(OwnerScope.ALL),
    search: str | None = Query(None, max_length=100),
    limit: int = Query(cfs_query_service.DEFAULT_LIST_LIMIT, ge=1, le=cfs_query_service.MAX_LIST_LIMIT),
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    """Call queue, newest report first."""
    return cfs_query_service.list_calls(
        db,
        ctx,
        status=status.value if status else None,
        priority=priority.value if priority else None,
        source=source.value if source else None,
        owner_scope=owner_scope,
        search=search,
        limit=limit,
    )


@router.post(
    "",
    response_model=CfsActionResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_call(
    data: CfsCreate,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    """Create a call for service from the intake form."""
    result = cfs_intake_service.create_call(db, ctx, data)
    return to_action_response(result, redirect_to=cfs_events.cfs_detail_path(result.cfs_id))


@router.get("/{cfs_id}", response_model=CfsRead)
def get_call(
    cfs_id: int,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return cfs_query_service.get_call(db, ctx, cfs_id)


# =============================================================================
# Triage & verification
# =============================================================================

@router.post("/{cfs_id}/triage", response_model=CfsActionResponse, dependencies=[Depends(require_csrf_header)])
def triage_call(
    cfs_id: int,
    data: CfsTriage,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(cfs_triage_service.triage_call(db, ctx, cfs_id, data))


@router.post("/{cfs_id}/verify", response_model=CfsActionResponse, dependencies=[Depends(require_csrf_header)])
def verify_call(
    cfs_id: int,
    data: CfsVerify,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(cfs_triage_service.verify_call(db, ctx, cfs_id, data))


# =============================================================================
# Resolution & conversion
# =============================================================================

@router.post("/{cfs_id}/dismiss", response_model=CfsActionResponse, dependencies=[Depends(require_csrf_header)])
def dismiss_call(
    cfs_id: int,
    data: CfsDismiss,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(cfs_resolution_service.dismiss_call(db, ctx, cfs_id, data))


@router.post("/{cfs_id}/duplicate", response_model=CfsActionResponse, dependencies=[Depends(require_csrf_header)])
def mark_duplicate(
    cfs_id: int,
    data: CfsDuplicate,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(cfs_resolution_service.mark_duplicate(db, ctx, cfs_id, data))


@router.post("/{cfs_id}/convert", response_model=CfsActionResponse, dependencies=[Depends(require_csrf_header)])
def convert_to_incident(
    cfs_id: int,
    data: CfsConvert,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    """Spawn an incident from the call."""
    result = cfs_resolution_service.convert_to_incident(db, ctx, cfs_id, data)
    return to_action_response(result, redirect_to=cfs_events.incident_detail_path(result.incident_id))


@router.post("/{cfs_id}/transfer", response_model=CfsActionResponse, dependencies=[Depends(require_csrf_header)])
def transfer_ownership(
    cfs_id: int,
    data: CfsTransfer,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(cfs_resolution_service.transfer_ownership(db, ctx, cfs_id, data))


# =============================================================================
# Sharing
# =============================================================================

@router.get("/{cfs_id}/access", response_model=list[OrgAccessRead])
def list_org_access(
    cfs_id: int,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return cfs_query_service.list_org_access(db, ctx, cfs_id)


@router.post("/{cfs_id}/access", response_model=CfsActionResponse, dependencies=[Depends(require_csrf_header)])
def grant_org_access(
    cfs_id: int,
    data: OrgAccessGrant,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    """Share the call with another organization (updates the level if already shared)."""
    return to_action_response(cfs_sharing_service.grant_org_access(db, ctx, cfs_id, data))


@router.delete(
    "/{cfs_id}/access/{organization_id}",
    response_model=CfsActionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def revoke_org_access(
    cfs_id: int,
    organization_id: int,
    reason: str | None = Query(None, max_length=1000),
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(
        cfs_sharing_service.revoke_org_access(db, ctx, cfs_id, organization_id, reason=reason)
    )


# =============================================================================
# Public tracking
# =============================================================================

@router.get("/{cfs_id}/public-tracking", response_model=PublicTrackingRead | None)
def get_public_tracking(
    cfs_id: int,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return cfs_query_service.get_public_tracking(db, ctx, cfs_id)


@router.post(
    "/{cfs_id}/public-tracking",
    response_model=CfsActionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def enable_public_tracking(
    cfs_id: int,
    data: PublicTrackingEnable,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(cfs_tracking_service.enable_public_tracking(db, ctx, cfs_id, data))


@router.delete(
    "/{cfs_id}/public-tracking",
    response_model=CfsActionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def disable_public_tracking(
    cfs_id: int,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(cfs_tracking_service.disable_public_tracking(db, ctx, cfs_id))


# =============================================================================
# Notes, status & timeline
# =============================================================================

@router.get("/{cfs_id}/timeline", response_model=list[TimelineEntryRead])
def list_timeline(
    cfs_id: int,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return cfs_query_service.list_timeline(db, ctx, cfs_id)


@router.post("/{cfs_id}/notes", response_model=CfsActionResponse, dependencies=[Depends(require_csrf_header)])
def add_note(
    cfs_id: int,
    data: CfsNoteCreate,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(cfs_activity_service.add_note(db, ctx, cfs_id, data))


@router.post("/{cfs_id}/status", response_model=CfsActionResponse, dependencies=[Depends(require_csrf_header)])
def update_status(
    cfs_id: int,
    data: CfsStatusUpdate,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(cfs_activity_service.update_status(db, ctx, cfs_id, data))


# =============================================================================
# Related records
# =============================================================================

@router.get("/{cfs_id}/attachments", response_model=list[AttachmentRead])
def list_attachments(
    cfs_id: int,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return cfs_query_service.list_attachments(db, ctx, cfs_id)


@router.get("/{cfs_id}/incident", response_model=IncidentRead | None)
def get_incident(
    cfs_id: int,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return cfs_query_service.get_incident_for_call(db, ctx, cfs_id)
