"""Public tracking projection, staff notes and manual status updates."""

import pytest
from pydantic import ValidationError

from cfs_portal.db.enums import CfsStatus, PublicStatus, TimelinePhase
from cfs_portal.db.models import CallForService, CfsPublicTracking, CfsTimelineEntry
from cfs_portal.schemas.cfs import (
    CfsConvert,
    CfsDismiss,
    CfsNoteCreate,
    CfsStatusUpdate,
    CfsTriage,
    PublicTrackingEnable,
)
from cfs_portal.services import (
    cfs_activity_service,
    cfs_query_service,
    cfs_resolution_service,
    cfs_tracking_service,
    cfs_triage_service,
)
from cfs_portal.services.cfs_errors import (
    AuthorizationError,
    CfsValidationError,
    NotFoundError,
    OrganizationRequiredError,
)


def _enable(db, ctx, cfs_id, **fields):
    fields.setdefault("public_category", "outreach")
    fields.setdefault("public_location_area", "Riverside park")
    return cfs_tracking_service.enable_public_tracking(db, ctx, cfs_id, PublicTrackingEnable(**fields))


# =============================================================================
# Public tracking
# =============================================================================

def test_enable_public_tracking(db, create_call, admin_ctx):
    cfs_id = create_call()

    result = _enable(db, admin_ctx, cfs_id, public_summary="Team scheduled")

    assert result.message == "Public tracking enabled."
    assert result.tracking_id.startswith("TRK-")
    projection = db.get(CfsPublicTracking, cfs_id)
    assert projection.location_area == "Riverside park"
    assert projection.summary == "Team scheduled"


def test_enable_requires_permission(db, create_call, coordinator_ctx):
    cfs_id = create_call()
    with pytest.raises(AuthorizationError) as exc_info:
        _enable(db, coordinator_ctx, cfs_id)
    assert exc_info.value.public_message == "You do not have permission to update public tracking."


def test_enable_reports_missing_fields(db, create_call, admin_ctx):
    cfs_id = create_call()
    with pytest.raises(CfsValidationError) as exc_info:
        _enable(db, admin_ctx, cfs_id, public_category=None, public_location_area="  ")
    assert set(exc_info.value.field_errors) == {"public_category", "public_location_area"}
    assert db.get(CfsPublicTracking, cfs_id) is None


def test_tracking_id_survives_disable_and_reenable(db, create_call, admin_ctx):
    cfs_id = create_call()
    tracking_id = _enable(db, admin_ctx, cfs_id).tracking_id

    result = cfs_tracking_service.disable_public_tracking(db, admin_ctx, cfs_id)
    assert result.message == "Public tracking disabled."
    assert db.get(CfsPublicTracking, cfs_id) is None
    with pytest.raises(NotFoundError):
        cfs_query_service.lookup_public_tracking(db, tracking_id)

    assert _enable(db, admin_ctx, cfs_id, public_category="cleanup").tracking_id == tracking_id
    assert db.get(CfsPublicTracking, cfs_id).category == "cleanup"


def test_disable_when_not_enabled_is_quiet(db, create_call, admin_ctx):
    cfs_id = create_call()
    result = cfs_tracking_service.disable_public_tracking(db, admin_ctx, cfs_id)
    assert result.message == "Public tracking disabled."


def test_public_lookup_follows_lifecycle(db, create_call, admin_ctx):
    cfs_id = create_call()
    tracking_id = _enable(db, admin_ctx, cfs_id).tracking_id

    status = cfs_query_service.lookup_public_tracking(db, tracking_id.lower())
    assert status.status == PublicStatus.RECEIVED
    assert status.category == "outreach"
    assert status.last_updated_at is not None

    cfs_triage_service.triage_call(db, admin_ctx, cfs_id, CfsTriage())
    assert cfs_query_service.lookup_public_tracking(db, tracking_id).status == PublicStatus.TRIAGED

    cfs_resolution_service.convert_to_incident(db, admin_ctx, cfs_id, CfsConvert())
    assert cfs_query_service.lookup_public_tracking(db, tracking_id).status == PublicStatus.DISPATCHED


def test_public_lookup_resolved_after_dismiss(db, create_call, admin_ctx):
    cfs_id = create_call()
    tracking_id = _enable(db, admin_ctx, cfs_id).tracking_id

    cfs_resolution_service.dismiss_call(db, admin_ctx, cfs_id, CfsDismiss(report_status="archived"))

    assert cfs_query_service.lookup_public_tracking(db, tracking_id).status == PublicStatus.RESOLVED


def test_public_lookup_unknown_id(db):
    with pytest.raises(NotFoundError) as exc_info:
        cfs_query_service.lookup_public_tracking(db, "TRK-NOPE2345")
    assert exc_info.value.public_message == "Tracking ID not found."


# =============================================================================
# Notes & status
# =============================================================================

def test_add_note_appends_timeline_entry(db, create_call, intake_ctx, test_org):
    cfs_id = create_call()

    result = cfs_activity_service.add_note(db, intake_ctx, cfs_id, CfsNoteCreate(note="  Left a voicemail  "))

    assert result.message == "Note added."
    entry = (
        db.query(CfsTimelineEntry)
        .filter(CfsTimelineEntry.cfs_id == cfs_id, CfsTimelineEntry.phase == TimelinePhase.NOTE.value)
        .one()
    )
    assert entry.notes == "Left a voicemail"
    assert entry.organization_id == test_org.id


def test_short_note_rejected():
    with pytest.raises(ValidationError) as exc_info:
        CfsNoteCreate(note=" ok ")
    assert "at least 4 characters" in str(exc_info.value)


def test_note_requires_acting_organization(db, create_call, make_ctx):
    cfs_id = create_call()
    ctx = make_ctx(None, None, global_admin=True)
    with pytest.raises(OrganizationRequiredError):
        cfs_activity_service.add_note(db, ctx, cfs_id, CfsNoteCreate(note="Checked the site"))


def test_update_status_labels_new_phase(db, create_call, intake_ctx):
    cfs_id = create_call()

    result = cfs_activity_service.update_status(
        db, intake_ctx, cfs_id, CfsStatusUpdate(status="dispatched", notes="Radioed in")
    )

    assert result.message == "Status updated: Dispatched."
    assert db.get(CallForService, cfs_id).status == CfsStatus.DISPATCHED.value
    entry = (
        db.query(CfsTimelineEntry)
        .filter(CfsTimelineEntry.cfs_id == cfs_id, CfsTimelineEntry.phase == TimelinePhase.STATUS.value)
        .one()
    )
    assert entry.details == {"from": "received", "to": "dispatched"}


def test_update_status_requires_capability(db, create_call, viewer_ctx):
    cfs_id = create_call()
    with pytest.raises(AuthorizationError):
        cfs_activity_service.update_status(db, viewer_ctx, cfs_id, CfsStatusUpdate(status="triaged"))
