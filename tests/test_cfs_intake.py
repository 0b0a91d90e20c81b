"""Call intake: validation order, the create procedure and its side effects."""

import re

import pytest
from pydantic import ValidationError

from cfs_portal.db.enums import AuditEventType, CfsStatus, ReportStatus, TimelinePhase
from cfs_portal.db.models import (
    AuditLog,
    CallForService,
    CfsPublicTracking,
    CfsTimelineEntry,
    OutboundNotification,
)
from cfs_portal.schemas.cfs import CfsCreate
from cfs_portal.services import cfs_intake_service
from cfs_portal.services.cfs_errors import (
    AuthorizationError,
    CfsValidationError,
    OrganizationRequiredError,
)


NARRATIVE = "Two people camped under the Harbor St overpass, one needs blankets"


def _create(db, ctx, **fields):
    return cfs_intake_service.create_call(
        db, ctx, CfsCreate(initial_report_narrative=NARRATIVE, **fields)
    )


def test_create_call_defaults(db, admin_ctx, test_org):
    result = _create(db, admin_ctx, location_text="Harbor St overpass")

    call = db.get(CallForService, result.cfs_id)
    assert result.message == "Call created."
    assert call.owning_organization_id == test_org.id
    assert call.status == CfsStatus.RECEIVED.value
    assert call.report_status == ReportStatus.ACTIVE.value
    assert call.source == "phone"
    assert call.report_priority_assessment == "routine"
    assert re.fullmatch(r"CFS-\d{4}-\d{6}", call.report_number)
    assert call.public_tracking_id is None
    assert result.tracking_id is None


def test_create_call_writes_intake_timeline_and_audit(db, admin_ctx):
    result = _create(db, admin_ctx)

    entries = db.query(CfsTimelineEntry).filter(CfsTimelineEntry.cfs_id == result.cfs_id).all()
    assert [entry.phase for entry in entries] == [TimelinePhase.INTAKE.value]

    audit = db.query(AuditLog).filter(AuditLog.event_type == AuditEventType.CFS_CREATED.value).one()
    assert audit.target_id == str(result.cfs_id)
    assert audit.actor_profile_id == admin_ctx.profile_id


def test_create_call_invalidates_detail_and_queue(db, admin_ctx):
    result = _create(db, admin_ctx)
    assert result.invalidated_paths == [f"/ops/cfs/{result.cfs_id}", "/ops/cfs"]


def test_create_call_parses_urgency_and_timestamps(db, admin_ctx):
    result = _create(
        db,
        admin_ctx,
        urgency_indicators="children present, medical",
        received_at="2026-02-01T08:30:00Z",
        report_received_at="not a date",
    )
    call = db.get(CallForService, result.cfs_id)
    assert call.urgency_indicators == ["children present", "medical"]
    assert call.received_at.year == 2026
    assert call.report_number.startswith("CFS-2026-")
    # Unparsable report time falls back to received_at
    assert call.report_received_at == call.received_at


def test_blank_selects_fall_back_to_defaults(db, admin_ctx):
    result = _create(db, admin_ctx, source="", report_method=" ", notify_channel="")
    call = db.get(CallForService, result.cfs_id)
    assert call.source == "phone"
    assert call.report_method == "phone"
    assert call.notify_channel == "none"


def test_short_narrative_rejected_by_schema():
    with pytest.raises(ValidationError) as exc_info:
        CfsCreate(initial_report_narrative="  help  ")
    assert "at least 8 characters" in str(exc_info.value)


def test_create_requires_capability(db, viewer_ctx):
    with pytest.raises(AuthorizationError) as exc_info:
        _create(db, viewer_ctx)
    assert exc_info.value.public_message == "You do not have permission to create calls for service."
    assert db.query(CallForService).count() == 0


def test_create_requires_acting_organization(db, make_ctx):
    ctx = make_ctx(None, None, global_admin=True)
    with pytest.raises(OrganizationRequiredError):
        _create(db, ctx)
    assert db.query(CallForService).count() == 0


def test_anonymous_reporter_drops_links(db, admin_ctx):
    result = _create(
        db,
        admin_ctx,
        anonymous_reporter=True,
        reporting_person_id=42,
        reporting_organization_id=7,
    )
    call = db.get(CallForService, result.cfs_id)
    assert call.anonymous_reporter is True
    assert call.reporting_person_id is None
    assert call.reporting_organization_id is None


def test_person_and_organization_links_are_exclusive(db, admin_ctx):
    with pytest.raises(CfsValidationError) as exc_info:
        _create(db, admin_ctx, reporting_person_id=42, reporting_organization_id=7)

    assert set(exc_info.value.field_errors) == {"reporting_person_id", "reporting_organization_id"}
    assert db.query(CallForService).count() == 0


def test_notify_opt_in_requires_channel(db, admin_ctx):
    with pytest.raises(CfsValidationError) as exc_info:
        _create(db, admin_ctx, notify_opt_in=True, notify_channel="none", notify_target="a@b.org")
    assert "notify_channel" in exc_info.value.field_errors


def test_notify_sms_requires_real_number(db, admin_ctx):
    with pytest.raises(CfsValidationError) as exc_info:
        _create(db, admin_ctx, notify_opt_in=True, notify_channel="sms", notify_target="12")
    assert exc_info.value.field_errors == {"notify_target": "Enter a valid phone number."}


def test_notify_email_requires_at_sign(db, admin_ctx):
    with pytest.raises(CfsValidationError) as exc_info:
        _create(db, admin_ctx, notify_opt_in=True, notify_channel="email", notify_target="not-an-email")
    assert exc_info.value.field_errors == {"notify_target": "Enter a valid email address."}


def test_notify_target_is_normalized_and_received_message_queued(db, admin_ctx):
    result = _create(
        db, admin_ctx, notify_opt_in=True, notify_channel="sms", notify_target="+1 (555) 010-2030"
    )

    call = db.get(CallForService, result.cfs_id)
    assert call.notify_target == "+15550102030"

    queued = db.query(OutboundNotification).filter(OutboundNotification.cfs_id == result.cfs_id).one()
    assert queued.notification_type == "cfs_received"
    assert queued.recipient_phone == "+15550102030"
    assert queued.channels == ["sms"]
    assert queued.body_text == f"Request received. Tracking ID {result.cfs_id}."


def test_no_notification_without_opt_in(db, admin_ctx):
    _create(db, admin_ctx, notify_channel="email", notify_target="someone@example.org")
    assert db.query(OutboundNotification).count() == 0


def test_public_tracking_requires_permission(db, coordinator_ctx):
    with pytest.raises(AuthorizationError):
        _create(
            db,
            coordinator_ctx,
            public_tracking_enabled=True,
            public_category="outreach",
            public_location_area="Harbor district",
        )
    assert db.query(CallForService).count() == 0


def test_public_tracking_reports_only_missing_fields(db, admin_ctx):
    with pytest.raises(CfsValidationError) as exc_info:
        _create(db, admin_ctx, public_tracking_enabled=True, public_category="outreach")
    assert set(exc_info.value.field_errors) == {"public_location_area"}


def test_public_tracking_at_intake_creates_projection(db, admin_ctx):
    result = _create(
        db,
        admin_ctx,
        public_tracking_enabled=True,
        public_category="welfare_check",
        public_location_area="Harbor district",
        public_summary="Outreach team notified",
    )

    assert re.fullmatch(r"TRK-[A-HJ-NP-Z2-9]{8}", result.tracking_id)
    projection = db.get(CfsPublicTracking, result.cfs_id)
    assert projection.public_tracking_id == result.tracking_id
    assert projection.category == "welfare_check"
    assert db.get(CallForService, result.cfs_id).public_tracking_id == result.tracking_id


def test_public_fields_ignored_when_tracking_disabled(db, coordinator_ctx):
    result = _create(db, coordinator_ctx, public_category="outreach", public_location_area="Downtown")
    assert result.tracking_id is None
    assert db.get(CfsPublicTracking, result.cfs_id) is None
