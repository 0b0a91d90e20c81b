"""Dismiss, duplicate, convert-to-incident and ownership transfer."""

import pytest
from pydantic import ValidationError

from cfs_portal.db.enums import AuditEventType, CfsStatus, ReportStatus, Role
from cfs_portal.db.models import AuditLog, CallForService, CfsOrgAccess, Incident
from cfs_portal.schemas.cfs import (
    CfsConvert,
    CfsDismiss,
    CfsDuplicate,
    CfsTransfer,
    CfsTriage,
    OrgAccessGrant,
)
from cfs_portal.services import cfs_resolution_service, cfs_sharing_service, cfs_triage_service
from cfs_portal.services.cfs_errors import (
    GENERIC_ERROR_MESSAGE,
    AuthorizationError,
    NotFoundError,
    StoreProcedureError,
)


# =============================================================================
# Dismiss
# =============================================================================

def test_dismiss_closes_call(db, create_call, intake_ctx):
    cfs_id = create_call()

    result = cfs_resolution_service.dismiss_call(
        db, intake_ctx, cfs_id, CfsDismiss(report_status="false_alarm", notes="Nobody on site")
    )

    call = db.get(CallForService, cfs_id)
    assert result.message == "Call closed."
    assert result.invalidated_paths == [f"/ops/cfs/{cfs_id}", "/ops/cfs"]
    assert call.status == CfsStatus.DISMISSED.value
    assert call.report_status == ReportStatus.FALSE_ALARM.value
    assert call.resolution_notes == "Nobody on site"
    assert call.closed_at is not None


def test_triage_after_dismiss_is_accepted(db, create_call, admin_ctx):
    cfs_id = create_call()
    cfs_resolution_service.dismiss_call(db, admin_ctx, cfs_id, CfsDismiss(report_status="resolved"))

    result = cfs_triage_service.triage_call(
        db, admin_ctx, cfs_id, CfsTriage(report_priority_assessment="urgent")
    )

    call = db.get(CallForService, cfs_id)
    assert result.message == "Triage saved."
    assert call.status == CfsStatus.DISMISSED.value
    assert call.report_status == ReportStatus.RESOLVED.value
    assert call.report_priority_assessment == "urgent"


def test_dismiss_defaults_to_resolved():
    assert CfsDismiss().report_status == ReportStatus.RESOLVED
    assert CfsDismiss(report_status="").report_status == ReportStatus.RESOLVED


def test_dismiss_rejects_active_status():
    with pytest.raises(ValidationError) as exc_info:
        CfsDismiss(report_status="active")
    assert "Select a closing status." in str(exc_info.value)


def test_dismiss_requires_update_capability(db, create_call, viewer_ctx):
    cfs_id = create_call()
    with pytest.raises(AuthorizationError):
        cfs_resolution_service.dismiss_call(db, viewer_ctx, cfs_id, CfsDismiss())


# =============================================================================
# Duplicate
# =============================================================================

def test_mark_duplicate_links_original(db, create_call, admin_ctx):
    original_id = create_call()
    cfs_id = create_call()

    result = cfs_resolution_service.mark_duplicate(
        db, admin_ctx, cfs_id, CfsDuplicate(duplicate_of=original_id)
    )

    call = db.get(CallForService, cfs_id)
    assert result.message == "Marked as duplicate."
    assert call.duplicate_of_report_id == original_id
    assert call.status == CfsStatus.DUPLICATE.value
    assert call.report_status == ReportStatus.DUPLICATE.value


def test_mark_duplicate_of_itself_rolls_back(db, create_call, admin_ctx):
    cfs_id = create_call()

    with pytest.raises(StoreProcedureError) as exc_info:
        cfs_resolution_service.mark_duplicate(db, admin_ctx, cfs_id, CfsDuplicate(duplicate_of=cfs_id))

    assert exc_info.value.public_message == "A call cannot be marked as a duplicate of itself."
    assert db.get(CallForService, cfs_id).status == CfsStatus.RECEIVED.value


def test_mark_duplicate_missing_original(db, create_call, admin_ctx):
    cfs_id = create_call()
    with pytest.raises(NotFoundError) as exc_info:
        cfs_resolution_service.mark_duplicate(db, admin_ctx, cfs_id, CfsDuplicate(duplicate_of=9999))
    assert exc_info.value.public_message == "Duplicate report not found."
    assert db.get(CallForService, cfs_id).duplicate_of_report_id is None


def test_mark_duplicate_refuses_cycles(db, create_call, admin_ctx):
    first = create_call()
    second = create_call()
    cfs_resolution_service.mark_duplicate(db, admin_ctx, second, CfsDuplicate(duplicate_of=first))

    with pytest.raises(StoreProcedureError):
        cfs_resolution_service.mark_duplicate(db, admin_ctx, first, CfsDuplicate(duplicate_of=second))

    assert db.get(CallForService, first).duplicate_of_report_id is None


# =============================================================================
# Convert to incident
# =============================================================================

def test_convert_creates_linked_incident(db, create_call, admin_ctx, test_org):
    cfs_id = create_call(type_hint="welfare_check", priority_hint="high")

    result = cfs_resolution_service.convert_to_incident(
        db, admin_ctx, cfs_id, CfsConvert(dispatch_notes="Team 3 en route")
    )

    incident = db.get(Incident, result.incident_id)
    call = db.get(CallForService, cfs_id)
    assert result.message == "Converted to incident."
    assert incident.cfs_id == cfs_id
    assert incident.owning_organization_id == test_org.id
    assert incident.incident_type == "welfare_check"
    assert incident.priority == "high"
    assert incident.status == "open"
    assert incident.description == call.initial_report_narrative
    assert call.status == CfsStatus.DISPATCHED.value
    assert result.invalidated_paths == [f"/ops/cfs/{cfs_id}", f"/ops/incidents/{incident.id}"]


def test_convert_twice_is_rejected(db, create_call, admin_ctx):
    cfs_id = create_call()
    cfs_resolution_service.convert_to_incident(db, admin_ctx, cfs_id, CfsConvert())

    with pytest.raises(StoreProcedureError) as exc_info:
        cfs_resolution_service.convert_to_incident(db, admin_ctx, cfs_id, CfsConvert())

    assert exc_info.value.public_message == "This call has already been converted to an incident."
    assert db.query(Incident).count() == 1


def test_convert_requires_dispatch_capability(db, create_call, coordinator_ctx):
    cfs_id = create_call()
    with pytest.raises(AuthorizationError):
        cfs_resolution_service.convert_to_incident(db, coordinator_ctx, cfs_id, CfsConvert())
    assert db.query(Incident).count() == 0
    assert db.get(CallForService, cfs_id).status == CfsStatus.RECEIVED.value


def test_convert_without_incident_id_is_a_store_failure(db, create_call, admin_ctx, monkeypatch):
    from cfs_portal.services import cfs_procedures

    cfs_id = create_call()
    monkeypatch.setattr(cfs_procedures, "convert_to_incident", lambda *_args, **_kwargs: None)

    with pytest.raises(StoreProcedureError) as exc_info:
        cfs_resolution_service.convert_to_incident(db, admin_ctx, cfs_id, CfsConvert())
    assert exc_info.value.public_message == "Unable to convert call."


# =============================================================================
# Ownership transfer
# =============================================================================

def test_transfer_ownership_moves_call_and_drops_grant(db, create_call, admin_ctx, partner_org):
    cfs_id = create_call()
    cfs_sharing_service.grant_org_access(
        db, admin_ctx, cfs_id, OrgAccessGrant(organization_id=partner_org.id, access_level="edit")
    )

    result = cfs_resolution_service.transfer_ownership(
        db, admin_ctx, cfs_id, CfsTransfer(organization_id=partner_org.id, reason="Their catchment")
    )

    assert result.message == "Ownership transferred."
    assert db.get(CallForService, cfs_id).owning_organization_id == partner_org.id
    assert db.query(CfsOrgAccess).filter(CfsOrgAccess.cfs_id == cfs_id).count() == 0
    audit = db.query(AuditLog).filter(
        AuditLog.event_type == AuditEventType.CFS_OWNERSHIP_TRANSFERRED.value
    ).one()
    assert audit.details["to_organization_id"] == partner_org.id


def test_transfer_to_current_owner_rejected(db, create_call, admin_ctx, test_org):
    cfs_id = create_call()
    with pytest.raises(StoreProcedureError) as exc_info:
        cfs_resolution_service.transfer_ownership(
            db, admin_ctx, cfs_id, CfsTransfer(organization_id=test_org.id)
        )
    assert exc_info.value.public_message == "The call is already owned by that organization."


def test_transfer_to_unknown_organization_rejected(db, create_call, admin_ctx, test_org):
    cfs_id = create_call()
    with pytest.raises(NotFoundError) as exc_info:
        cfs_resolution_service.transfer_ownership(db, admin_ctx, cfs_id, CfsTransfer(organization_id=9999))
    assert exc_info.value.public_message == "Organization not found."
    assert db.get(CallForService, cfs_id).owning_organization_id == test_org.id


def test_partner_with_dispatch_grant_cannot_transfer(
    db, create_call, admin_ctx, make_ctx, partner_org, other_org
):
    cfs_id = create_call()
    cfs_sharing_service.grant_org_access(
        db, admin_ctx, cfs_id, OrgAccessGrant(organization_id=partner_org.id, access_level="dispatch")
    )
    partner_ctx = make_ctx(partner_org, Role.ADMIN)

    with pytest.raises(AuthorizationError):
        cfs_resolution_service.transfer_ownership(
            db, partner_ctx, cfs_id, CfsTransfer(organization_id=other_org.id)
        )


def test_unrelated_organization_cannot_transfer(db, create_call, other_admin_ctx, other_org):
    cfs_id = create_call()
    with pytest.raises(NotFoundError):
        cfs_resolution_service.transfer_ownership(
            db, other_admin_ctx, cfs_id, CfsTransfer(organization_id=other_org.id)
        )


def test_generic_message_for_unlisted_store_errors():
    assert StoreProcedureError("constraint xyz violated").public_message == GENERIC_ERROR_MESSAGE
