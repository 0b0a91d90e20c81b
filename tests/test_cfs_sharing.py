"""Partner organization access grants."""

import pytest

from cfs_portal.db.enums import AuditEventType
from cfs_portal.db.models import AuditLog, CfsOrgAccess, CfsTimelineEntry
from cfs_portal.schemas.cfs import OrgAccessGrant
from cfs_portal.services import cfs_query_service, cfs_sharing_service
from cfs_portal.services.cfs_errors import AuthorizationError, NotFoundError, StoreProcedureError


def _grants(db, cfs_id):
    return db.query(CfsOrgAccess).filter(CfsOrgAccess.cfs_id == cfs_id).all()


def test_grant_defaults_to_view(db, create_call, coordinator_ctx, partner_org):
    cfs_id = create_call()

    result = cfs_sharing_service.grant_org_access(
        db, coordinator_ctx, cfs_id, OrgAccessGrant(organization_id=partner_org.id, reason="Shelter beds")
    )

    assert result.message == "Organization added."
    assert result.invalidated_paths == [f"/ops/cfs/{cfs_id}"]
    (grant,) = _grants(db, cfs_id)
    assert grant.access_level == "view"
    assert grant.reason == "Shelter beds"
    assert grant.granted_by_profile_id == coordinator_ctx.profile_id


def test_regrant_updates_level_in_place(db, create_call, admin_ctx, partner_org):
    cfs_id = create_call()
    cfs_sharing_service.grant_org_access(
        db, admin_ctx, cfs_id, OrgAccessGrant(organization_id=partner_org.id, access_level="view")
    )

    cfs_sharing_service.grant_org_access(
        db, admin_ctx, cfs_id, OrgAccessGrant(organization_id=partner_org.id, access_level="edit")
    )

    grants = _grants(db, cfs_id)
    assert len(grants) == 1
    assert grants[0].access_level == "edit"

    audits = db.query(AuditLog).filter(AuditLog.event_type == AuditEventType.CFS_ACCESS_GRANTED.value).all()
    assert sorted(str(row.details["previous_level"]) for row in audits) == ["None", "view"]


def test_cannot_grant_owner(db, create_call, admin_ctx, test_org):
    cfs_id = create_call()
    with pytest.raises(StoreProcedureError) as exc_info:
        cfs_sharing_service.grant_org_access(db, admin_ctx, cfs_id, OrgAccessGrant(organization_id=test_org.id))
    assert exc_info.value.public_message == "The owning organization already has access to this call."
    assert _grants(db, cfs_id) == []


def test_grant_to_unknown_organization_not_found(db, create_call, admin_ctx):
    cfs_id = create_call()
    with pytest.raises(NotFoundError) as exc_info:
        cfs_sharing_service.grant_org_access(db, admin_ctx, cfs_id, OrgAccessGrant(organization_id=9999))
    assert exc_info.value.public_message == "Organization not found."
    assert _grants(db, cfs_id) == []
    assert db.query(AuditLog).filter(AuditLog.event_type == AuditEventType.CFS_ACCESS_GRANTED.value).count() == 0


def test_grant_requires_share_capability(db, create_call, intake_ctx, partner_org):
    cfs_id = create_call()
    with pytest.raises(AuthorizationError):
        cfs_sharing_service.grant_org_access(db, intake_ctx, cfs_id, OrgAccessGrant(organization_id=partner_org.id))


def test_partner_cannot_reshare(db, create_call, admin_ctx, partner_admin_ctx, partner_org, other_org):
    cfs_id = create_call()
    cfs_sharing_service.grant_org_access(
        db, admin_ctx, cfs_id, OrgAccessGrant(organization_id=partner_org.id, access_level="edit")
    )

    with pytest.raises(AuthorizationError) as exc_info:
        cfs_sharing_service.grant_org_access(
            db, partner_admin_ctx, cfs_id, OrgAccessGrant(organization_id=other_org.id)
        )
    assert exc_info.value.public_message == "Only the owning organization can manage this call."


def test_revoke_removes_grant_and_visibility(db, create_call, admin_ctx, partner_admin_ctx, partner_org):
    cfs_id = create_call()
    cfs_sharing_service.grant_org_access(db, admin_ctx, cfs_id, OrgAccessGrant(organization_id=partner_org.id))
    assert cfs_query_service.get_call(db, partner_admin_ctx, cfs_id).id == cfs_id

    result = cfs_sharing_service.revoke_org_access(db, admin_ctx, cfs_id, partner_org.id, reason="Closed out")

    assert result.message == "Access revoked."
    assert _grants(db, cfs_id) == []
    with pytest.raises(NotFoundError):
        cfs_query_service.get_call(db, partner_admin_ctx, cfs_id)


def test_revoke_missing_grant_still_succeeds(db, create_call, admin_ctx, partner_org):
    cfs_id = create_call()
    timeline_before = db.query(CfsTimelineEntry).filter(CfsTimelineEntry.cfs_id == cfs_id).count()

    result = cfs_sharing_service.revoke_org_access(db, admin_ctx, cfs_id, partner_org.id)

    assert result.message == "Access revoked."
    assert db.query(CfsTimelineEntry).filter(CfsTimelineEntry.cfs_id == cfs_id).count() == timeline_before
    audit = db.query(AuditLog).filter(AuditLog.event_type == AuditEventType.CFS_ACCESS_REVOKED.value).one()
    assert audit.details["removed"] is False
