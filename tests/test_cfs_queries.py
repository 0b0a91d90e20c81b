"""Queue and detail reads are scoped to the acting organization."""

import pytest

from cfs_portal.core.access import AccessContext
from cfs_portal.db.enums import OwnerScope
from cfs_portal.db.models import CallForService
from cfs_portal.schemas.cfs import CfsConvert, OrgAccessGrant
from cfs_portal.services import cfs_query_service, cfs_resolution_service, cfs_sharing_service
from cfs_portal.services.cfs_errors import AuthorizationError, NotFoundError


def test_list_shows_owned_and_shared_calls(
    db, create_call, admin_ctx, partner_admin_ctx, partner_org
):
    owned_by_test_org = create_call()
    shared = create_call()
    owned_by_partner = create_call(ctx=partner_admin_ctx)
    cfs_sharing_service.grant_org_access(db, admin_ctx, shared, OrgAccessGrant(organization_id=partner_org.id))

    ids = {call.id for call in cfs_query_service.list_calls(db, partner_admin_ctx)}

    assert ids == {shared, owned_by_partner}
    assert owned_by_test_org not in ids


def test_owner_scope_filters(db, create_call, admin_ctx, partner_admin_ctx, partner_org):
    shared = create_call()
    owned = create_call(ctx=partner_admin_ctx)
    cfs_sharing_service.grant_org_access(db, admin_ctx, shared, OrgAccessGrant(organization_id=partner_org.id))

    owned_ids = [c.id for c in cfs_query_service.list_calls(db, partner_admin_ctx, owner_scope=OwnerScope.OWNED)]
    shared_ids = [c.id for c in cfs_query_service.list_calls(db, partner_admin_ctx, owner_scope=OwnerScope.SHARED)]

    assert owned_ids == [owned]
    assert shared_ids == [shared]


def test_list_filters_and_search(db, create_call, admin_ctx):
    target = create_call(source="web_form", location_text="Pier 39 boardwalk")
    create_call(source="phone", location_text="Library steps")

    assert [c.id for c in cfs_query_service.list_calls(db, admin_ctx, source="web_form")] == [target]
    assert [c.id for c in cfs_query_service.list_calls(db, admin_ctx, search="pier 39")] == [target]

    report_number = db.get(CallForService, target).report_number
    assert [c.id for c in cfs_query_service.list_calls(db, admin_ctx, search=report_number)] == [target]


def test_list_orders_newest_report_first_and_limits(db, create_call, admin_ctx):
    older = create_call(report_received_at="2026-01-01T09:00:00Z")
    newer = create_call(report_received_at="2026-01-02T09:00:00Z")

    assert [c.id for c in cfs_query_service.list_calls(db, admin_ctx)] == [newer, older]
    assert [c.id for c in cfs_query_service.list_calls(db, admin_ctx, limit=1)] == [newer]


def test_global_admin_sees_everything(db, create_call, partner_admin_ctx, make_ctx):
    first = create_call()
    second = create_call(ctx=partner_admin_ctx)
    ctx = make_ctx(None, None, global_admin=True)

    assert {c.id for c in cfs_query_service.list_calls(db, ctx)} == {first, second}


def test_no_acting_organization_sees_nothing(db, create_call, admin_ctx):
    create_call()
    ctx = AccessContext(
        profile_id=admin_ctx.profile_id, organization_id=None, permissions=frozenset({"cfs.read"})
    )

    assert cfs_query_service.list_calls(db, ctx) == []


def test_profile_without_membership_cannot_read(db, create_call, make_ctx, test_org):
    create_call()
    ctx = make_ctx(test_org, None)

    with pytest.raises(AuthorizationError):
        cfs_query_service.list_calls(db, ctx)


def test_read_requires_capability(db, create_call, make_ctx, test_org):
    cfs_id = create_call()
    ctx = make_ctx(test_org, None, approved=False)
    with pytest.raises(AuthorizationError):
        cfs_query_service.get_call(db, ctx, cfs_id)


def test_get_call_out_of_scope_is_not_found(db, create_call, other_admin_ctx):
    cfs_id = create_call()
    with pytest.raises(NotFoundError):
        cfs_query_service.get_call(db, other_admin_ctx, cfs_id)
    with pytest.raises(NotFoundError):
        cfs_query_service.list_timeline(db, other_admin_ctx, cfs_id)


def test_satellite_reads(db, create_call, admin_ctx, partner_org):
    cfs_id = create_call()
    cfs_sharing_service.grant_org_access(db, admin_ctx, cfs_id, OrgAccessGrant(organization_id=partner_org.id))

    assert cfs_query_service.get_incident_for_call(db, admin_ctx, cfs_id) is None
    cfs_resolution_service.convert_to_incident(db, admin_ctx, cfs_id, CfsConvert())

    phases = [entry.phase for entry in cfs_query_service.list_timeline(db, admin_ctx, cfs_id)]
    assert phases == ["intake", "sharing", "dispatch"]
    assert [grant.organization_id for grant in cfs_query_service.list_org_access(db, admin_ctx, cfs_id)] == [
        partner_org.id
    ]
    assert cfs_query_service.get_incident_for_call(db, admin_ctx, cfs_id).cfs_id == cfs_id
    assert cfs_query_service.list_attachments(db, admin_ctx, cfs_id) == []
    assert cfs_query_service.get_public_tracking(db, admin_ctx, cfs_id) is None
