"""Resolve an AccessContext for a profile.

Steps:
1. Unapproved or inactive profiles get an empty capability set.
2. Global admins get every permission.
3. Otherwise permissions come from the membership role in the acting
   organization plus per-profile overrides.

If the profile has no acting organization but exactly one membership,
that organization is selected and persisted.
"""

import logging
import uuid

from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext
from cfs_portal.core.structured_logging import build_log_context
from cfs_portal.db.enums import Role
from cfs_portal.db.models import Membership, Organization, Profile
from cfs_portal.services import permission_service
from cfs_portal.services.cfs_errors import AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)


def get_membership(db: Session, profile_id: uuid.UUID, org_id: int) -> Membership | None:
    return db.query(Membership).filter(
        Membership.profile_id == profile_id,
        Membership.organization_id == org_id,
    ).first()


def _auto_select_organization(db: Session, profile: Profile) -> None:
    memberships = db.query(Membership).filter(Membership.profile_id == profile.id).limit(2).all()
    if len(memberships) == 1:
        profile.organization_id = memberships[0].organization_id
        db.commit()
        logger.info(
            "Auto-selected acting organization",
            extra=build_log_context(profile_id=profile.id, org_id=profile.organization_id),
        )


def resolve_access_context(db: Session, profile: Profile) -> AccessContext:
    """Build the capability bundle for ``profile``."""
    if not profile.is_active or not profile.is_approved:
        return AccessContext(profile_id=profile.id, organization_id=profile.organization_id)

    if profile.organization_id is None:
        _auto_select_organization(db, profile)

    org_id = profile.organization_id

    if profile.is_global_admin:
        return AccessContext(
            profile_id=profile.id,
            organization_id=org_id,
            is_global_admin=True,
            permissions=frozenset(permission_service.all_permissions()),
        )

    if org_id is None:
        return AccessContext(profile_id=profile.id, organization_id=None)

    membership = get_membership(db, profile.id, org_id)
    role = membership.role if membership and Role.has_value(membership.role) else None
    if membership and role is None:
        logger.warning(
            "Unknown membership role ignored",
            extra=build_log_context(profile_id=profile.id, org_id=org_id),
        )

    permissions = permission_service.get_effective_permissions(db, org_id, profile.id, role)
    return AccessContext(
        profile_id=profile.id,
        organization_id=org_id,
        permissions=frozenset(permissions),
    )


def select_acting_organization(db: Session, profile: Profile, org_id: int) -> Profile:
    """Switch the profile's acting organization. Requires a membership unless global admin."""
    organization = db.get(Organization, org_id)
    if not organization or not organization.is_active:
        raise NotFoundError("Organization not found.")
    if not profile.is_global_admin and not get_membership(db, profile.id, org_id):
        raise AuthorizationError("You are not a member of that organization.")

    profile.organization_id = org_id
    db.commit()
    db.refresh(profile)
    return profile
