"""Session endpoints: current profile, acting organization, logout."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from cfs_portal.core.config import settings
from cfs_portal.core.deps import COOKIE_NAME, get_current_profile, get_db, require_csrf_header
from cfs_portal.db.models import Membership, Organization
from cfs_portal.schemas.auth import MeResponse, OrganizationSummary, SelectOrganizationRequest
from cfs_portal.services import access_service


router = APIRouter(prefix="/auth", tags=["auth"])


def _build_me(db: Session, profile) -> MeResponse:
    ctx = access_service.resolve_access_context(db, profile)
    rows = (
        db.query(Membership, Organization)
        .join(Organization, Organization.id == Membership.organization_id)
        .filter(Membership.profile_id == profile.id, Organization.is_active.is_(True))
        .order_by(Organization.name)
        .all()
    )
    return MeResponse(
        profile_id=profile.id,
        email=profile.email,
        display_name=profile.display_name,
        is_approved=profile.is_approved,
        is_global_admin=profile.is_global_admin,
        organization_id=ctx.organization_id,
        organizations=[
            OrganizationSummary(id=org.id, name=org.name, slug=org.slug, role=membership.role)
            for membership, org in rows
        ],
        capabilities=ctx.capabilities(),
    )


@router.get("/me", response_model=MeResponse)
def get_me(
    profile=Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """
    Get current profile, memberships and resolved capabilities.

    Used by the frontend to decide which CFS actions to offer.
    """
    return _build_me(db, profile)


@router.post(
    "/me/organization",
    response_model=MeResponse,
    dependencies=[Depends(require_csrf_header)],
)
def select_organization(
    data: SelectOrganizationRequest,
    profile=Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Switch the acting organization for subsequent requests."""
    profile = access_service.select_acting_organization(db, profile, data.organization_id)
    return _build_me(db, profile)


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(response: Response):
    """Clear the session cookie."""
    response.delete_cookie(
        COOKIE_NAME,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return {"status": "logged_out"}
