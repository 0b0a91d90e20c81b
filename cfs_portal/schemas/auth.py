"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, Field


class OrganizationSummary(BaseModel):
    id: int
    name: str
    slug: str
    role: str | None = None


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    profile_id: UUID
    email: str
    display_name: str
    is_approved: bool
    is_global_admin: bool
    organization_id: int | None
    organizations: list[OrganizationSummary]
    capabilities: dict[str, bool]


class SelectOrganizationRequest(BaseModel):
    """Switch the acting organization."""
    organization_id: int = Field(..., gt=0)
