"""Access gate for Call-for-Service operations.

An ``AccessContext`` is resolved once per request (see
``services.access_service``) and passed explicitly into every operation.
Operations check a capability first and, when they write
organization-scoped data, the acting organization second.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from cfs_portal.services.cfs_errors import AuthorizationError, OrganizationRequiredError


# Capability attribute -> permission key
CAPABILITY_PERMISSIONS: dict[str, str] = {
    "can_read_cfs": "cfs.read",
    "can_create_cfs": "cfs.create",
    "can_update_cfs": "cfs.update",
    "can_triage_cfs": "cfs.triage",
    "can_dispatch_cfs": "cfs.dispatch",
    "can_share_cfs": "cfs.share",
    "can_public_track_cfs": "cfs.public_track",
    "can_delete_cfs": "cfs.delete",
}


@dataclass(frozen=True)
class AccessContext:
    """Resolved capability bundle for one caller."""

    profile_id: UUID
    organization_id: int | None
    is_global_admin: bool = False
    permissions: frozenset[str] = field(default_factory=frozenset)

    @property
    def can_read_cfs(self) -> bool:
        # Any CFS write capability implies read
        return bool(
            self.permissions
            & {"cfs.read", "cfs.create", "cfs.update", "cfs.triage", "cfs.dispatch"}
        )

    @property
    def can_create_cfs(self) -> bool:
        return "cfs.create" in self.permissions

    @property
    def can_update_cfs(self) -> bool:
        return "cfs.update" in self.permissions

    @property
    def can_triage_cfs(self) -> bool:
        return "cfs.triage" in self.permissions

    @property
    def can_dispatch_cfs(self) -> bool:
        return "cfs.dispatch" in self.permissions

    @property
    def can_share_cfs(self) -> bool:
        return "cfs.share" in self.permissions

    @property
    def can_public_track_cfs(self) -> bool:
        return "cfs.public_track" in self.permissions

    @property
    def can_delete_cfs(self) -> bool:
        return "cfs.delete" in self.permissions

    def capabilities(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in CAPABILITY_PERMISSIONS}


def require_capability(ctx: AccessContext | None, capability: str, message: str) -> AccessContext:
    """Raise AuthorizationError with ``message`` unless ``ctx`` holds ``capability``."""
    if capability not in CAPABILITY_PERMISSIONS:
        raise ValueError(f"Unknown capability: {capability}")
    if ctx is None or not getattr(ctx, capability):
        raise AuthorizationError(message)
    return ctx


def require_organization(ctx: AccessContext, message: str) -> int:
    """Return the acting organization id or raise OrganizationRequiredError."""
    if ctx.organization_id is None:
        raise OrganizationRequiredError(message)
    return ctx.organization_id
