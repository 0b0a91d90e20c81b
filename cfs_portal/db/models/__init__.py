"""SQLAlchemy ORM models."""

from cfs_portal.db.models.audit import AuditLog
from cfs_portal.db.models.auth import (
    Membership,
    Organization,
    Profile,
    ProfilePermissionOverride,
)
from cfs_portal.db.models.cfs import (
    CallForService,
    CfsAttachment,
    CfsOrgAccess,
    CfsPublicTracking,
    CfsTimelineEntry,
)
from cfs_portal.db.models.incidents import Incident
from cfs_portal.db.models.notifications import OutboundNotification

__all__ = [
    "AuditLog",
    "CallForService",
    "CfsAttachment",
    "CfsOrgAccess",
    "CfsPublicTracking",
    "CfsTimelineEntry",
    "Incident",
    "Membership",
    "Organization",
    "OutboundNotification",
    "Profile",
    "ProfilePermissionOverride",
]
