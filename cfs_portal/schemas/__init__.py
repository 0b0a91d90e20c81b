"""Pydantic schemas for API request/response models."""

from cfs_portal.schemas.auth import MeResponse, OrganizationSummary, SelectOrganizationRequest
from cfs_portal.schemas.cfs import (
    AttachmentRead,
    CfsActionResponse,
    CfsConvert,
    CfsCreate,
    CfsDismiss,
    CfsDuplicate,
    CfsListItem,
    CfsNoteCreate,
    CfsRead,
    CfsStatusUpdate,
    CfsTransfer,
    CfsTriage,
    CfsVerify,
    IncidentRead,
    OrgAccessGrant,
    OrgAccessRead,
    PublicTrackingEnable,
    PublicTrackingRead,
    PublicTrackingStatus,
    TimelineEntryRead,
)

__all__ = [
    "AttachmentRead",
    "CfsActionResponse",
    "CfsConvert",
    "CfsCreate",
    "CfsDismiss",
    "CfsDuplicate",
    "CfsListItem",
    "CfsNoteCreate",
    "CfsRead",
    "CfsStatusUpdate",
    "CfsTransfer",
    "CfsTriage",
    "CfsVerify",
    "IncidentRead",
    "MeResponse",
    "OrgAccessGrant",
    "OrgAccessRead",
    "OrganizationSummary",
    "PublicTrackingEnable",
    "PublicTrackingRead",
    "PublicTrackingStatus",
    "SelectOrganizationRequest",
    "TimelineEntryRead",
]
