"""Enum definitions for application constants."""

from cfs_portal.db.enums.audit import AuditEventType
from cfs_portal.db.enums.auth import OverrideType, Role
from cfs_portal.db.enums.cfs import (
    DEFAULT_ACCESS_LEVEL,
    DEFAULT_CFS_ORIGIN,
    DEFAULT_CFS_SOURCE,
    DEFAULT_DISMISS_REPORT_STATUS,
    DEFAULT_INCIDENT_STATUS,
    DEFAULT_NOTIFY_CHANNEL,
    DEFAULT_REPORT_METHOD,
    DEFAULT_REPORT_PRIORITY,
    DEFAULT_VERIFICATION_METHOD,
    DEFAULT_VERIFICATION_STATUS,
    CfsAccessLevel,
    CfsOrigin,
    CfsSource,
    CfsStatus,
    IncidentPriority,
    IncidentType,
    NotifyChannel,
    OwnerScope,
    PublicCategory,
    PublicStatus,
    ReportMethod,
    ReportPriority,
    ReportStatus,
    TimelinePhase,
    VerificationMethod,
    VerificationStatus,
    format_label,
)

__all__ = [
    "AuditEventType",
    "CfsAccessLevel",
    "CfsOrigin",
    "CfsSource",
    "CfsStatus",
    "DEFAULT_ACCESS_LEVEL",
    "DEFAULT_CFS_ORIGIN",
    "DEFAULT_CFS_SOURCE",
    "DEFAULT_DISMISS_REPORT_STATUS",
    "DEFAULT_INCIDENT_STATUS",
    "DEFAULT_NOTIFY_CHANNEL",
    "DEFAULT_REPORT_METHOD",
    "DEFAULT_REPORT_PRIORITY",
    "DEFAULT_VERIFICATION_METHOD",
    "DEFAULT_VERIFICATION_STATUS",
    "IncidentPriority",
    "IncidentType",
    "NotifyChannel",
    "OverrideType",
    "OwnerScope",
    "PublicCategory",
    "PublicStatus",
    "ReportMethod",
    "ReportPriority",
    "ReportStatus",
    "Role",
    "TimelinePhase",
    "VerificationMethod",
    "VerificationStatus",
    "format_label",
]
