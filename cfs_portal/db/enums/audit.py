"""Audit enums."""

from enum import Enum


class AuditEventType(str, Enum):
    """
    Audit events recorded for Call-for-Service activity.

    Groups:
    - CFS_*: lifecycle transitions and satellite operations
    - CFS_NOTIFICATION_*: reporter notification outcomes
    - CFS_ATTACHMENT_*: evidence file changes
    """

    CFS_CREATED = "cfs_created"
    CFS_TRIAGED = "cfs_triaged"
    CFS_VERIFIED = "cfs_verified"
    CFS_DISMISSED = "cfs_dismissed"
    CFS_MARKED_DUPLICATE = "cfs_marked_duplicate"
    CFS_CONVERTED = "cfs_converted_to_incident"
    CFS_OWNERSHIP_TRANSFERRED = "cfs_ownership_transferred"
    CFS_ACCESS_GRANTED = "cfs_access_granted"
    CFS_ACCESS_REVOKED = "cfs_access_revoked"
    CFS_PUBLIC_TRACKING_ENABLED = "cfs_public_tracking_enabled"
    CFS_PUBLIC_TRACKING_DISABLED = "cfs_public_tracking_disabled"
    CFS_NOTE_ADDED = "cfs_note_added"
    CFS_STATUS_UPDATED = "cfs_status_updated"

    CFS_NOTIFICATION_QUEUED = "cfs_notification_queued"
    CFS_NOTIFICATION_FAILED = "cfs_notification_failed"

    CFS_ATTACHMENT_UPLOADED = "cfs_attachment_uploaded"
    CFS_ATTACHMENT_DELETED = "cfs_attachment_deleted"
