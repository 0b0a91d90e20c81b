"""Audit logging service - CFS activity tracking.

Security guidelines:
- NEVER log reporter contact details or notify targets
- Use IDs instead of raw data where possible
- Error text stored in details is truncated
"""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from cfs_portal.db.enums import AuditEventType
from cfs_portal.db.models import AuditLog


MAX_ERROR_DETAIL_LENGTH = 500


def truncate_error(message: str | None, limit: int = MAX_ERROR_DETAIL_LENGTH) -> str:
    """Trim an error message for storage in audit details."""
    if not message:
        return ""
    return message[:limit]


def log_event(
    db: Session,
    org_id: int | None,
    event_type: AuditEventType,
    actor_profile_id: UUID | None = None,
    target_type: str | None = None,
    target_id: int | UUID | str | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Add an audit event to the session.

    The caller owns the transaction: store procedures write their audit row
    inside the same commit as the change it describes.

    Args:
        db: Database session
        org_id: Organization context (acting organization, may be None)
        event_type: Type of event (from AuditEventType)
        actor_profile_id: Profile who performed the action (None for system)
        target_type: Type of entity affected (e.g., 'cfs', 'cfs_attachment')
        target_id: ID of the affected entity
        details: Additional context (no PII)
    """
    entry = AuditLog(
        organization_id=org_id,
        actor_profile_id=actor_profile_id,
        event_type=event_type.value,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        details=details,
    )
    db.add(entry)
    db.flush()
    return entry


def list_events_for_target(db: Session, target_type: str, target_id: int | UUID | str) -> list[AuditLog]:
    """Audit rows for one entity, oldest first."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.target_type == target_type, AuditLog.target_id == str(target_id))
        .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        .all()
    )
