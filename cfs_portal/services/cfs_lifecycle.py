"""Shared tail of every CFS operation.

After the store procedure commits: best-effort reporter notification, then
the view invalidation signal, then the result handed back to the router.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext
from cfs_portal.services import cfs_events, cfs_notifications
from cfs_portal.services.cfs_notifications import NotificationTemplate


@dataclass
class CfsActionResult:
    cfs_id: int
    message: str
    incident_id: int | None = None
    tracking_id: str | None = None
    attachment_id: UUID | None = None
    invalidated_paths: list[str] = field(default_factory=list)


def complete_transition(
    db: Session,
    ctx: AccessContext,
    cfs_id: int,
    message: str,
    *,
    template: NotificationTemplate | None = None,
    refresh_list: bool = False,
    incident_id: int | None = None,
    tracking_id: str | None = None,
    attachment_id: UUID | None = None,
) -> CfsActionResult:
    if template is not None:
        cfs_notifications.notify_reporter(
            db,
            cfs_id,
            template,
            actor_profile_id=ctx.profile_id,
            org_id=ctx.organization_id,
        )
    paths = cfs_events.signal_call_changed(cfs_id, list_view=refresh_list, incident_id=incident_id)
    return CfsActionResult(
        cfs_id=cfs_id,
        message=message,
        incident_id=incident_id,
        tracking_id=tracking_id,
        attachment_id=attachment_id,
        invalidated_paths=paths,
    )
