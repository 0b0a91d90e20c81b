"""Reporter notifications for Call-for-Service transitions.

``notify_reporter`` runs after the transition has committed. It reads the
call's notify preferences fresh from the store and enqueues at most one
outbound message. Nothing raised in here reaches the caller: failures are
logged and recorded as ``cfs_notification_failed`` audit events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from cfs_portal.core.structured_logging import build_log_context
from cfs_portal.db.enums import AuditEventType, NotifyChannel, format_label
from cfs_portal.db.models import CallForService
from cfs_portal.services import audit_service, notification_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationTemplate:
    subject: str
    body_text: str
    type: str
    body_sms: str | None = None


@dataclass(frozen=True)
class NotifySummary:
    notify_opt_in: bool
    notify_channel: str | None
    notify_target: str | None
    report_number: str | None
    public_tracking_id: str | None

    @property
    def deliverable(self) -> bool:
        return bool(
            self.notify_opt_in
            and self.notify_channel
            and self.notify_channel != NotifyChannel.NONE.value
            and self.notify_target
        )


# =============================================================================
# Templates
# =============================================================================

def received_template(cfs_id: int) -> NotificationTemplate:
    return NotificationTemplate(
        subject=f"Request received ({cfs_id})",
        body_text=(
            "We have received your request and our outreach team is reviewing it.\n\n"
            f"Tracking ID: {cfs_id}"
        ),
        body_sms=f"Request received. Tracking ID {cfs_id}.",
        type="cfs_received",
    )


def triaged_template(cfs_id: int) -> NotificationTemplate:
    return NotificationTemplate(
        subject=f"Request triaged ({cfs_id})",
        body_text="Your request has been triaged. A coordinator is reviewing the next steps.",
        body_sms="Your request has been triaged. A coordinator is reviewing next steps.",
        type="cfs_triaged",
    )


def verified_template(cfs_id: int) -> NotificationTemplate:
    return NotificationTemplate(
        subject=f"Request verified ({cfs_id})",
        body_text="Your request has been verified and is moving to the next step.",
        body_sms="Your request has been verified and is moving to the next step.",
        type="cfs_verified",
    )


def closed_template(cfs_id: int, report_status: str) -> NotificationTemplate:
    label = format_label(report_status)
    return NotificationTemplate(
        subject=f"Request closed ({cfs_id})",
        body_text=f"Your request has been closed with status: {label}.",
        body_sms=f"Your request has been closed ({label}).",
        type="cfs_closed",
    )


def duplicate_template(cfs_id: int) -> NotificationTemplate:
    return NotificationTemplate(
        subject=f"Request merged ({cfs_id})",
        body_text=(
            "Your request was merged with an existing report. The outreach team is "
            "continuing follow-up on the original request."
        ),
        body_sms="Your request was merged with an existing report. We are continuing follow-up.",
        type="cfs_duplicate",
    )


def dispatched_template(cfs_id: int) -> NotificationTemplate:
    return NotificationTemplate(
        subject=f"Request dispatched ({cfs_id})",
        body_text=(
            "Your request has been dispatched to an outreach team. "
            "We will follow up once there is an update."
        ),
        body_sms="Your request has been dispatched to an outreach team.",
        type="cfs_dispatched",
    )


# =============================================================================
# Dispatch
# =============================================================================

def load_notify_summary(db: Session, cfs_id: int) -> NotifySummary | None:
    row = db.execute(
        select(
            CallForService.notify_opt_in,
            CallForService.notify_channel,
            CallForService.notify_target,
            CallForService.report_number,
            CallForService.public_tracking_id,
        ).where(CallForService.id == cfs_id)
    ).first()
    if row is None:
        return None
    return NotifySummary(
        notify_opt_in=bool(row.notify_opt_in),
        notify_channel=row.notify_channel,
        notify_target=row.notify_target,
        report_number=row.report_number,
        public_tracking_id=row.public_tracking_id,
    )


def _record_audit(
    db: Session,
    cfs_id: int,
    event_type: AuditEventType,
    *,
    actor_profile_id: UUID | None,
    org_id: int | None,
    details: dict,
) -> None:
    try:
        audit_service.log_event(
            db=db,
            org_id=org_id,
            event_type=event_type,
            actor_profile_id=actor_profile_id,
            target_type="cfs",
            target_id=cfs_id,
            details=details,
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.warning(
            "Unable to log CFS notification audit",
            extra=build_log_context(cfs_id=cfs_id, org_id=org_id),
            exc_info=True,
        )


def notify_reporter(
    db: Session,
    cfs_id: int,
    template: NotificationTemplate,
    *,
    actor_profile_id: UUID | None = None,
    org_id: int | None = None,
) -> int | None:
    """
    Enqueue ``template`` for the reporter of ``cfs_id`` if they opted in.

    Returns the outbound notification id, or None when nothing was sent
    (not opted in, no channel/target, or a failure that was logged).
    """
    try:
        summary = load_notify_summary(db, cfs_id)
    except Exception:
        db.rollback()
        logger.warning(
            "Unable to load CFS notify preferences",
            extra=build_log_context(cfs_id=cfs_id, org_id=org_id),
            exc_info=True,
        )
        return None

    if summary is None or not summary.deliverable:
        return None

    channel = NotifyChannel.SMS if summary.notify_channel == NotifyChannel.SMS.value else NotifyChannel.EMAIL
    body_text = (template.body_sms or template.body_text) if channel == NotifyChannel.SMS else template.body_text
    base_details = {
        "notification_type": template.type,
        "channel": channel.value,
        "report_number": summary.report_number,
        "public_tracking_id": summary.public_tracking_id,
    }

    try:
        notification = notification_service.queue_outbound_notification(
            db,
            cfs_id=cfs_id,
            channel=channel,
            target=summary.notify_target,
            subject=template.subject,
            body_text=body_text,
            notification_type=template.type,
            payload={
                "report_number": summary.report_number,
                "public_tracking_id": summary.public_tracking_id,
            },
            created_by_profile_id=actor_profile_id,
        )
    except Exception as exc:
        db.rollback()
        logger.warning(
            "Unable to send CFS notification",
            extra=build_log_context(cfs_id=cfs_id, org_id=org_id, operation=template.type),
            exc_info=True,
        )
        _record_audit(
            db,
            cfs_id,
            AuditEventType.CFS_NOTIFICATION_FAILED,
            actor_profile_id=actor_profile_id,
            org_id=org_id,
            details={**base_details, "error_message": audit_service.truncate_error(str(exc) or type(exc).__name__)},
        )
        return None

    _record_audit(
        db,
        cfs_id,
        AuditEventType.CFS_NOTIFICATION_QUEUED,
        actor_profile_id=actor_profile_id,
        org_id=org_id,
        details={**base_details, "notification_id": notification.id},
    )
    return notification.id
