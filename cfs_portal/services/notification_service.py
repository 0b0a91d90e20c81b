"""
Notification Service - outbound reporter notifications.

Enqueues email/SMS messages for the delivery provider. Delivery itself is
out of process; rows start in ``queued``.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from cfs_portal.db.enums import NotifyChannel
from cfs_portal.db.models import OutboundNotification


# =============================================================================
# Outbound Queue
# =============================================================================


def queue_outbound_notification(
    db: Session,
    *,
    cfs_id: int,
    channel: NotifyChannel,
    target: str,
    subject: str,
    body_text: str,
    notification_type: str,
    payload: Optional[dict[str, Any]] = None,
    created_by_profile_id: Optional[UUID] = None,
) -> OutboundNotification:
    """
    Queue one outbound message on a single channel.

    The target goes to ``recipient_email`` or ``recipient_phone`` depending
    on the channel. Commits.
    """
    if channel == NotifyChannel.NONE:
        raise ValueError("Cannot queue a notification without a channel")

    notification = OutboundNotification(
        cfs_id=cfs_id,
        recipient_email=target if channel == NotifyChannel.EMAIL else None,
        recipient_phone=target if channel == NotifyChannel.SMS else None,
        channels=[channel.value],
        subject=subject,
        body_text=body_text,
        notification_type=notification_type,
        payload=payload,
        created_by_profile_id=created_by_profile_id,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def list_for_call(db: Session, cfs_id: int) -> list[OutboundNotification]:
    """Queued and delivered messages for a call, oldest first."""
    return (
        db.query(OutboundNotification)
        .filter(OutboundNotification.cfs_id == cfs_id)
        .order_by(OutboundNotification.created_at, OutboundNotification.id)
        .all()
    )
