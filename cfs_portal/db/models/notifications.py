"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from cfs_portal.db.base import Base


class OutboundNotification(Base):
    """
    Reporter notification waiting for the delivery provider.

    This service only enqueues; delivery (email/SMS transport) happens
    elsewhere and flips ``status``.
    """

    __tablename__ = "outbound_notifications"
    __table_args__ = (
        Index("idx_outbound_notifications_status", "status", "created_at"),
        Index("idx_outbound_notifications_cfs", "cfs_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cfs_id: Mapped[int | None] = mapped_column(
        ForeignKey("calls_for_service.id", ondelete="SET NULL"), nullable=True
    )
    recipient_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recipient_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    channels: Mapped[list] = mapped_column(JSON, nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    body_text: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default="queued", server_default=text("'queued'"), nullable=False
    )  # queued | sent | failed
    created_by_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
