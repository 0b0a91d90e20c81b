"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cfs_portal.db.base import Base

if TYPE_CHECKING:
    from cfs_portal.db.models import CallForService


class Incident(Base):
    """
    Tracked incident spawned from a call. The originating call is kept and
    stays linked through ``cfs_id``.
    """

    __tablename__ = "incidents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cfs_id: Mapped[int | None] = mapped_column(
        ForeignKey("calls_for_service.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    owning_organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False
    )
    incident_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    priority: Mapped[str | None] = mapped_column(String(20), nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    dispatch_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    call: Mapped["CallForService | None"] = relationship(back_populates="incident")
