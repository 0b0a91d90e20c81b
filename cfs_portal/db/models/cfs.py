"""SQLAlchemy ORM models for Calls for Service."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cfs_portal.db.base import Base
from cfs_portal.db.enums import (
    DEFAULT_CFS_ORIGIN,
    DEFAULT_CFS_SOURCE,
    DEFAULT_NOTIFY_CHANNEL,
    DEFAULT_REPORT_METHOD,
    DEFAULT_REPORT_PRIORITY,
    DEFAULT_VERIFICATION_METHOD,
    DEFAULT_VERIFICATION_STATUS,
    CfsStatus,
    ReportStatus,
)

if TYPE_CHECKING:
    from cfs_portal.db.models import Incident, Organization


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallForService(Base):
    """
    An incoming help request and its lifecycle state.

    Constraints (enforced by check constraints and the create procedure):
    - at most one of reporting_person_id / reporting_organization_id
    - anonymous reporters carry neither link
    - notify_target is set whenever notify_opt_in and channel != none

    ``status`` is the lifecycle phase; ``report_status`` is the independent
    closure classification set by resolution actions.
    """

    __tablename__ = "calls_for_service"
    __table_args__ = (
        CheckConstraint(
            "reporting_person_id IS NULL OR reporting_organization_id IS NULL",
            name="reporter_link_exclusive",
        ),
        CheckConstraint(
            "NOT anonymous_reporter OR "
            "(reporting_person_id IS NULL AND reporting_organization_id IS NULL)",
            name="anonymous_reporter_unlinked",
        ),
        CheckConstraint(
            "NOT notify_opt_in OR notify_channel = 'none' OR notify_target IS NOT NULL",
            name="notify_target_required",
        ),
        Index("idx_cfs_owner_received", "owning_organization_id", "report_received_at"),
        Index("idx_cfs_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_number: Mapped[str | None] = mapped_column(String(32), unique=True, nullable=True)
    owning_organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False
    )
    created_by_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    # Classification
    origin: Mapped[str] = mapped_column(String(20), default=DEFAULT_CFS_ORIGIN.value, nullable=False)
    source: Mapped[str] = mapped_column(String(30), default=DEFAULT_CFS_SOURCE.value, nullable=False)
    report_method: Mapped[str] = mapped_column(
        String(30), default=DEFAULT_REPORT_METHOD.value, nullable=False
    )
    report_priority_assessment: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_REPORT_PRIORITY.value, nullable=False
    )
    type_hint: Mapped[str | None] = mapped_column(String(40), nullable=True)
    priority_hint: Mapped[str | None] = mapped_column(String(20), nullable=True)
    urgency_indicators: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20),
        default=CfsStatus.RECEIVED.value,
        server_default=text("'received'"),
        nullable=False,
    )
    report_status: Mapped[str] = mapped_column(
        String(20),
        default=ReportStatus.ACTIVE.value,
        server_default=text("'active'"),
        nullable=False,
    )
    triaged_at: Mapped[datetime | None] = mapped_column(nullable=True)
    triaged_by_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    duplicate_of_report_id: Mapped[int | None] = mapped_column(
        ForeignKey("calls_for_service.id", ondelete="SET NULL"), nullable=True
    )

    # Verification
    verification_status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_VERIFICATION_STATUS.value, nullable=False
    )
    verification_method: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_VERIFICATION_METHOD.value, nullable=False
    )
    verification_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    verified_by_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # Reporter identity (person/organization ids live in the external registry)
    anonymous_reporter: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    anonymous_reporter_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    reporting_person_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reporting_organization_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    referring_organization_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    referring_agency_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reporter_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reporter_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reporter_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reporter_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    reporter_relationship: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Location
    location_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    reported_location: Mapped[str | None] = mapped_column(Text, nullable=True)
    reported_coordinates: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location_confidence: Mapped[str | None] = mapped_column(String(50), nullable=True)

    initial_report_narrative: Mapped[str] = mapped_column(Text, nullable=False)

    # Reporter notification consent
    notify_opt_in: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    notify_channel: Mapped[str] = mapped_column(
        String(10),
        default=DEFAULT_NOTIFY_CHANNEL.value,
        server_default=text("'none'"),
        nullable=False,
    )
    notify_target: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Assigned on first enable; kept across disable so re-enabling reuses it
    public_tracking_id: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)

    received_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    report_received_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    owning_organization: Mapped["Organization"] = relationship()
    timeline: Mapped[list["CfsTimelineEntry"]] = relationship(
        back_populates="call", order_by="CfsTimelineEntry.id"
    )
    access_grants: Mapped[list["CfsOrgAccess"]] = relationship(back_populates="call")
    attachments: Mapped[list["CfsAttachment"]] = relationship(back_populates="call")
    public_tracking: Mapped["CfsPublicTracking | None"] = relationship(
        back_populates="call", uselist=False
    )
    incident: Mapped["Incident | None"] = relationship(back_populates="call", uselist=False)


class CfsTimelineEntry(Base):
    """
    Append-only record of a phase transition or note on a call.

    Rows are inserted by the store procedures and never updated.
    """

    __tablename__ = "cfs_timeline_entries"
    __table_args__ = (Index("idx_cfs_timeline_cfs", "cfs_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cfs_id: Mapped[int] = mapped_column(
        ForeignKey("calls_for_service.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[int | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    actor_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    phase: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    call: Mapped["CallForService"] = relationship(back_populates="timeline")


class CfsOrgAccess(Base):
    """
    Visibility grant for a non-owning organization.

    One row per (cfs_id, organization_id); re-granting updates the level.
    The owning organization never has a row here.
    """

    __tablename__ = "cfs_org_access"
    __table_args__ = (
        UniqueConstraint("cfs_id", "organization_id", name="uq_cfs_org_access"),
        Index("idx_cfs_org_access_org", "organization_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cfs_id: Mapped[int] = mapped_column(
        ForeignKey("calls_for_service.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    access_level: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    granted_by_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    call: Mapped["CallForService"] = relationship(back_populates="access_grants")
    organization: Mapped["Organization"] = relationship()


class CfsPublicTracking(Base):
    """Public projection of a call; exists only while tracking is enabled."""

    __tablename__ = "cfs_public_tracking"

    cfs_id: Mapped[int] = mapped_column(
        ForeignKey("calls_for_service.id", ondelete="CASCADE"), primary_key=True
    )
    public_tracking_id: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    location_area: Mapped[str] = mapped_column(String(255), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow, nullable=False)

    call: Mapped["CallForService"] = relationship(back_populates="public_tracking")


class CfsAttachment(Base):
    """
    Evidence file metadata. The blob lives in object storage under
    ``storage_bucket``/``storage_path``; the blob is written first and this
    row second.
    """

    __tablename__ = "cfs_attachments"
    __table_args__ = (
        UniqueConstraint("storage_bucket", "storage_path", name="uq_cfs_attachment_object"),
        Index("idx_cfs_attachments_cfs", "cfs_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cfs_id: Mapped[int] = mapped_column(
        ForeignKey("calls_for_service.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    uploaded_by_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_bucket: Mapped[str] = mapped_column(String(100), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(512), nullable=False)
    attachment_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    call: Mapped["CallForService"] = relationship(back_populates="attachments")
