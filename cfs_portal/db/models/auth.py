"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    false,
    func,
    text,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cfs_portal.db.base import Base


class Organization(Base):
    """
    A partner organization (outreach agency, shelter, municipal team).

    Calls are owned by exactly one organization and may be shared with
    others through CfsOrgAccess grants.
    """

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class Profile(Base):
    """
    A staff member's portal profile.

    ``organization_id`` is the acting organization: the tenant every
    organization-scoped write is attributed to. Unapproved profiles resolve
    to no capabilities at all.
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_id: Mapped[int | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    is_approved: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    is_global_admin: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    token_version: Mapped[int] = mapped_column(
        Integer, default=1, server_default=text("1"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    acting_organization: Mapped["Organization | None"] = relationship()
    memberships: Mapped[list["Membership"]] = relationship(back_populates="profile")


class Membership(Base):
    """Profile role within one organization."""

    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("profile_id", "organization_id", name="uq_membership_profile_org"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    profile: Mapped["Profile"] = relationship(back_populates="memberships")
    organization: Mapped["Organization"] = relationship()


class ProfilePermissionOverride(Base):
    """
    Per-profile permission grant or revoke inside one organization.

    Precedence: revoke > grant > role default.
    """

    __tablename__ = "profile_permission_overrides"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "profile_id", "permission", name="uq_profile_permission_override"
        ),
        Index("idx_permission_overrides_profile", "profile_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    permission: Mapped[str] = mapped_column(String(100), nullable=False)
    override_type: Mapped[str] = mapped_column(String(10), nullable=False)  # grant | revoke
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
