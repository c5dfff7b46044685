"""Workspace (tenant) and membership models."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntId, MemberRole, MemberStatus, PublicRecord, WorkspacePlan, db_enum

if TYPE_CHECKING:  # pragma: no cover
    from .boards import Board
    from .pages import Page, PageLabel

__all__ = ["Workspace", "WorkspaceMember"]


class Workspace(PublicRecord, Base):
    """Tenant boundary owning members, boards and pages."""

    __tablename__ = "workspace"
    __table_args__ = (
        Index(
            "unique_workspace_slug",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    plan: Mapped[WorkspacePlan] = mapped_column(
        db_enum(WorkspacePlan), default=WorkspacePlan.FREE, nullable=False
    )

    members: Mapped[list["WorkspaceMember"]] = relationship(
        back_populates="workspace", cascade="all, delete-orphan"
    )
    boards: Mapped[list["Board"]] = relationship(
        back_populates="workspace", cascade="all, delete-orphan"
    )
    pages: Mapped[list["Page"]] = relationship(
        back_populates="workspace", cascade="all, delete-orphan"
    )
    page_labels: Mapped[list["PageLabel"]] = relationship(
        back_populates="workspace", cascade="all, delete-orphan"
    )


class WorkspaceMember(PublicRecord, Base):
    """Membership of a user (or a pending invite by email) in a workspace."""

    __tablename__ = "workspace_members"
    __table_args__ = (Index("workspace_members_user_idx", "workspace_id", "user_id"),)

    workspace_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("workspace.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column()
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[MemberRole] = mapped_column(db_enum(MemberRole), nullable=False)
    status: Mapped[MemberStatus] = mapped_column(
        db_enum(MemberStatus), default=MemberStatus.INVITED, nullable=False
    )

    workspace: Mapped[Workspace] = relationship(back_populates="members")
