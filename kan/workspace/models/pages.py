"""Wiki page models: pages, per-page tags and reusable workspace labels."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, Index, String, Table, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntId, PageVisibility, PublicRecord, db_enum

if TYPE_CHECKING:  # pragma: no cover
    from .workspaces import Workspace

__all__ = ["Page", "PageTag", "PageLabel", "page_labels"]


page_labels = Table(
    "_page_labels",
    Base.metadata,
    Column("page_id", BigIntId, ForeignKey("page.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "label_id", BigIntId, ForeignKey("page_label.id", ondelete="CASCADE"), primary_key=True
    ),
)


class Page(PublicRecord, Base):
    """Wiki-style document scoped to a workspace."""

    __tablename__ = "page"
    __table_args__ = (
        Index("page_visibility_idx", "visibility"),
        Index("page_workspace_slug_idx", "workspace_id", "slug"),
        # Slugs are lower-cased by the service before they reach this index.
        Index(
            "unique_page_slug_global",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    workspace_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("workspace.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    slug: Mapped[str | None] = mapped_column(String(255))
    visibility: Mapped[PageVisibility] = mapped_column(
        db_enum(PageVisibility), default=PageVisibility.PRIVATE, nullable=False
    )

    workspace: Mapped["Workspace"] = relationship(back_populates="pages")
    tags: Mapped[list["PageTag"]] = relationship(
        back_populates="page", cascade="all, delete-orphan", order_by="PageTag.id"
    )
    labels: Mapped[list["PageLabel"]] = relationship(
        secondary=page_labels, back_populates="pages"
    )


class PageTag(PublicRecord, Base):
    """Free-form tag owned by a single page."""

    __tablename__ = "page_tag"

    page_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("page.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    colour_code: Mapped[str | None] = mapped_column(String(12))

    page: Mapped[Page] = relationship(back_populates="tags")


class PageLabel(PublicRecord, Base):
    """Workspace-level label reusable across pages."""

    __tablename__ = "page_label"

    workspace_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("workspace.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    colour_code: Mapped[str | None] = mapped_column(String(12))

    workspace: Mapped["Workspace"] = relationship(back_populates="page_labels")
    pages: Mapped[list[Page]] = relationship(secondary=page_labels, back_populates="labels")
