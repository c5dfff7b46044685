"""Kanban models: boards, lists, cards, labels, comments and card activity."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..utils import generate_uid, utcnow
from .base import Base, BigIntId, BoardVisibility, CardActivityType, PublicRecord, db_enum

if TYPE_CHECKING:  # pragma: no cover
    from .checklists import Checklist
    from .workspaces import Workspace, WorkspaceMember

__all__ = [
    "Board",
    "BoardList",
    "Card",
    "Label",
    "CardComment",
    "CardActivity",
    "card_labels",
    "card_members",
]


card_labels = Table(
    "_card_labels",
    Base.metadata,
    Column("card_id", BigIntId, ForeignKey("card.id", ondelete="CASCADE"), primary_key=True),
    Column("label_id", BigIntId, ForeignKey("label.id", ondelete="CASCADE"), primary_key=True),
)

card_members = Table(
    "_card_workspace_members",
    Base.metadata,
    Column("card_id", BigIntId, ForeignKey("card.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "workspace_member_id",
        BigIntId,
        ForeignKey("workspace_members.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Board(PublicRecord, Base):
    """Kanban board inside a workspace."""

    __tablename__ = "board"
    __table_args__ = (
        Index(
            "unique_board_slug_per_workspace",
            "workspace_id",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("board_visibility_idx", "visibility"),
    )

    workspace_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("workspace.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    visibility: Mapped[BoardVisibility] = mapped_column(
        db_enum(BoardVisibility), default=BoardVisibility.PRIVATE, nullable=False
    )

    workspace: Mapped["Workspace"] = relationship(back_populates="boards")
    lists: Mapped[list["BoardList"]] = relationship(
        back_populates="board", cascade="all, delete-orphan", order_by="BoardList.index"
    )
    labels: Mapped[list["Label"]] = relationship(
        back_populates="board", cascade="all, delete-orphan"
    )


class BoardList(PublicRecord, Base):
    """Ordered column of cards on a board."""

    __tablename__ = "list"

    board_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("board.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    board: Mapped[Board] = relationship(back_populates="lists")
    cards: Mapped[list["Card"]] = relationship(
        back_populates="board_list", cascade="all, delete-orphan", order_by="Card.index"
    )


class Label(PublicRecord, Base):
    """Board-scoped label assignable to cards."""

    __tablename__ = "label"

    board_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("board.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    colour_code: Mapped[str | None] = mapped_column(String(12))

    board: Mapped[Board] = relationship(back_populates="labels")


class Card(PublicRecord, Base):
    """Card positioned inside a list."""

    __tablename__ = "card"
    __table_args__ = (Index("card_list_index_idx", "list_id", "index"),)

    list_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("list.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(2000), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    due_date: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))

    board_list: Mapped[BoardList] = relationship(back_populates="cards")
    labels: Mapped[list[Label]] = relationship(secondary=card_labels)
    members: Mapped[list["WorkspaceMember"]] = relationship(secondary=card_members)
    checklists: Mapped[list["Checklist"]] = relationship(
        back_populates="card", cascade="all, delete-orphan", order_by="Checklist.index"
    )
    comments: Mapped[list["CardComment"]] = relationship(
        back_populates="card", cascade="all, delete-orphan", order_by="CardComment.id"
    )
    activities: Mapped[list["CardActivity"]] = relationship(
        back_populates="card", cascade="all, delete-orphan", order_by="CardActivity.id"
    )


class CardComment(PublicRecord, Base):
    """Comment left on a card."""

    __tablename__ = "card_comments"

    card_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("card.id", ondelete="CASCADE"), nullable=False
    )
    comment: Mapped[str] = mapped_column(Text, nullable=False)

    card: Mapped[Card] = relationship(back_populates="comments")


class CardActivity(Base):
    """Append-only history entry for a card."""

    __tablename__ = "card_activity"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    public_id: Mapped[str] = mapped_column(
        String(12), unique=True, nullable=False, default=generate_uid
    )
    type: Mapped[CardActivityType] = mapped_column(db_enum(CardActivityType), nullable=False)
    card_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("card.id", ondelete="CASCADE"), nullable=False
    )
    from_index: Mapped[int | None] = mapped_column(Integer)
    to_index: Mapped[int | None] = mapped_column(Integer)
    from_list_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("list.id"))
    to_list_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("list.id"))
    label_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("label.id"))
    workspace_member_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("workspace_members.id")
    )
    comment_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("card_comments.id"))
    from_title: Mapped[str | None] = mapped_column(String(2000))
    to_title: Mapped[str | None] = mapped_column(String(2000))
    from_description: Mapped[str | None] = mapped_column(Text)
    to_description: Mapped[str | None] = mapped_column(Text)
    from_comment: Mapped[str | None] = mapped_column(Text)
    to_comment: Mapped[str | None] = mapped_column(Text)
    from_due_date: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    to_due_date: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[uuid.UUID | None] = mapped_column()
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    card: Mapped[Card] = relationship(back_populates="activities")
