"""Checklist models attached to cards."""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntId, PublicRecord
from .boards import Card

__all__ = ["Checklist", "ChecklistItem"]


class Checklist(PublicRecord, Base):
    """Named checklist on a card."""

    __tablename__ = "card_checklist"

    card_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("card.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    card: Mapped[Card] = relationship(back_populates="checklists")
    items: Mapped[list["ChecklistItem"]] = relationship(
        back_populates="checklist",
        cascade="all, delete-orphan",
        order_by="ChecklistItem.index",
    )


class ChecklistItem(PublicRecord, Base):
    __tablename__ = "card_checklist_item"

    checklist_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("card_checklist.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    checklist: Mapped[Checklist] = relationship(back_populates="items")
