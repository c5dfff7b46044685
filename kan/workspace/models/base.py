"""Shared SQLAlchemy base, column types and enum helpers for workspace models."""

from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..schema.enums import (
    BoardVisibility,
    CardActivityType,
    MemberRole,
    MemberStatus,
    PageVisibility,
    WorkspacePlan,
    db_enum,
)
from ..utils import generate_uid, utcnow

__all__ = [
    "Base",
    "BigIntId",
    "PublicRecord",
    "BoardVisibility",
    "CardActivityType",
    "MemberRole",
    "MemberStatus",
    "PageVisibility",
    "WorkspacePlan",
    "db_enum",
]

# SQLite only auto-increments INTEGER PRIMARY KEY columns.
BigIntId = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """Declarative base class shared by all workspace models."""


class PublicRecord:
    """Internal numeric key, opaque public ID, authorship and soft delete."""

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    public_id: Mapped[str] = mapped_column(
        String(12), unique=True, nullable=False, default=generate_uid
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column()
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow
    )
    deleted_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    deleted_by: Mapped[uuid.UUID | None] = mapped_column()

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, deleted_by: uuid.UUID, deleted_at: dt.datetime | None = None) -> None:
        self.deleted_at = deleted_at or utcnow()
        self.deleted_by = deleted_by
