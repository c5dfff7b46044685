"""Canonical workspace enum definitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

__all__ = [
    "EnumDefinition",
    "WorkspacePlan",
    "MemberRole",
    "MemberStatus",
    "BoardVisibility",
    "PageVisibility",
    "CardActivityType",
    "ENUM_DEFINITIONS",
    "ENUM_DEFINITION_BY_NAME",
    "render_enum_sql",
    "db_enum",
]


class WorkspaceEnum(str, Enum):
    """Base class for workspace enums stored as PostgreSQL enum types."""

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(item.value for item in cls)


class WorkspacePlan(WorkspaceEnum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class MemberRole(WorkspaceEnum):
    ADMIN = "admin"
    MEMBER = "member"
    GUEST = "guest"


class MemberStatus(WorkspaceEnum):
    INVITED = "invited"
    ACTIVE = "active"
    REMOVED = "removed"


class BoardVisibility(WorkspaceEnum):
    PRIVATE = "private"
    PUBLIC = "public"


class PageVisibility(WorkspaceEnum):
    PRIVATE = "private"
    PUBLIC = "public"


class CardActivityType(WorkspaceEnum):
    CREATED = "card.created"
    ARCHIVED = "card.archived"
    TITLE_UPDATED = "card.updated.title"
    DESCRIPTION_UPDATED = "card.updated.description"
    INDEX_UPDATED = "card.updated.index"
    LIST_UPDATED = "card.updated.list"
    DUE_DATE_UPDATED = "card.updated.due_date"
    LABEL_ADDED = "card.updated.label.added"
    LABEL_REMOVED = "card.updated.label.removed"
    MEMBER_ADDED = "card.updated.member.added"
    MEMBER_REMOVED = "card.updated.member.removed"
    COMMENT_ADDED = "card.updated.comment.added"
    COMMENT_UPDATED = "card.updated.comment.updated"
    COMMENT_DELETED = "card.updated.comment.deleted"
    CHECKLIST_ADDED = "card.updated.checklist.added"
    CHECKLIST_RENAMED = "card.updated.checklist.renamed"
    CHECKLIST_DELETED = "card.updated.checklist.deleted"
    CHECKLIST_ITEM_ADDED = "card.updated.checklist.item.added"
    CHECKLIST_ITEM_UPDATED = "card.updated.checklist.item.updated"
    CHECKLIST_ITEM_COMPLETED = "card.updated.checklist.item.completed"
    CHECKLIST_ITEM_UNCOMPLETED = "card.updated.checklist.item.uncompleted"
    CHECKLIST_ITEM_DELETED = "card.updated.checklist.item.deleted"


@dataclass(frozen=True)
class EnumDefinition:
    """Metadata describing a PostgreSQL enum type."""

    name: str
    values: tuple[str, ...]
    enum_cls: type[WorkspaceEnum]

    def render_sql(self) -> str:
        values_sql = ",".join(f"'{value}'" for value in self.values)
        return (
            "DO $$ BEGIN\n"
            f"  CREATE TYPE {self.name} AS ENUM ({values_sql});\n"
            "EXCEPTION WHEN duplicate_object THEN NULL; END $$;"
        )


ENUM_DEFINITIONS: tuple[EnumDefinition, ...] = (
    EnumDefinition("workspace_plan", WorkspacePlan.values(), WorkspacePlan),
    EnumDefinition("member_role", MemberRole.values(), MemberRole),
    EnumDefinition("member_status", MemberStatus.values(), MemberStatus),
    EnumDefinition("board_visibility", BoardVisibility.values(), BoardVisibility),
    EnumDefinition("page_visibility", PageVisibility.values(), PageVisibility),
    EnumDefinition("card_activity_type", CardActivityType.values(), CardActivityType),
)

ENUM_DEFINITION_BY_NAME: Mapping[str, EnumDefinition] = {
    definition.name: definition for definition in ENUM_DEFINITIONS
}

ENUM_DEFINITION_BY_CLASS: Mapping[type[WorkspaceEnum], EnumDefinition] = {
    definition.enum_cls: definition for definition in ENUM_DEFINITIONS
}


def render_enum_sql() -> str:
    """Return ``CREATE TYPE`` statements for all workspace enums."""

    return "\n\n".join(definition.render_sql() for definition in ENUM_DEFINITIONS)


def db_enum(enum_cls: type[WorkspaceEnum]):
    """Return a SQLAlchemy ``Enum`` tied to the canonical definition.

    Values (not member names) are persisted so the PostgreSQL type matches
    :func:`render_enum_sql`.
    """

    from sqlalchemy import Enum as SqlEnum

    definition = ENUM_DEFINITION_BY_CLASS[enum_cls]
    return SqlEnum(
        enum_cls,
        name=definition.name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
