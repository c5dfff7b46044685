"""Workspace schema helpers shared between ORM models and migrations."""

from .enums import (
    EnumDefinition,
    BoardVisibility,
    CardActivityType,
    MemberRole,
    MemberStatus,
    PageVisibility,
    WorkspacePlan,
    ENUM_DEFINITIONS,
    ENUM_DEFINITION_BY_NAME,
    render_enum_sql,
    db_enum,
)

__all__ = [
    "EnumDefinition",
    "BoardVisibility",
    "CardActivityType",
    "MemberRole",
    "MemberStatus",
    "PageVisibility",
    "WorkspacePlan",
    "ENUM_DEFINITIONS",
    "ENUM_DEFINITION_BY_NAME",
    "render_enum_sql",
    "db_enum",
]
