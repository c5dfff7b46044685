"""Workspace SQLAlchemy models organized by domain."""

from .base import (
    Base,
    BoardVisibility,
    CardActivityType,
    MemberRole,
    MemberStatus,
    PageVisibility,
    WorkspacePlan,
)
from .workspaces import Workspace, WorkspaceMember
from .boards import Board, BoardList, Card, CardActivity, CardComment, Label
from .checklists import Checklist, ChecklistItem
from .pages import Page, PageLabel, PageTag

__all__ = [
    "Base",
    "Workspace",
    "WorkspaceMember",
    "Board",
    "BoardList",
    "Card",
    "CardActivity",
    "CardComment",
    "Label",
    "Checklist",
    "ChecklistItem",
    "Page",
    "PageLabel",
    "PageTag",
    "BoardVisibility",
    "CardActivityType",
    "MemberRole",
    "MemberStatus",
    "PageVisibility",
    "WorkspacePlan",
]
