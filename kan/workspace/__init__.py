"""Workspace models, services and the HTTP API."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    # Models
    "Base",
    "Board",
    "BoardList",
    "Card",
    "Checklist",
    "Page",
    "Workspace",
    "WorkspaceMember",
    # Events
    "EventBus",
    "event_bus",
    # API
    "create_app",
    # Services
    "BoardService",
    "CardService",
    "ChecklistService",
    "LabelService",
    "ListService",
    "PageService",
    "WorkspaceDatabase",
    "WorkspaceService",
    "WorkspaceSettings",
    "init_engine",
]

_MODULES = {
    ".models": ("Base", "Board", "BoardList", "Card", "Checklist", "Page", "Workspace", "WorkspaceMember"),
    ".events": ("EventBus", "event_bus"),
    ".api": ("create_app",),
    ".boards": ("BoardService", "LabelService", "ListService"),
    ".cards": ("CardService", "ChecklistService"),
    ".pages": ("PageService",),
    ".service": ("WorkspaceDatabase", "WorkspaceService", "WorkspaceSettings", "init_engine"),
}


def __getattr__(name: str) -> Any:  # pragma: no cover - thin import shim
    for module_name, names in _MODULES.items():
        if name in names:
            value = getattr(import_module(module_name, __name__), name)
            globals()[name] = value
            return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover - introspection helper
    return sorted(__all__ + ["schema"])
