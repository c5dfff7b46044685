"""ASGI entrypoint: ``uvicorn kan.main:app``."""

from __future__ import annotations

from fastapi import FastAPI

from .env import load_env
from .workspace.api import create_app as create_workspace_app
from .workspace.service import WorkspaceSettings

__all__ = ["app", "create_app"]


def create_app(*, workspace_settings: WorkspaceSettings | None = None) -> FastAPI:
    """Build the FastAPI application, reading ``.env`` first."""

    load_env()
    return create_workspace_app(workspace_settings)


def __getattr__(name: str) -> FastAPI:
    # Built on first access so importing this module does not need a database URL.
    if name == "app":
        app = create_app()
        globals()["app"] = app
        return app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
