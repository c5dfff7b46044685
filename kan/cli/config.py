"""Runtime configuration shared by CLI command handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..env import load_env
from ..workspace.service import WorkspaceSettings


@dataclass(frozen=True)
class RuntimeConfig:
    """Resolved configuration for command handlers."""

    log_level: str
    database_url: Optional[str] = None


def bootstrap() -> None:
    """Load ``.env`` files once before any settings are read."""

    load_env()


def build_runtime_config(*, log_level: str, database_url: Optional[str] = None) -> RuntimeConfig:
    return RuntimeConfig(log_level=log_level, database_url=database_url)


def workspace_settings(config: RuntimeConfig) -> WorkspaceSettings:
    """Settings from the environment, with ``--db-url`` taking precedence."""

    return WorkspaceSettings.from_env(database_url=config.database_url)
