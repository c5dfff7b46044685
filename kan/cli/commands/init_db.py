"""Create the workspace tables, or print the enum DDL used by migrations."""

from __future__ import annotations

from argparse import Namespace, _SubParsersAction

import structlog

from ...workspace.schema import render_enum_sql
from ...workspace.service import WorkspaceDatabase, init_engine
from ..config import RuntimeConfig, workspace_settings

__all__ = ["register", "run"]

logger = structlog.get_logger(__name__)


def register(subparsers: _SubParsersAction) -> None:
    parser = subparsers.add_parser("init-db", help="Create workspace tables")
    parser.add_argument(
        "--sql",
        action="store_true",
        help="Print CREATE TYPE statements for the enum columns and exit",
    )
    parser.set_defaults(handler=run)


def run(args: Namespace, config: RuntimeConfig) -> None:
    if getattr(args, "sql", False):
        print(render_enum_sql())
        return

    settings = workspace_settings(config)
    database = WorkspaceDatabase(init_engine(settings))
    database.create_all()
    logger.info("tables_created", url=database.engine.url.render_as_string(hide_password=True))
