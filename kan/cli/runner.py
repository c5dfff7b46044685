"""Argument parsing and logging setup for the ``kan`` command."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, List, Optional

import structlog

from . import commands
from .config import RuntimeConfig, bootstrap, build_runtime_config

CommandHandler = Callable[[argparse.Namespace, RuntimeConfig], None]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kan",
        description="Command-line tools for the kan workspace service.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG). Default: INFO",
    )
    parser.add_argument(
        "--log-format",
        choices=("kv", "json"),
        default=os.getenv("KAN_LOG_FORMAT", "kv"),
        help="Render log lines as key=value pairs or JSON objects. Default: kv",
    )
    parser.add_argument(
        "--db-url",
        dest="db_url",
        help="Override the database URL (env: KAN_DATABASE_URL or DATABASE_URL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    commands.register(subparsers)
    return parser


def _renderer(fmt: str):
    if fmt == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.processors.KeyValueRenderer(
        key_order=["timestamp", "level", "logger", "event"],
        sort_keys=True,
    )


def configure_logging(level_name: str, fmt: str = "kv") -> None:
    """Route structlog and stdlib records through one stderr handler."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    shared = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
    ]

    structlog.configure(
        processors=shared
        + [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=_renderer(fmt), foreign_pre_chain=shared)
    )
    logging.basicConfig(level=level, handlers=[stream], force=True)


def main(argv: Optional[List[str]] = None) -> None:
    bootstrap()
    parser = build_parser()
    args = parser.parse_args(argv)

    level_name = str(getattr(args, "log_level", "INFO")).upper()
    configure_logging(level_name, getattr(args, "log_format", "kv"))

    handler: CommandHandler = getattr(args, "handler", None)
    if not callable(handler):
        parser.error("Command handler missing")

    runtime = build_runtime_config(
        log_level=level_name,
        database_url=getattr(args, "db_url", None),
    )

    handler(args, runtime)


if __name__ == "__main__":  # pragma: no cover
    main()
