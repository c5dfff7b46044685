"""Command registrations for the kan CLI."""

from __future__ import annotations

from argparse import _SubParsersAction

from . import init_db, serve

__all__ = ["register"]


def register(subparsers: _SubParsersAction) -> None:
    """Register all CLI commands with *subparsers*."""

    init_db.register(subparsers)
    serve.register(subparsers)
