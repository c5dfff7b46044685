"""HTTP server command."""

from __future__ import annotations

from argparse import Namespace, _SubParsersAction

from ..config import RuntimeConfig, workspace_settings

__all__ = ["register", "run"]


def register(subparsers: _SubParsersAction) -> None:
    parser = subparsers.add_parser("serve", help="Run the workspace API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8082)
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.set_defaults(handler=run)


def run(args: Namespace, config: RuntimeConfig) -> None:
    import uvicorn

    host = getattr(args, "host", "127.0.0.1")
    port = int(getattr(args, "port", 8082))

    if getattr(args, "reload", False):
        # Reload needs an import string; settings are re-read from the environment.
        uvicorn.run(
            "kan.main:app", host=host, port=port, reload=True, log_level="info", log_config=None
        )
        return

    from ...workspace.api import create_app

    app = create_app(workspace_settings(config))
    # log_config=None keeps the handlers installed by configure_logging.
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower(), log_config=None)
