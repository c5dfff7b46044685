from __future__ import annotations

import os
from argparse import Namespace
from pathlib import Path

import pytest
import uvicorn
from sqlalchemy import create_engine, inspect

from kan.cli.commands import init_db, serve
from kan.cli.config import RuntimeConfig, workspace_settings
from kan.cli.runner import build_parser
from kan.env import load_env


def test_parser_registers_known_commands() -> None:
    parser = build_parser()
    subparsers_action = parser._subparsers._group_actions[0]  # type: ignore[attr-defined]
    assert {"init-db", "serve"} == set(subparsers_action.choices.keys())

    args = parser.parse_args(["--db-url", "sqlite://", "--log-format", "json", "serve"])
    assert args.db_url == "sqlite://"
    assert args.log_format == "json"
    assert args.port == 8082


def test_workspace_settings_prefer_cli_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KAN_DATABASE_URL", "sqlite:///from-env.db")

    config = RuntimeConfig(log_level="INFO", database_url="sqlite:///from-cli.db")
    assert workspace_settings(config).database_url == "sqlite:///from-cli.db"
    assert workspace_settings(RuntimeConfig(log_level="INFO")).database_url == (
        "sqlite:///from-env.db"
    )


def test_init_db_prints_enum_sql(capsys: pytest.CaptureFixture[str]) -> None:
    init_db.run(Namespace(sql=True), RuntimeConfig(log_level="INFO"))

    out = capsys.readouterr().out
    assert "CREATE TYPE member_role AS ENUM ('admin','member','guest');" in out
    assert "card_activity_type" in out


def test_init_db_creates_tables(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'kan.db'}"

    init_db.run(Namespace(sql=False), RuntimeConfig(log_level="INFO", database_url=url))

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert {"workspace", "workspace_members", "board", "list", "card", "page"} <= tables


def test_serve_runs_built_app(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    serve.run(
        Namespace(host="0.0.0.0", port=9000, reload=False),
        RuntimeConfig(log_level="DEBUG", database_url="sqlite://"),
    )

    [(app, kwargs)] = calls
    assert app.state.settings.database_url == "sqlite://"
    assert kwargs == {"host": "0.0.0.0", "port": 9000, "log_level": "debug", "log_config": None}


def test_serve_reload_uses_import_string(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    serve.run(Namespace(host="127.0.0.1", port=8082, reload=True), RuntimeConfig(log_level="INFO"))

    [(app, kwargs)] = calls
    assert app == "kan.main:app"
    assert kwargs["reload"] is True


def test_load_env_reads_extra_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("KAN_TEST_VALUE", raising=False)
    monkeypatch.delenv("KAN_ENV_FILE", raising=False)
    env_file = tmp_path / "custom.env"
    env_file.write_text("KAN_TEST_VALUE=from-file\n", encoding="utf-8")

    assert load_env(extra_paths=[env_file, tmp_path / "missing.env"]) is True
    assert os.environ["KAN_TEST_VALUE"] == "from-file"
    os.environ.pop("KAN_TEST_VALUE", None)
