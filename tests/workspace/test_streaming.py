"""Board and card streams over a real HTTP connection."""

import json
import threading
import time
import uuid

import httpx
import pytest
import uvicorn

from kan.workspace.api import create_app
from kan.workspace.events import EventBus
from kan.workspace.service import WorkspaceSettings


@pytest.fixture()
def bus():
    return EventBus()


@pytest.fixture()
def live_server(bus):
    settings = WorkspaceSettings(
        database_url="sqlite+pysqlite:///:memory:",
        auto_create_tables=True,
        sse_ping_interval=0.1,
    )
    config = uvicorn.Config(
        create_app(settings, bus=bus),
        host="127.0.0.1",
        port=0,
        log_level="warning",
        lifespan="off",
        timeout_graceful_shutdown=2,
    )
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    deadline = time.monotonic() + 10
    while not server.started:
        if not thread.is_alive() or time.monotonic() > deadline:
            pytest.fail("uvicorn did not start")
        time.sleep(0.01)

    port = server.servers[0].sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        server.should_exit = True
        thread.join(timeout=10)


@pytest.fixture()
def http(live_server):
    with httpx.Client(base_url=live_server, timeout=5) as client:
        yield client


@pytest.fixture()
def owner():
    return {"X-User-ID": str(uuid.uuid4())}


@pytest.fixture()
def board(http, owner):
    workspace = http.post(
        "/v1/workspaces", json={"name": "Acme", "email": "owner@example.com"}, headers=owner
    )
    assert workspace.status_code == 201
    response = http.post(
        "/v1/boards",
        json={
            "name": "Roadmap",
            "workspace_public_id": workspace.json()["public_id"],
            "lists": ["Todo"],
        },
        headers=owner,
    )
    assert response.status_code == 201
    return response.json()


def _next_frame(lines) -> tuple[str, dict]:
    """Skip comments until the next ``id:``/``data:`` frame."""
    event_id = None
    for line in lines:
        if line.startswith("id: "):
            event_id = line[len("id: "):]
        elif line.startswith("data: "):
            assert event_id is not None
            return event_id, json.loads(line[len("data: "):])
    raise AssertionError("stream ended before a data frame")


def _wait_for_no_topics(bus: EventBus) -> None:
    deadline = time.monotonic() + 5
    while bus.topics():
        assert time.monotonic() < deadline, f"listeners left on {bus.topics()}"
        time.sleep(0.02)


def test_card_created_reaches_board_stream(http, owner, board, bus):
    path = f"/v1/boards/{board['public_id']}/events"

    with http.stream("GET", path, headers=owner) as stream:
        assert stream.status_code == 200
        assert stream.headers["content-type"].startswith("text/event-stream")
        lines = stream.iter_lines()
        assert next(lines) == ": connected"

        created = http.post(
            "/v1/cards",
            json={"title": "Ship it", "list_public_id": board["lists"][0]["public_id"]},
            headers=owner,
        )
        assert created.status_code == 201

        event_id, payload = _next_frame(lines)

    assert int(event_id) > 0
    assert payload["type"] == "card.created"
    assert payload["card_public_id"] == created.json()["public_id"]
    _wait_for_no_topics(bus)


def test_comment_reaches_card_stream(http, owner, board, bus):
    card = http.post(
        "/v1/cards",
        json={"title": "Ship it", "list_public_id": board["lists"][0]["public_id"]},
        headers=owner,
    ).json()

    with http.stream("GET", f"/v1/cards/{card['public_id']}/events", headers=owner) as stream:
        lines = stream.iter_lines()
        assert next(lines) == ": connected"

        added = http.post(
            f"/v1/cards/{card['public_id']}/comments", json={"comment": "LGTM"}, headers=owner
        )
        assert added.status_code == 201

        _, payload = _next_frame(lines)

    assert payload["type"] == "comment.added"
    assert payload["comment"] == "LGTM"
    _wait_for_no_topics(bus)
