import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from kan.workspace.api import create_app
from kan.workspace.events import EventBus
from kan.workspace.routers.streaming import SSE_HEADERS, stream_topic
from kan.workspace.service import WorkspaceSettings


@pytest.fixture()
def bus():
    return EventBus()


@pytest.fixture()
def app(bus):
    settings = WorkspaceSettings(
        database_url="sqlite+pysqlite:///:memory:",
        auto_create_tables=True,
    )
    return create_app(settings, bus=bus)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def owner():
    return {"X-User-ID": str(uuid.uuid4())}


@pytest.fixture()
def workspace(client, owner):
    response = client.post(
        "/v1/workspaces", json={"name": "Acme", "email": "owner@example.com"}, headers=owner
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture()
def board(client, owner, workspace):
    response = client.post(
        "/v1/boards",
        json={
            "name": "Roadmap",
            "workspace_public_id": workspace["public_id"],
            "lists": ["Todo", "Done"],
            "labels": ["Bug"],
        },
        headers=owner,
    )
    assert response.status_code == 201
    return response.json()


def test_healthz(client):
    response = client.get("/v1/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_or_malformed_user_is_unauthorized(client):
    response = client.get("/v1/workspaces")
    assert response.status_code == 401
    assert response.json()["code"] == "unauthorized"

    response = client.get("/v1/workspaces", headers={"X-User-ID": "not-a-uuid"})
    assert response.status_code == 401


def test_workspace_flow(client, owner, workspace):
    assert workspace["slug"] == "acme"

    listed = client.get("/v1/workspaces", headers=owner).json()
    assert [(item["role"], item["workspace"]["slug"]) for item in listed] == [("admin", "acme")]

    reserved = client.get(
        "/v1/workspaces/check-slug-availability",
        params={"workspace_slug": "acme"},
        headers=owner,
    )
    assert reserved.json() == {"is_reserved": True}

    invited = client.post(
        f"/v1/workspaces/{workspace['public_id']}/members",
        json={"email": "friend@example.com"},
        headers=owner,
    )
    assert invited.status_code == 201
    assert invited.json()["status"] == "invited"


def test_non_member_is_forbidden(client, workspace):
    stranger = {"X-User-ID": str(uuid.uuid4())}
    response = client.get(f"/v1/workspaces/{workspace['public_id']}", headers=stranger)
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


def test_unknown_resource_is_not_found(client, owner):
    response = client.get("/v1/boards/missing00000", headers=owner)
    assert response.status_code == 404
    assert response.json()["code"] == "not-found"


def test_bad_requests(client, owner, workspace):
    response = client.post("/v1/workspaces", json={"email": "a@b.c"}, headers=owner)
    assert response.status_code == 400
    assert response.json()["code"] == "bad-request"

    duplicate = client.post(
        "/v1/workspaces",
        json={"name": "Again", "slug": "acme", "email": "owner@example.com"},
        headers=owner,
    )
    assert duplicate.status_code == 400


def test_board_card_flow_emits_events(client, owner, board, bus):
    assert [item["name"] for item in board["lists"]] == ["Todo", "Done"]
    received = []
    bus.on("board:1", received.append)

    todo, done = (item["public_id"] for item in board["lists"])
    created = client.post(
        "/v1/cards", json={"title": "Ship it", "list_public_id": todo}, headers=owner
    )
    assert created.status_code == 201
    card = created.json()
    assert card["board_public_id"] == board["public_id"]
    assert [a["type"] for a in card["activities"]] == ["card.created"]

    moved = client.put(
        f"/v1/cards/{card['public_id']}", json={"list_public_id": done}, headers=owner
    )
    assert moved.json()["list_public_id"] == done

    toggled = client.put(
        f"/v1/cards/{card['public_id']}/labels/{board['labels'][0]['public_id']}",
        headers=owner,
    )
    assert toggled.json() == {"added": True}

    filtered = client.get(
        f"/v1/boards/{board['public_id']}",
        params={"labels": [board["labels"][0]["public_id"]]},
        headers=owner,
    ).json()
    assert [len(item["cards"]) for item in filtered["lists"]] == [0, 1]

    assert [event.type for event in received] == ["card.created", "card.updated"]


def test_public_board_by_slug_is_readable_anonymously(client, owner, workspace, board):
    path = f"/v1/workspaces/{workspace['slug']}/boards/{board['slug']}"
    assert client.get(path).status_code == 401

    client.put(
        f"/v1/boards/{board['public_id']}", json={"visibility": "public"}, headers=owner
    )
    response = client.get(path)
    assert response.status_code == 200
    assert response.json()["public_id"] == board["public_id"]


def test_public_page_is_readable_anonymously(client, owner, workspace):
    page = client.post(
        "/v1/pages",
        json={"workspace_public_id": workspace["public_id"], "title": "Handbook"},
        headers=owner,
    ).json()
    assert client.get(f"/v1/pages/{page['public_id']}").status_code == 401

    client.put(
        f"/v1/pages/{page['public_id']}",
        json={"visibility": "public", "slug": "handbook"},
        headers=owner,
    )
    response = client.get("/v1/pages/slug/handbook")
    assert response.status_code == 200
    assert response.json()["members"] == []


def test_event_streams_authorize_before_streaming(client, owner, board):
    path = f"/v1/boards/{board['public_id']}/events"

    assert client.get(path).status_code == 401
    assert client.get(path, headers={"X-User-ID": str(uuid.uuid4())}).status_code == 403
    assert client.get("/v1/boards/missing00000/events", headers=owner).status_code == 404
    assert client.get("/v1/cards/missing00000/events", headers=owner).status_code == 404


@pytest.mark.asyncio
async def test_stream_topic_subscribes_when_streaming_starts(app, bus):
    request = SimpleNamespace(app=app)

    response = stream_topic(request, "board:9", last_event_id="41")

    assert response.media_type == "text/event-stream"
    for name, value in SSE_HEADERS.items():
        assert response.headers[name.lower()] == value
    assert bus.listener_count("board:9") == 0

    assert await response.body_iterator.__anext__() == ": connected\n\n"
    assert bus.listener_count("board:9") == 1

    await response.body_iterator.aclose()
    assert bus.listener_count("board:9") == 0
