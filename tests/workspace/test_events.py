import asyncio
import json
import threading

import pytest
from structlog.testing import capture_logs

from kan.workspace.events import (
    BoardCardEvent,
    BoardListEvent,
    CardChanges,
    CardLabelEvent,
    EventBus,
    TrackedEvent,
    board_event_adapter,
    board_topic,
    card_event_adapter,
    card_topic,
    emit_board_event,
    emit_card_event,
    event_stream,
    format_sse,
)


def _card_created(board_id: int = 1) -> BoardCardEvent:
    return BoardCardEvent(
        type="card.created",
        board_id=board_id,
        card_public_id="card00000001",
        list_public_id="list00000001",
    )


def test_topics():
    assert board_topic(7) == "board:7"
    assert card_topic(7) == "card:7"


def test_emit_reaches_only_exact_topic_in_order():
    bus = EventBus()
    calls = []
    bus.on("board:1", lambda event: calls.append(("first", event)))
    bus.on("board:1", lambda event: calls.append(("second", event)))
    bus.on("board:10", lambda event: calls.append(("other", event)))

    event = _card_created()
    assert bus.emit("board:1", event) == 2
    assert calls == [("first", event), ("second", event)]
    assert bus.emit("board:2", event) == 0


def test_failing_listener_does_not_block_others():
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.on("card:3", broken)
    bus.on("card:3", received.append)

    assert bus.emit("card:3", "payload") == 2
    assert received == ["payload"]


def test_off_and_listener_bookkeeping():
    bus = EventBus()
    listener = lambda event: None  # noqa: E731

    bus.on("board:1", listener)
    assert bus.topics() == ["board:1"]
    assert bus.listener_count("board:1") == 1

    assert bus.off("board:1", listener) is True
    assert bus.off("board:1", listener) is False
    assert bus.topics() == []


def test_exceeding_max_listeners_still_registers():
    bus = EventBus(max_listeners=2)
    with capture_logs() as logs:
        for _ in range(4):
            bus.on("board:1", lambda event: None)
        for _ in range(3):
            bus.on("board:2", lambda event: None)

    assert bus.listener_count("board:1") == 4
    assert bus.listener_count("board:2") == 3
    warnings = [entry for entry in logs if entry["event"] == "max_listeners_exceeded"]
    assert [(entry["topic"], entry["count"]) for entry in warnings] == [
        ("board:1", 3),
        ("board:2", 3),
    ]
    assert all(entry["log_level"] == "warning" for entry in warnings)


def test_emit_helpers_route_to_resource_topics():
    bus = EventBus()
    board_events, card_events = [], []
    bus.on(board_topic(5), board_events.append)
    bus.on(card_topic(9), card_events.append)

    emit_board_event(5, _card_created(5), bus=bus)
    emit_card_event(
        9,
        CardLabelEvent(
            type="label.added", card_id=9, card_public_id="card00000009", label_public_id="lbl000000001"
        ),
        bus=bus,
    )

    assert [e.type for e in board_events] == ["card.created"]
    assert [e.type for e in card_events] == ["label.added"]


def test_event_unions_discriminate_on_type():
    event = board_event_adapter.validate_python(
        {"scope": "board", "type": "list.updated", "board_id": 1, "list_public_id": "abc", "index": 2}
    )
    assert isinstance(event, BoardListEvent)

    event = card_event_adapter.validate_python(
        {"scope": "card", "type": "updated", "card_id": 1, "card_public_id": "abc"}
    )
    assert event.type == "updated"


def test_format_sse_omits_unset_fields():
    frame = format_sse(
        TrackedEvent(
            id="42",
            event=BoardCardEvent(
                type="card.updated",
                board_id=1,
                card_public_id="card00000001",
                changes=CardChanges(title="New"),
            ),
        )
    )

    lines = frame.split("\n")
    assert lines[0] == "id: 42"
    assert frame.endswith("\n\n")
    payload = json.loads(lines[1][len("data: "):])
    assert payload == {
        "scope": "board",
        "type": "card.updated",
        "board_id": 1,
        "card_public_id": "card00000001",
        "changes": {"title": "New"},
    }


@pytest.mark.asyncio
async def test_subscription_receives_events_with_increasing_ids():
    bus = EventBus()
    subscription = bus.subscribe("board:1")
    try:
        bus.emit("board:1", _card_created())
        bus.emit("board:1", _card_created())

        first = await subscription.get(timeout=1)
        second = await subscription.get(timeout=1)

        assert first is not None and second is not None
        assert first.event.type == "card.created"
        assert int(second.id) > int(first.id)
    finally:
        subscription.close()

    assert bus.listener_count("board:1") == 0


@pytest.mark.asyncio
async def test_subscription_times_out_and_stops_when_closed():
    bus = EventBus()
    async with bus.subscribe("card:1") as subscription:
        assert await subscription.get(timeout=0.01) is None
        assert subscription.closed is False

    assert subscription.closed is True
    assert await subscription.get(timeout=0.01) is None
    assert [item async for item in subscription] == []


@pytest.mark.asyncio
async def test_emit_from_worker_thread_wakes_subscription():
    bus = EventBus()
    subscription = bus.subscribe("board:2")
    try:
        worker = threading.Thread(target=bus.emit, args=("board:2", _card_created(2)))
        worker.start()
        worker.join()

        tracked = await subscription.get(timeout=1)
        assert tracked is not None
        assert tracked.event.board_id == 2
    finally:
        subscription.close()


@pytest.mark.asyncio
async def test_event_stream_renders_frames_and_pings():
    bus = EventBus()
    stream = event_stream(bus, "board:3", ping_interval=0.01)
    assert bus.listener_count("board:3") == 0

    assert await stream.__anext__() == ": connected\n\n"
    assert bus.listener_count("board:3") == 1
    assert await stream.__anext__() == ": ping\n\n"

    bus.emit("board:3", _card_created(3))
    frame = await asyncio.wait_for(stream.__anext__(), 1)
    assert frame.startswith("id: ")
    assert '"type":"card.created"' in frame

    await stream.aclose()
    assert bus.listener_count("board:3") == 0


@pytest.mark.asyncio
async def test_unstarted_event_stream_registers_nothing():
    bus = EventBus()
    stream = event_stream(bus, "board:4")

    await stream.aclose()
    assert bus.listener_count("board:4") == 0
    assert bus.topics() == []
