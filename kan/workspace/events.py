"""Process-local event bus that fans board and card mutations out to live subscribers.

Mutating services call :func:`emit_board_event` / :func:`emit_card_event`
after committing. Each SSE connection owns a :class:`Subscription` bound to
one topic (``board:<id>`` or ``card:<id>``); the bus pushes events into the
subscription's queue on the subscriber's own event loop, so emitting from a
threadpool worker is safe.

Nothing is persisted: an event reaches only the listeners registered at the
moment it is emitted.
"""

from __future__ import annotations

import asyncio
import json
import threading
import time
from dataclasses import dataclass
from typing import Annotated, Any, AsyncIterator, Callable, Literal, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

__all__ = [
    "AnyEvent",
    "BoardCardEvent",
    "BoardChecklistEvent",
    "BoardEvent",
    "BoardListEvent",
    "CardChanges",
    "CardChecklistEvent",
    "CardCommentEvent",
    "CardEvent",
    "CardLabelEvent",
    "CardMemberEvent",
    "CardUpdatedEvent",
    "EventBus",
    "Subscription",
    "TrackedEvent",
    "board_topic",
    "card_topic",
    "emit_board_event",
    "emit_card_event",
    "event_bus",
    "event_stream",
    "format_sse",
]

logger = structlog.get_logger(__name__)

DEFAULT_MAX_LISTENERS = 1000


# ========================================================================
# Payloads
# ========================================================================


class CardChanges(BaseModel):
    """Fields touched by a card update."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    list_public_id: Optional[str] = None
    index: Optional[int] = None


class BoardCardEvent(BaseModel):
    scope: Literal["board"] = "board"
    type: Literal["card.created", "card.updated", "card.deleted"]
    board_id: int
    card_public_id: str
    list_public_id: Optional[str] = None
    changes: Optional[CardChanges] = None


class BoardListEvent(BaseModel):
    scope: Literal["board"] = "board"
    type: Literal["list.created", "list.updated", "list.deleted"]
    board_id: int
    list_public_id: str
    name: Optional[str] = None
    index: Optional[int] = None


class BoardChecklistEvent(BaseModel):
    scope: Literal["board"] = "board"
    type: Literal["checklist.changed"] = "checklist.changed"
    board_id: int
    card_public_id: str


class CardCommentEvent(BaseModel):
    scope: Literal["card"] = "card"
    type: Literal["comment.added", "comment.updated", "comment.deleted"]
    card_id: int
    card_public_id: str
    comment_public_id: str
    comment: Optional[str] = None


class CardLabelEvent(BaseModel):
    scope: Literal["card"] = "card"
    type: Literal["label.added", "label.removed"]
    card_id: int
    card_public_id: str
    label_public_id: str


class CardMemberEvent(BaseModel):
    scope: Literal["card"] = "card"
    type: Literal["member.added", "member.removed"]
    card_id: int
    card_public_id: str
    workspace_member_public_id: str


class CardChecklistEvent(BaseModel):
    scope: Literal["card"] = "card"
    type: Literal["checklist.changed"] = "checklist.changed"
    card_id: int
    card_public_id: str


class CardUpdatedEvent(BaseModel):
    scope: Literal["card"] = "card"
    type: Literal["updated", "deleted"]
    card_id: int
    card_public_id: str
    changes: Optional[CardChanges] = None


BoardEvent = Annotated[
    Union[BoardCardEvent, BoardListEvent, BoardChecklistEvent],
    Field(discriminator="type"),
]
CardEvent = Annotated[
    Union[
        CardCommentEvent,
        CardLabelEvent,
        CardMemberEvent,
        CardChecklistEvent,
        CardUpdatedEvent,
    ],
    Field(discriminator="type"),
]
AnyEvent = Union[BoardEvent, CardEvent]

board_event_adapter: TypeAdapter[BoardEvent] = TypeAdapter(BoardEvent)
card_event_adapter: TypeAdapter[CardEvent] = TypeAdapter(CardEvent)


def board_topic(board_id: int) -> str:
    return f"board:{board_id}"


def card_topic(card_id: int) -> str:
    return f"card:{card_id}"


# ========================================================================
# Bus
# ========================================================================

Listener = Callable[[Any], None]


class _EventClock:
    """Millisecond timestamps, bumped so consecutive ids never repeat."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now = int(time.time() * 1000)
            if now <= self._last:
                now = self._last + 1
            self._last = now
            return str(now)


_clock = _EventClock()


@dataclass(frozen=True)
class TrackedEvent:
    """Event paired with the id sent as the SSE ``id:`` field."""

    id: str
    event: Any


class EventBus:
    """Topic keyed publish/subscribe registry.

    Listeners are plain callables invoked synchronously by :meth:`emit` in
    registration order. A listener that raises is logged and skipped.
    """

    def __init__(self, max_listeners: int = DEFAULT_MAX_LISTENERS):
        self.max_listeners = max_listeners
        self._listeners: dict[str, list[Listener]] = {}
        self._warned: set[str] = set()
        self._lock = threading.Lock()

    def on(self, topic: str, listener: Listener) -> None:
        with self._lock:
            listeners = self._listeners.setdefault(topic, [])
            listeners.append(listener)
            count = len(listeners)
            warn = (
                self.max_listeners > 0
                and count > self.max_listeners
                and topic not in self._warned
            )
            if warn:
                self._warned.add(topic)
        if warn:
            logger.warning(
                "max_listeners_exceeded",
                topic=topic,
                count=count,
                max_listeners=self.max_listeners,
            )

    def off(self, topic: str, listener: Listener) -> bool:
        with self._lock:
            listeners = self._listeners.get(topic)
            if not listeners or listener not in listeners:
                return False
            listeners.remove(listener)
            if not listeners:
                del self._listeners[topic]
                self._warned.discard(topic)
            return True

    def listener_count(self, topic: str) -> int:
        with self._lock:
            return len(self._listeners.get(topic, ()))

    def topics(self) -> list[str]:
        with self._lock:
            return sorted(self._listeners)

    def emit(self, topic: str, event: Any) -> int:
        """Deliver ``event`` to every listener of ``topic``; return how many there were."""

        with self._lock:
            listeners = list(self._listeners.get(topic, ()))
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("listener_failed", topic=topic)
        logger.debug(
            "event_emitted",
            topic=topic,
            type=getattr(event, "type", None),
            listeners=len(listeners),
        )
        return len(listeners)

    def subscribe(self, topic: str) -> "Subscription":
        """Register a queue-backed subscription on the running event loop."""

        return Subscription(self, topic)


_CLOSED = object()


class Subscription:
    """Async iterator over the events emitted on one topic.

    Must be created inside a running event loop. Call :meth:`close` (or use
    ``async with``) to unregister; iteration stops once closed.
    """

    def __init__(
        self,
        bus: EventBus,
        topic: str,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.bus = bus
        self.topic = topic
        self.closed = False
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        bus.on(topic, self._deliver)
        logger.debug("subscription_opened", topic=topic)

    def _deliver(self, event: Any) -> None:
        if self.closed:
            return
        self._push(TrackedEvent(id=_clock.next_id(), event=event))

    def _push(self, item: Any) -> None:
        if self._loop.is_closed():
            self.close()
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Loop shut down between the check and the call.
            logger.debug("subscription_loop_closed", topic=self.topic)
            self.close()

    async def get(self, timeout: Optional[float] = None) -> Optional[TrackedEvent]:
        """Return the next event, or ``None`` on timeout or once closed."""

        if self.closed and self._queue.empty():
            return None
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.bus.off(self.topic, self._deliver)
        if not self._loop.is_closed():
            try:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSED)
            except RuntimeError:
                logger.debug("subscription_loop_closed", topic=self.topic)
        logger.debug("subscription_closed", topic=self.topic)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> TrackedEvent:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


event_bus = EventBus()


def emit_board_event(board_id: int, event: BoardEvent, *, bus: EventBus | None = None) -> int:
    return (bus or event_bus).emit(board_topic(board_id), event)


def emit_card_event(card_id: int, event: CardEvent, *, bus: EventBus | None = None) -> int:
    return (bus or event_bus).emit(card_topic(card_id), event)


# ========================================================================
# Server-sent events
# ========================================================================


def format_sse(tracked: TrackedEvent) -> str:
    event = tracked.event
    if isinstance(event, BaseModel):
        data = event.model_dump_json(exclude_none=True)
    else:
        data = json.dumps(event, default=str)
    return f"id: {tracked.id}\ndata: {data}\n\n"


async def event_stream(
    bus: EventBus, topic: str, *, ping_interval: Optional[float] = 15.0
) -> AsyncIterator[str]:
    """Stream ``topic`` as SSE frames, with ``: ping`` comments while idle.

    The subscription is opened on the first iteration, before the
    ``: connected`` comment, so a stream that is never started registers
    nothing. It is closed when the stream ends, including when the client
    disconnects and the response task is cancelled.
    """

    subscription = bus.subscribe(topic)
    try:
        yield ": connected\n\n"
        while True:
            tracked = await subscription.get(timeout=ping_interval)
            if tracked is None:
                if subscription.closed:
                    break
                yield ": ping\n\n"
                continue
            yield format_sse(tracked)
    finally:
        subscription.close()
