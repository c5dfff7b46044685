"""Server-sent event plumbing shared by the board and card routers."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import Request
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from ..events import event_stream
from ..service import ServiceBase

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


async def authorize_subscription(
    request: Request,
    service_cls: type[ServiceBase],
    public_id: str,
    user_id: Optional[uuid.UUID],
) -> int:
    """Resolve and authorise the resource in a session that closes before streaming."""
    state = request.app.state

    def _authorize() -> int:
        with state.database.session() as session:
            service = service_cls(session=session, settings=state.settings, events=state.event_bus)
            return service.authorize_events(public_id, user_id)  # type: ignore[attr-defined]

    return await run_in_threadpool(_authorize)


def stream_topic(request: Request, topic: str, last_event_id: Optional[str]) -> StreamingResponse:
    if last_event_id:
        # Nothing is persisted, so there is nothing to replay.
        logger.debug("Ignoring Last-Event-ID %s for %s", last_event_id, topic)
    state = request.app.state
    return StreamingResponse(
        event_stream(state.event_bus, topic, ping_interval=state.settings.sse_ping_interval),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
