"""
Jokebox Backend — Live Events Route
=====================================

What:  GET /events, a Server-Sent Events stream of newly created jokes.
How:   Subscribes a channel on the process-wide BroadcastRegistry and streams
       whatever lands in it as `data: <json>\\n\\n` frames: one frame per new
       joke, plus `{"type": "heartbeat"}` every HEARTBEAT_INTERVAL seconds.
Who:   Browser EventSource clients, or: curl -N http://localhost:8080/events

Teardown:
    The channel is unsubscribed when the generator exits (client disconnect
    cancels it) and again by the response's background task, which also
    covers a client that leaves before the first frame is sent. unsubscribe()
    is idempotent, so the second call is a no-op.
"""

import logging
from typing import AsyncGenerator

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from jokebox.services.broadcast import BroadcastRegistry, Channel, broadcast_registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Events"])


async def event_stream(
    channel: Channel,
    registry: BroadcastRegistry = broadcast_registry,
) -> AsyncGenerator[str, None]:
    """Formats channel messages as SSE frames until the channel closes."""
    try:
        async for message in channel.messages():
            yield f"data: {message}\n\n"
    finally:
        registry.unsubscribe(channel)


@router.get("/events", summary="Live stream of new jokes via Server-Sent Events")
async def events() -> StreamingResponse:
    channel = broadcast_registry.subscribe()
    return StreamingResponse(
        event_stream(channel),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
        background=BackgroundTask(broadcast_registry.unsubscribe, channel),
    )
