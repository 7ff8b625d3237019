"""SSE Events API endpoint.

Streams controller status changes via Server-Sent Events:
- status: {"status": ..., "actions": {...}} on connect and on every change
- heartbeat: {} every heartbeat_interval seconds

Each connection registers a queue-backed observer on the controller's
EventChannel and removes it when the client goes away.

Configuration via SSEConfig (SSE_ env prefix).
"""

import asyncio
import json
import logging
from typing import Annotated, AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from nginxswitch.app.actions import Intent, available_intents
from nginxswitch.app.config import get_settings
from nginxswitch.app.dependencies import get_controller
from nginxswitch.control import NginxController
from nginxswitch.core.domain import NginxStatus
from nginxswitch.core.events import StatusChanged
from nginxswitch.core.logging_schema import LogEvent

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

Controller = Annotated[NginxController, Depends(get_controller)]

_sse_config = get_settings().sse


class QueueObserver:
    """StatusObserver buffering statuses for one SSE client.

    When the client falls behind the oldest status is dropped; the
    latest one is always kept.
    """

    def __init__(self, maxsize: int) -> None:
        self.queue: asyncio.Queue[NginxStatus] = asyncio.Queue(maxsize=maxsize)

    def on_status_changed(self, event: StatusChanged) -> None:
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(event.status)


def format_status_event(status: NginxStatus) -> str:
    offered = available_intents(status)
    payload = {
        "status": status.value,
        "actions": {intent.value: intent in offered for intent in Intent},
    }
    return f"event: status\ndata: {json.dumps(payload)}\n\n"


async def _event_generator(
    request: Request,
    controller: NginxController,
) -> AsyncGenerator[str, None]:
    observer = QueueObserver(_sse_config.queue_maxsize)
    unsubscribe = controller.events.subscribe(observer)

    logger.info(
        "Client connected",
        extra={"event": LogEvent.SSE_CONNECTED, "subscribers": len(controller.events)},
    )

    try:
        yield format_status_event(controller.status)

        loop = asyncio.get_running_loop()
        last_heartbeat = loop.time()

        while True:
            if await request.is_disconnected():
                break

            try:
                status = await asyncio.wait_for(observer.queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                status = None

            if status is not None:
                yield format_status_event(status)

            now = loop.time()
            if now - last_heartbeat >= _sse_config.heartbeat_interval:
                yield "event: heartbeat\ndata: {}\n\n"
                last_heartbeat = now
    finally:
        unsubscribe()
        logger.info(
            "Client disconnected",
            extra={"event": LogEvent.SSE_DISCONNECTED},
        )


@router.get("/events")
async def sse_events(request: Request, controller: Controller) -> StreamingResponse:
    """SSE endpoint for real-time status updates."""
    return StreamingResponse(
        _event_generator(request, controller),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
