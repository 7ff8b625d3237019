"""Presentation adapter: which user intents are offered in each status.

ActionMenu is the headless equivalent of a tray menu. It observes the
controller and keeps an enabled flag per intent, so any surface (HTTP
API, SSE clients, a desktop tray) renders from the same table.
"""

import asyncio
import logging
from enum import StrEnum
from typing import assert_never

from nginxswitch.control import NginxController
from nginxswitch.core.domain import NginxStatus
from nginxswitch.core.events import StatusChanged
from nginxswitch.core.logging_schema import LogEvent
from nginxswitch.core.retryable import classify_error

logger = logging.getLogger(__name__)


class Intent(StrEnum):
    """User-facing actions."""

    START = "start"
    STOP = "stop"
    RESTART = "restart"
    RELOAD = "reload"


_RUNNING_INTENTS = frozenset({Intent.STOP, Intent.RESTART, Intent.RELOAD})


def available_intents(status: NginxStatus) -> frozenset[Intent]:
    """Intents enabled in the given status. Nothing is offered mid-operation."""
    match status:
        case NginxStatus.STOPPED:
            return frozenset({Intent.START})
        case NginxStatus.RUNNING:
            return _RUNNING_INTENTS
        case (
            NginxStatus.STARTING
            | NginxStatus.STOPPING
            | NginxStatus.RESTARTING
            | NginxStatus.RELOADING
        ):
            return frozenset()
        case _:
            assert_never(status)


class ActionMenu:
    """Tracks intent availability and forwards intents to the controller."""

    def __init__(self, controller: NginxController) -> None:
        self._controller = controller
        self._tasks: set[asyncio.Task[None]] = set()
        self.enabled: dict[Intent, bool] = {}
        self._render(controller.status)
        self._unsubscribe = controller.events.subscribe(self)

    @property
    def status(self) -> NginxStatus:
        return self._controller.status

    def on_status_changed(self, event: StatusChanged) -> None:
        self._render(event.status)

    def _render(self, status: NginxStatus) -> None:
        offered = available_intents(status)
        self.enabled = {intent: intent in offered for intent in Intent}

    async def dispatch(self, intent: Intent) -> None:
        """Run the controller operation for intent and wait for it."""
        match intent:
            case Intent.START:
                await self._controller.start()
            case Intent.STOP:
                await self._controller.stop()
            case Intent.RESTART:
                await self._controller.restart()
            case Intent.RELOAD:
                await self._controller.reload()
            case _:
                assert_never(intent)

    def trigger(self, intent: Intent) -> asyncio.Task[None]:
        """Fire-and-forget dispatch, as a menu click would.

        Failures are logged; the status reverts through the controller.
        """
        task = asyncio.create_task(self._dispatch_logged(intent))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _dispatch_logged(self, intent: Intent) -> None:
        try:
            await self.dispatch(intent)
        except Exception as exc:
            logger.warning(
                "Intent %s failed: %s",
                intent.value,
                exc,
                extra={
                    "event": LogEvent.INTENT_FAILED,
                    "intent": intent.value,
                    "status": self._controller.status.value,
                    "error_class": classify_error(exc),
                },
            )

    def close(self) -> None:
        self._unsubscribe()

    async def aclose(self) -> None:
        """Cancel triggered dispatches still in flight, wait for them, unsubscribe."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.close()
