"""Status change notification channel.

Observers register with an EventChannel owned by one controller and are
called synchronously, in registration order, each time the controller's
status changes. Delivery happens on the event loop thread before the
status-changing call continues, so observers always see transitions in
order and never concurrently.

Usage:
    class Menu:
        def on_status_changed(self, event: StatusChanged) -> None:
            ...

    unsubscribe = controller.events.subscribe(Menu())
    ...
    unsubscribe()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from nginxswitch.core.domain import NginxStatus
from nginxswitch.core.logging_schema import LogEvent

if TYPE_CHECKING:
    from nginxswitch.control.controller import NginxController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusChanged:
    """Emitted after the controller's status has been updated."""

    status: NginxStatus
    source: NginxController


@runtime_checkable
class StatusObserver(Protocol):
    """Anything that wants to react to status transitions."""

    def on_status_changed(self, event: StatusChanged) -> None: ...


class EventChannel:
    """Typed observer registry for StatusChanged events."""

    def __init__(self) -> None:
        self._observers: list[StatusObserver] = []

    def __len__(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: StatusObserver) -> Callable[[], None]:
        """Register observer.

        Returns:
            Callable that unsubscribes the observer
        """
        self._observers.append(observer)
        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: StatusObserver) -> None:
        """Remove observer. Unknown observers are ignored."""
        try:
            self._observers.remove(observer)
        except ValueError:
            pass

    def publish(self, event: StatusChanged) -> None:
        """Deliver event to every observer registered at call time.

        An observer that raises is logged and skipped; the rest still
        receive the event.
        """
        for observer in list(self._observers):
            try:
                observer.on_status_changed(event)
            except Exception:
                logger.exception(
                    "Status observer failed",
                    extra={
                        "event": LogEvent.OBSERVER_FAILED,
                        "observer": type(observer).__name__,
                        "status": event.status.value,
                    },
                )
