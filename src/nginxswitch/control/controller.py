"""NginxController - lifecycle of the managed nginx container.

State machine:
    STOPPED --start--> STARTING --> RUNNING
    RUNNING --stop--> STOPPING --> STOPPED
    RUNNING --restart--> RESTARTING --> RUNNING
    RUNNING --reload--> RELOADING --> RUNNING

Only one operation runs at a time. The guard check and the move into the
transient status happen before the first await, so on a single event
loop a second operation is always rejected with InvalidTransitionError
instead of racing the first one.

The image is pulled and the container created at most once; later starts
reuse the recorded container ID until clean() removes it.

Failure policy:
- Each runtime call is bounded (operation_timeout, image_pull_timeout)
- Failures are logged with an error_class and re-raised to the caller
- With rollback_on_failure (default) the status returns to the last
  stable status the container actually reached: the source status, or
  STOPPED once a restart has stopped the container; without it the
  status stays transient

clean() may run while an operation is in flight (shutdown). It bumps a
generation counter; an operation started under an older generation
never writes status again, and a container it creates afterwards is
removed instead of recorded.

Configuration via ControllerConfig (CONTROLLER_ env prefix).
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import aclosing
from typing import TypeVar

from nginxswitch.app.config import ControllerConfig, get_settings
from nginxswitch.app.logging import clear_trace_context, set_trace_id
from nginxswitch.app.metrics.collector import (
    IMAGE_PULLS_TOTAL,
    OPERATION_DURATION,
    OPERATION_FAILURES_TOTAL,
    OPERATION_TOTAL,
    set_status_metric,
)
from nginxswitch.core.domain import TRANSIENT_STATUSES, NginxStatus
from nginxswitch.core.errors import (
    InvalidTransitionError,
    NginxSwitchError,
    OperationTimeoutError,
    RuntimeOperationFailedError,
)
from nginxswitch.core.events import EventChannel, StatusChanged
from nginxswitch.core.interfaces import ContainerHandle, ContainerRuntime
from nginxswitch.core.logging_schema import ErrorClass, LogEvent
from nginxswitch.core.models import ManagedContainerSpec
from nginxswitch.core.retryable import classify_error, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

_settings = get_settings()
_docker_config = _settings.docker
_logging_config = _settings.logging


class NginxController:
    """Owns one managed nginx container and its status."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        spec: ManagedContainerSpec,
        events: EventChannel | None = None,
        config: ControllerConfig | None = None,
    ) -> None:
        self._runtime = runtime
        self._spec = spec
        self._events = events if events is not None else EventChannel()
        self._config = config or _settings.controller
        self._stop_timeout = _docker_config.stop_timeout
        self._pull_timeout = _docker_config.image_pull_timeout

        self._status = NginxStatus.STOPPED
        # Set once by the first successful create; cleared only by clean()
        self._container_id: str | None = None
        # Stable status a failing operation rolls back to
        self._settled = NginxStatus.STOPPED
        # Bumped by clean(); operations from an older generation are stale
        self._generation = 0
        set_status_metric(self._status)

    @property
    def status(self) -> NginxStatus:
        return self._status

    @property
    def container_id(self) -> str | None:
        return self._container_id

    @property
    def spec(self) -> ManagedContainerSpec:
        return self._spec

    @property
    def events(self) -> EventChannel:
        return self._events

    # =========================================================================
    # Public operations
    # =========================================================================

    async def start(self) -> None:
        """Pull/create on first use, then start the container."""

        generation = self._generation

        async def steps() -> None:
            if self._container_id is None:
                await self._pull_image()
                self._check_current("start", generation)
                handle = await self._call("create", self._runtime.create(self._spec))
                if generation != self._generation:
                    # clean() already ran; nothing else would remove this one
                    await self._call("remove", handle.remove(force=True))
                self._check_current("start", generation)
                self._container_id = handle.id
            else:
                handle = self._runtime.get(self._container_id)
            await self._call("start", handle.start())

        await self._run(
            "start",
            source=NginxStatus.STOPPED,
            transient=NginxStatus.STARTING,
            target=NginxStatus.RUNNING,
            steps=steps,
        )

    async def stop(self) -> None:
        """Stop the running container, keeping it for the next start."""

        async def steps() -> None:
            await self._stop_container(self._handle("stop"))

        await self._run(
            "stop",
            source=NginxStatus.RUNNING,
            transient=NginxStatus.STOPPING,
            target=NginxStatus.STOPPED,
            steps=steps,
        )

    async def restart(self) -> None:
        """Stop then start the existing container."""

        async def steps() -> None:
            handle = self._handle("restart")
            await self._stop_container(handle)
            self._settled = NginxStatus.STOPPED
            await self._call("start", handle.start())

        await self._run(
            "restart",
            source=NginxStatus.RUNNING,
            transient=NginxStatus.RESTARTING,
            target=NginxStatus.RUNNING,
            steps=steps,
        )

    async def reload(self) -> None:
        """Signal nginx to re-read its configuration (no process restart)."""

        async def steps() -> None:
            handle = self._handle("reload")
            await self._call("kill", handle.kill(signal=self._config.reload_signal))

        await self._run(
            "reload",
            source=NginxStatus.RUNNING,
            transient=NginxStatus.RELOADING,
            target=NginxStatus.RUNNING,
            steps=steps,
        )

    async def clean(self) -> None:
        """Force-remove the container, whatever the current status.

        Meant for shutdown. A no-op when no container was ever created
        and nothing is in flight, so calling it repeatedly is safe.
        An in-flight operation is abandoned: it keeps running to its
        next await but never writes status again.
        """
        self._generation += 1
        if self._status in TRANSIENT_STATUSES:
            logger.warning(
                "Cleaning while %s",
                self._status.value,
                extra={
                    "event": LogEvent.OPERATION_SUPERSEDED,
                    "status": self._status.value,
                    "container_id": self._container_id,
                },
            )

        container_id = self._container_id
        if container_id is not None:
            await self._remove_container(container_id)
        if self._status is not NginxStatus.STOPPED:
            self._set_status(NginxStatus.STOPPED)

    async def _remove_container(self, container_id: str) -> None:
        logger.info(
            "Removing managed container",
            extra={"event": LogEvent.CLEANUP_STARTED, "container_id": container_id},
        )
        try:
            await self._call("remove", self._runtime.get(container_id).remove(force=True))
        except Exception as exc:
            logger.error(
                "Failed to remove managed container: %s",
                exc,
                extra={
                    "event": LogEvent.CLEANUP_FAILED,
                    "container_id": container_id,
                    "error_class": classify_error(exc),
                },
            )
            if isinstance(exc, NginxSwitchError):
                raise
            raise RuntimeOperationFailedError(f"clean failed: {exc}") from exc

        self._container_id = None
        logger.info(
            "Managed container removed",
            extra={"event": LogEvent.CLEANUP_COMPLETED, "container_id": container_id},
        )

    # =========================================================================
    # State machine
    # =========================================================================

    def _set_status(self, status: NginxStatus) -> None:
        previous = self._status
        self._status = status
        set_status_metric(status)
        logger.info(
            "Nginx status: %s",
            status.value,
            extra={
                "event": LogEvent.STATUS_CHANGED,
                "status": status.value,
                "previous": previous.value,
                "container_id": self._container_id,
            },
        )
        self._events.publish(StatusChanged(status=status, source=self))

    def _guard(self, operation: str, required: NginxStatus) -> None:
        if self._status is not required:
            OPERATION_TOTAL.labels(operation=operation, status="rejected").inc()
            logger.warning(
                "Rejected %s while %s",
                operation,
                self._status.value,
                extra={
                    "event": LogEvent.INVALID_TRANSITION,
                    "operation": operation,
                    "status": self._status.value,
                    "required": required.value,
                },
            )
            raise InvalidTransitionError(operation, self._status.value)

    async def _run(
        self,
        operation: str,
        *,
        source: NginxStatus,
        transient: NginxStatus,
        target: NginxStatus,
        steps: Callable[[], Awaitable[None]],
    ) -> None:
        """Guard, enter the transient status, run steps, settle."""
        self._guard(operation, source)
        generation = self._generation
        self._settled = source

        set_trace_id()
        started = time.monotonic()
        try:
            self._set_status(transient)
            logger.info(
                "Operation started",
                extra={"event": LogEvent.OPERATION_STARTED, "operation": operation},
            )
            try:
                await steps()
            except asyncio.CancelledError:
                self._on_failure(operation, generation, started, None)
                raise
            except Exception as exc:
                self._on_failure(operation, generation, started, exc)
                if isinstance(exc, NginxSwitchError):
                    raise
                raise RuntimeOperationFailedError(f"{operation} failed: {exc}") from exc

            duration = time.monotonic() - started
            OPERATION_TOTAL.labels(operation=operation, status="success").inc()
            OPERATION_DURATION.labels(operation=operation).observe(duration)
            duration_ms = duration * 1000
            logger.info(
                "Operation succeeded",
                extra={
                    "event": LogEvent.OPERATION_SUCCESS,
                    "operation": operation,
                    "duration_ms": duration_ms,
                    "container_id": self._container_id,
                },
            )
            if duration_ms > _logging_config.slow_threshold_ms:
                logger.warning(
                    "Slow operation detected",
                    extra={
                        "event": LogEvent.OPERATION_SLOW,
                        "operation": operation,
                        "duration_ms": duration_ms,
                        "threshold_ms": _logging_config.slow_threshold_ms,
                    },
                )
            if not self._is_stale(operation, generation):
                self._set_status(target)
        finally:
            clear_trace_context()

    def _is_stale(self, operation: str, generation: int) -> bool:
        """True once clean() has run since the operation started."""
        if generation == self._generation:
            return False
        logger.info(
            "Leaving status to clean",
            extra={
                "event": LogEvent.OPERATION_SUPERSEDED,
                "operation": operation,
                "status": self._status.value,
            },
        )
        return True

    def _check_current(self, operation: str, generation: int) -> None:
        if generation != self._generation:
            raise InvalidTransitionError(
                operation, self._status.value, f"Container was cleaned during {operation}"
            )

    def _on_failure(
        self,
        operation: str,
        generation: int,
        started: float,
        exc: Exception | None,
    ) -> None:
        """Record a failed operation. exc is None when it was cancelled."""
        duration = time.monotonic() - started
        if exc is None:
            error_class = ErrorClass.UNKNOWN
            logger.warning(
                "Operation cancelled",
                extra={
                    "event": LogEvent.OPERATION_FAILED,
                    "operation": operation,
                    "status": self._status.value,
                },
            )
        else:
            error_class = classify_error(exc)
            event = (
                LogEvent.OPERATION_TIMEOUT
                if error_class is ErrorClass.TIMEOUT
                else LogEvent.OPERATION_FAILED
            )
            logger.exception(
                "Operation failed: %s",
                exc,
                extra={
                    "event": event,
                    "operation": operation,
                    "status": self._status.value,
                    "container_id": self._container_id,
                    "error_class": error_class,
                    "retryable": is_retryable(exc),
                },
            )

        OPERATION_TOTAL.labels(operation=operation, status="error").inc()
        OPERATION_FAILURES_TOTAL.labels(operation=operation, error_class=error_class).inc()
        OPERATION_DURATION.labels(operation=operation).observe(duration)

        if not self._config.rollback_on_failure or self._is_stale(operation, generation):
            return

        settled = self._settled
        if not settled.is_stable:
            raise RuntimeError(f"Cannot roll back {operation} to {settled.value}")
        logger.warning(
            "Reverting status to %s",
            settled.value,
            extra={
                "event": LogEvent.STATUS_ROLLED_BACK,
                "operation": operation,
                "from_status": self._status.value,
                "to_status": settled.value,
            },
        )
        self._set_status(settled)

    # =========================================================================
    # Runtime calls
    # =========================================================================

    def _handle(self, operation: str) -> ContainerHandle:
        if self._container_id is None:
            raise InvalidTransitionError(
                operation, self._status.value, "No container has been created"
            )
        return self._runtime.get(self._container_id)

    async def _call(
        self, step: str, awaitable: Awaitable[T], timeout: float | None = None
    ) -> T:
        """Await a runtime call, bounded by the configured timeout."""
        if timeout is None:
            timeout = self._config.operation_timeout
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise OperationTimeoutError(step, timeout) from exc

    async def _stop_container(self, handle: ContainerHandle) -> None:
        # The daemon itself waits up to stop_timeout before killing
        await self._call(
            "stop",
            handle.stop(timeout=self._stop_timeout),
            timeout=self._config.operation_timeout + self._stop_timeout,
        )

    async def _pull_image(self) -> None:
        image = self._spec.image

        async def consume() -> None:
            async with aclosing(self._runtime.pull(image)) as stream:
                async for progress in stream:
                    logger.debug(
                        "Pulling %s: %s %s",
                        image,
                        progress.status,
                        progress.progress or "",
                        extra={
                            "event": LogEvent.IMAGE_PULL_PROGRESS,
                            "image": image,
                            "layer": progress.id,
                        },
                    )

        try:
            await self._call("pull", consume(), timeout=self._pull_timeout)
        except Exception:
            IMAGE_PULLS_TOTAL.labels(result="failure").inc()
            raise
        IMAGE_PULLS_TOTAL.labels(result="success").inc()
