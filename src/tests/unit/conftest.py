"""Shared fixtures for nginx-switch unit tests."""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import pytest

from nginxswitch.app.config import ControllerConfig
from nginxswitch.control import NginxController
from nginxswitch.core.domain import NginxStatus
from nginxswitch.core.events import StatusChanged
from nginxswitch.core.interfaces import ContainerHandle, ContainerRuntime, PullProgress
from nginxswitch.core.models import ManagedContainerSpec


class RecordingObserver:
    """StatusObserver that remembers every event it receives."""

    def __init__(self) -> None:
        self.events: list[StatusChanged] = []

    @property
    def statuses(self) -> list[NginxStatus]:
        return [event.status for event in self.events]

    def on_status_changed(self, event: StatusChanged) -> None:
        self.events.append(event)


async def pull_ok(image_ref: str) -> AsyncIterator[PullProgress]:
    yield PullProgress(status=f"Pulling from {image_ref}")
    yield PullProgress(status="Download complete", id="layer1")
    yield PullProgress(status="Status: Downloaded newer image")


@pytest.fixture
def spec() -> ManagedContainerSpec:
    return ManagedContainerSpec(
        image="nginx:stable",
        binds=("/tmp/nginx-switch-test/nginx.conf:/etc/nginx/nginx.conf:ro",),
    )


@pytest.fixture
def mock_handle() -> AsyncMock:
    """ContainerHandle mock for container "c1"."""
    handle = AsyncMock(spec=ContainerHandle)
    handle.id = "c1"
    handle.start = AsyncMock()
    handle.stop = AsyncMock()
    handle.kill = AsyncMock()
    handle.remove = AsyncMock()
    return handle


@pytest.fixture
def mock_runtime(mock_handle: AsyncMock) -> MagicMock:
    """ContainerRuntime mock whose pull succeeds and create returns "c1"."""
    runtime = MagicMock(spec=ContainerRuntime)
    runtime.pull = MagicMock(side_effect=pull_ok)
    runtime.create = AsyncMock(return_value=mock_handle)
    runtime.get = MagicMock(return_value=mock_handle)
    runtime.ping = AsyncMock(return_value=True)
    runtime.close = AsyncMock()
    return runtime


@pytest.fixture
def controller_config() -> ControllerConfig:
    return ControllerConfig(operation_timeout=5.0, rollback_on_failure=True)


@pytest.fixture
def controller(
    mock_runtime: MagicMock,
    spec: ManagedContainerSpec,
    controller_config: ControllerConfig,
) -> NginxController:
    return NginxController(mock_runtime, spec, config=controller_config)


@pytest.fixture
def recorder(controller: NginxController) -> RecordingObserver:
    observer = RecordingObserver()
    controller.events.subscribe(observer)
    return observer
