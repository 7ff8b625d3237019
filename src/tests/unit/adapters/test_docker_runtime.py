"""Unit tests for DockerRuntime and DockerContainer."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from nginxswitch.adapters.runtime.docker import (
    MANAGED_LABEL,
    DockerContainer,
    DockerRuntime,
    to_container_config,
)
from nginxswitch.core.errors import (
    ImagePullFailedError,
    RuntimeOperationFailedError,
    RuntimeUnavailableError,
)
from nginxswitch.core.interfaces import PullProgress
from nginxswitch.core.models import ManagedContainerSpec, PortBinding


def _status_error(status: int, body: dict | None = None) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://docker/containers/c1/start")
    response = httpx.Response(status, json=body, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestToContainerConfig:
    def test_host_network_with_read_only_config(self) -> None:
        spec = ManagedContainerSpec(
            image="nginx:stable",
            binds=("/tmp/x/nginx.conf:/etc/nginx/nginx.conf:ro",),
        )

        api = to_container_config(spec).to_api()

        assert api["Image"] == "nginx:stable"
        assert api["HostConfig"]["NetworkMode"] == "host"
        assert api["HostConfig"]["Binds"] == ["/tmp/x/nginx.conf:/etc/nginx/nginx.conf:ro"]
        assert "PortBindings" not in api["HostConfig"]
        assert api["Labels"] == {MANAGED_LABEL: "true"}

    def test_port_bindings(self) -> None:
        spec = ManagedContainerSpec(
            image="nginx",
            network_mode="bridge",
            ports=(
                PortBinding.parse("8080:80"),
                PortBinding.parse("127.0.0.1:8443:443"),
            ),
        )

        api = to_container_config(spec).to_api()

        assert api["ExposedPorts"] == {"80/tcp": {}, "443/tcp": {}}
        assert api["HostConfig"]["PortBindings"] == {
            "80/tcp": [{"HostIp": "", "HostPort": "8080"}],
            "443/tcp": [{"HostIp": "127.0.0.1", "HostPort": "8443"}],
        }


class TestDockerContainer:
    """DockerContainer error translation."""

    @pytest.fixture
    def mock_containers(self) -> AsyncMock:
        """Mock ContainerAPI."""
        mock = AsyncMock()
        mock.start = AsyncMock()
        mock.stop = AsyncMock()
        mock.kill = AsyncMock()
        mock.remove = AsyncMock()
        return mock

    async def test_operations_delegate(self, mock_containers: AsyncMock) -> None:
        container = DockerContainer("c1", mock_containers)

        await container.start()
        await container.stop(timeout=5)
        await container.kill(signal=1)
        await container.remove(force=True)

        assert container.id == "c1"
        mock_containers.start.assert_awaited_once_with("c1")
        mock_containers.stop.assert_awaited_once_with("c1", timeout=5)
        mock_containers.kill.assert_awaited_once_with("c1", signal=1)
        mock_containers.remove.assert_awaited_once_with("c1", force=True)

    async def test_status_error_becomes_operation_failed(self, mock_containers: AsyncMock) -> None:
        mock_containers.kill.side_effect = _status_error(
            409, {"message": "Container c1 is not running"}
        )
        container = DockerContainer("c1", mock_containers)

        with pytest.raises(RuntimeOperationFailedError) as exc_info:
            await container.kill(signal=1)

        assert exc_info.value.message == "kill failed (409): Container c1 is not running"
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    async def test_status_error_without_body(self, mock_containers: AsyncMock) -> None:
        mock_containers.start.side_effect = _status_error(500)
        container = DockerContainer("c1", mock_containers)

        with pytest.raises(RuntimeOperationFailedError) as exc_info:
            await container.start()

        assert exc_info.value.message == "start failed (500): Internal Server Error"

    async def test_transport_error_becomes_unavailable(self, mock_containers: AsyncMock) -> None:
        mock_containers.stop.side_effect = httpx.ConnectError("No such file or directory")
        container = DockerContainer("c1", mock_containers)

        with pytest.raises(RuntimeUnavailableError):
            await container.stop()


class TestDockerRuntime:
    @pytest.fixture
    def mock_client(self) -> AsyncMock:
        client = AsyncMock()
        client.ping = AsyncMock(return_value=True)
        client.close = AsyncMock()
        return client

    @pytest.fixture
    def mock_containers(self) -> AsyncMock:
        mock = AsyncMock()
        mock.create = AsyncMock(return_value="c1")
        return mock

    @pytest.fixture
    def mock_images(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def runtime(self, mock_client, mock_containers, mock_images) -> DockerRuntime:
        return DockerRuntime(
            client=mock_client, containers=mock_containers, images=mock_images
        )

    async def test_create_returns_handle(self, runtime, mock_containers) -> None:
        handle = await runtime.create(ManagedContainerSpec(image="nginx:stable", name="web"))

        assert handle.id == "c1"
        config = mock_containers.create.await_args.args[0]
        assert config.name == "web"

    async def test_create_conflict(self, runtime, mock_containers) -> None:
        mock_containers.create.side_effect = _status_error(409, {"message": "name in use"})

        with pytest.raises(RuntimeOperationFailedError) as exc_info:
            await runtime.create(ManagedContainerSpec(image="nginx:stable", name="web"))

        assert "name in use" in exc_info.value.message

    def test_get_does_no_io(self, runtime, mock_containers) -> None:
        handle = runtime.get("c1")

        assert handle.id == "c1"
        assert mock_containers.mock_calls == []

    async def test_pull_yields_progress(self, runtime, mock_images) -> None:
        async def stream(image_ref):
            yield {"status": "Pulling fs layer", "id": "abc"}
            yield {
                "status": "Downloading",
                "id": "abc",
                "progress": "[==>  ]",
                "progressDetail": {"current": 1, "total": 4},
            }

        mock_images.pull_stream = MagicMock(side_effect=stream)

        progress = [p async for p in runtime.pull("nginx:stable")]

        assert progress == [
            PullProgress(status="Pulling fs layer", id="abc"),
            PullProgress(
                status="Downloading",
                id="abc",
                progress="[==>  ]",
                detail={"current": 1, "total": 4},
            ),
        ]

    async def test_pull_not_found_becomes_pull_failed(self, runtime, mock_images) -> None:
        async def stream(image_ref):
            raise _status_error(404, {"message": "pull access denied"})
            yield  # pragma: no cover

        mock_images.pull_stream = MagicMock(side_effect=stream)

        with pytest.raises(ImagePullFailedError) as exc_info:
            async for _ in runtime.pull("nginx:nope"):
                pass

        assert exc_info.value.image_ref == "nginx:nope"
        assert "pull access denied" in exc_info.value.message

    async def test_pull_error_line_passes_through(self, runtime, mock_images) -> None:
        async def stream(image_ref):
            raise ImagePullFailedError(image_ref, "manifest unknown")
            yield  # pragma: no cover

        mock_images.pull_stream = MagicMock(side_effect=stream)

        with pytest.raises(ImagePullFailedError) as exc_info:
            async for _ in runtime.pull("nginx:nope"):
                pass

        assert exc_info.value.message == "Failed to pull image nginx:nope: manifest unknown"

    async def test_pull_unreachable(self, runtime, mock_images) -> None:
        async def stream(image_ref):
            raise httpx.ConnectError("refused")
            yield  # pragma: no cover

        mock_images.pull_stream = MagicMock(side_effect=stream)

        with pytest.raises(RuntimeUnavailableError):
            async for _ in runtime.pull("nginx"):
                pass

    async def test_ping_and_close(self, runtime, mock_client) -> None:
        assert await runtime.ping() is True

        await runtime.close()

        mock_client.close.assert_awaited_once()
