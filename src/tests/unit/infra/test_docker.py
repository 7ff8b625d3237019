"""Tests for the Docker Engine API client (httpx.MockTransport)."""

import json

import httpx
import pytest

from nginxswitch.core.errors import ImagePullFailedError
from nginxswitch.infra.docker import (
    ContainerAPI,
    ContainerConfig,
    DockerClient,
    HostConfig,
    ImageAPI,
    split_image_ref,
)


class Recorder:
    """MockTransport handler returning canned responses and logging requests."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)


def _client(handler) -> DockerClient:
    return DockerClient(transport=httpx.MockTransport(handler))


class TestContainerConfig:
    def test_to_api_omits_empty_fields(self) -> None:
        config = ContainerConfig(
            image="nginx:stable",
            host_config=HostConfig(network_mode="host", binds=["/a:/b:ro"]),
        )

        assert config.to_api() == {
            "Image": "nginx:stable",
            "ExposedPorts": {},
            "HostConfig": {"NetworkMode": "host", "Binds": ["/a:/b:ro"]},
        }

    def test_to_api_includes_port_bindings(self) -> None:
        bindings = {"80/tcp": [{"HostIp": "", "HostPort": "8080"}]}
        config = ContainerConfig(
            image="nginx",
            exposed_ports={"80/tcp": {}},
            labels={"a": "b"},
            host_config=HostConfig(port_bindings=bindings),
        )

        api = config.to_api()

        assert api["HostConfig"]["PortBindings"] == bindings
        assert api["Labels"] == {"a": "b"}
        assert "Cmd" not in api


class TestContainerAPI:
    async def test_create_returns_id(self) -> None:
        handler = Recorder(httpx.Response(201, json={"Id": "c1", "Warnings": []}))
        api = ContainerAPI(_client(handler))

        container_id = await api.create(ContainerConfig(image="nginx:stable", name="web"))

        assert container_id == "c1"
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/containers/create"
        assert request.url.params["name"] == "web"
        assert json.loads(request.content)["Image"] == "nginx:stable"

    async def test_create_without_name_sends_no_params(self) -> None:
        handler = Recorder(httpx.Response(201, json={"Id": "c1"}))
        api = ContainerAPI(_client(handler))

        await api.create(ContainerConfig(image="nginx:stable"))

        assert "name" not in handler.requests[0].url.params

    async def test_create_conflict_raises(self) -> None:
        handler = Recorder(httpx.Response(409, json={"message": "name in use"}))
        api = ContainerAPI(_client(handler))

        with pytest.raises(httpx.HTTPStatusError):
            await api.create(ContainerConfig(image="nginx:stable", name="web"))

    @pytest.mark.parametrize("status", [204, 304])
    async def test_start_accepts_not_modified(self, status: int) -> None:
        handler = Recorder(httpx.Response(status))
        api = ContainerAPI(_client(handler))

        await api.start("c1")

        assert handler.requests[0].url.path == "/containers/c1/start"

    async def test_stop_passes_grace_period(self) -> None:
        handler = Recorder(httpx.Response(204))
        api = ContainerAPI(_client(handler))

        await api.stop("c1", timeout=3)

        request = handler.requests[0]
        assert request.url.path == "/containers/c1/stop"
        assert request.url.params["t"] == "3"

    async def test_kill_sends_signal(self) -> None:
        handler = Recorder(httpx.Response(204))
        api = ContainerAPI(_client(handler))

        await api.kill("c1", signal=1)

        request = handler.requests[0]
        assert request.url.path == "/containers/c1/kill"
        assert request.url.params["signal"] == "1"

    async def test_kill_not_running_raises(self) -> None:
        handler = Recorder(httpx.Response(409, json={"message": "is not running"}))
        api = ContainerAPI(_client(handler))

        with pytest.raises(httpx.HTTPStatusError):
            await api.kill("c1", signal=1)

    async def test_remove_forced(self) -> None:
        handler = Recorder(httpx.Response(204))
        api = ContainerAPI(_client(handler))

        await api.remove("c1", force=True)

        request = handler.requests[0]
        assert request.method == "DELETE"
        assert request.url.params["force"] == "true"

    async def test_remove_missing_is_silent(self) -> None:
        api = ContainerAPI(_client(Recorder(httpx.Response(404))))

        await api.remove("gone")


class TestDockerClient:
    async def test_ping(self) -> None:
        client = _client(Recorder(httpx.Response(200, text="OK")))

        assert await client.ping() is True

    async def test_ping_unreachable(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(refuse)

        assert await client.ping() is False

    async def test_close_recreates_client(self) -> None:
        client = _client(Recorder(httpx.Response(200), httpx.Response(200)))
        first = await client.get()

        await client.close()
        second = await client.get()

        assert first is not second
        assert first.is_closed


class TestSplitImageRef:
    @pytest.mark.parametrize(
        ("ref", "expected"),
        [
            ("nginx", ("nginx", "latest")),
            ("nginx:stable", ("nginx", "stable")),
            ("localhost:5000/nginx", ("localhost:5000/nginx", "latest")),
            ("localhost:5000/nginx:1.27", ("localhost:5000/nginx", "1.27")),
            ("nginx@sha256:abc", ("nginx@sha256:abc", "")),
        ],
    )
    def test_split(self, ref: str, expected: tuple[str, str]) -> None:
        assert split_image_ref(ref) == expected


class TestImageAPI:
    async def test_pull_stream_yields_records(self) -> None:
        body = (
            b'{"status": "Pulling from library/nginx", "id": "stable"}\n'
            b"\n"
            b"not json\n"
            b'{"status": "Download complete", "id": "abc"}\n'
        )
        handler = Recorder(httpx.Response(200, content=body))
        api = ImageAPI(_client(handler))

        records = [record async for record in api.pull_stream("nginx:stable")]

        assert [r["status"] for r in records] == ["Pulling from library/nginx", "Download complete"]
        params = handler.requests[0].url.params
        assert params["fromImage"] == "nginx"
        assert params["tag"] == "stable"

    async def test_pull_stream_error_line_raises(self) -> None:
        body = (
            b'{"status": "Pulling from library/nginx"}\n'
            b'{"error": "manifest for nginx:nope not found"}\n'
        )
        api = ImageAPI(_client(Recorder(httpx.Response(200, content=body))))

        with pytest.raises(ImagePullFailedError) as exc_info:
            async for _ in api.pull_stream("nginx:nope"):
                pass

        assert "manifest for nginx:nope not found" in exc_info.value.message

    async def test_pull_digest_sends_no_tag(self) -> None:
        handler = Recorder(httpx.Response(200, content=b""))
        api = ImageAPI(_client(handler))

        async for _ in api.pull_stream("nginx@sha256:abc"):
            pass

        assert "tag" not in handler.requests[0].url.params
