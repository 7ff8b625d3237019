"""Docker runtime implementation."""

import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager

import httpx

from nginxswitch.core.errors import (
    ImagePullFailedError,
    NginxSwitchError,
    RuntimeOperationFailedError,
    RuntimeUnavailableError,
)
from nginxswitch.core.interfaces import ContainerHandle, ContainerRuntime, PullProgress
from nginxswitch.core.models import ManagedContainerSpec
from nginxswitch.infra.docker import (
    ContainerAPI,
    ContainerConfig,
    DockerClient,
    HostConfig,
    ImageAPI,
    get_docker_client,
)

logger = logging.getLogger(__name__)

MANAGED_LABEL = "io.nginx-switch.managed"


def _error_message(exc: httpx.HTTPStatusError) -> str:
    """Extract Docker's {"message": ...} body, falling back to the reason phrase."""
    response = exc.response
    try:
        return response.json().get("message") or response.reason_phrase
    except (httpx.ResponseNotRead, ValueError, AttributeError):
        # Streamed responses are not read; JSON may be missing
        return response.reason_phrase


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Map httpx failures to runtime errors.

    Connection and timeout problems mean the daemon is unavailable;
    an HTTP error status means the daemon refused the operation.
    """
    try:
        yield
    except NginxSwitchError:
        raise
    except httpx.HTTPStatusError as exc:
        raise RuntimeOperationFailedError(
            f"{action} failed ({exc.response.status_code}): {_error_message(exc)}"
        ) from exc
    except httpx.HTTPError as exc:
        raise RuntimeUnavailableError(
            f"Docker unreachable during {action}: {exc!r}"
        ) from exc


def to_container_config(spec: ManagedContainerSpec) -> ContainerConfig:
    """Convert the managed spec to Docker's create payload."""
    port_bindings: dict[str, list[dict[str, str]]] = {}
    for port in spec.ports:
        port_bindings.setdefault(port.key, []).append(
            {"HostIp": port.host_ip, "HostPort": str(port.host_port)}
        )

    return ContainerConfig(
        image=spec.image,
        name=spec.name,
        exposed_ports={key: {} for key in port_bindings},
        labels={MANAGED_LABEL: "true"},
        host_config=HostConfig(
            network_mode=spec.network_mode,
            binds=list(spec.binds),
            port_bindings=port_bindings,
        ),
    )


class DockerContainer(ContainerHandle):
    """Handle to a Docker container, addressed by ID."""

    def __init__(self, container_id: str, containers: ContainerAPI) -> None:
        self._id = container_id
        self._containers = containers

    def __repr__(self) -> str:
        return f"DockerContainer({self._id[:12]!r})"

    @property
    def id(self) -> str:
        return self._id

    async def start(self) -> None:
        with _translate_errors("start"):
            await self._containers.start(self._id)

    async def stop(self, timeout: int = 10) -> None:
        with _translate_errors("stop"):
            await self._containers.stop(self._id, timeout=timeout)

    async def kill(self, signal: int | str) -> None:
        with _translate_errors("kill"):
            await self._containers.kill(self._id, signal=signal)

    async def remove(self, force: bool = False) -> None:
        with _translate_errors("remove"):
            await self._containers.remove(self._id, force=force)


class DockerRuntime(ContainerRuntime):
    """Docker-based container runtime using ContainerAPI and ImageAPI."""

    def __init__(
        self,
        client: DockerClient | None = None,
        containers: ContainerAPI | None = None,
        images: ImageAPI | None = None,
    ) -> None:
        self._client = client or get_docker_client()
        self._containers = containers or ContainerAPI(self._client)
        self._images = images or ImageAPI(self._client)

    async def pull(self, image_ref: str) -> AsyncIterator[PullProgress]:
        """Pull image_ref, yielding daemon progress records."""
        try:
            with _translate_errors("pull"):
                async for record in self._images.pull_stream(image_ref):
                    yield PullProgress(
                        status=record.get("status", ""),
                        id=record.get("id"),
                        progress=record.get("progress"),
                        detail=record.get("progressDetail") or {},
                    )
        except RuntimeOperationFailedError as exc:
            if isinstance(exc, ImagePullFailedError):
                raise
            # 404 from /images/create: repository or tag does not exist
            raise ImagePullFailedError(image_ref, exc.message) from exc

    async def create(self, spec: ManagedContainerSpec) -> ContainerHandle:
        with _translate_errors("create"):
            container_id = await self._containers.create(to_container_config(spec))
        return self.get(container_id)

    def get(self, container_id: str) -> ContainerHandle:
        return DockerContainer(container_id, self._containers)

    async def ping(self) -> bool:
        return await self._client.ping()

    async def close(self) -> None:
        await self._client.close()
