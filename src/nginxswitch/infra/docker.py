"""Docker Engine API client with Pydantic models.

Provides async Docker API access for containers and images.
Supports both Unix socket and TCP connections.

Configuration via DockerConfig (DOCKER_ env prefix).
"""

import json
import logging
from collections.abc import AsyncIterator

import httpx
from pydantic import BaseModel

from nginxswitch.app.config import get_settings
from nginxswitch.core.errors import ImagePullFailedError
from nginxswitch.core.logging_schema import LogEvent

logger = logging.getLogger(__name__)

_docker_config = get_settings().docker


# =============================================================================
# Pydantic Models
# =============================================================================


class HostConfig(BaseModel):
    """Docker HostConfig for container creation."""

    network_mode: str = "bridge"
    binds: list[str] = []
    # "80/tcp" -> [{"HostIp": "", "HostPort": "8080"}]
    port_bindings: dict[str, list[dict[str, str]]] = {}

    model_config = {"frozen": True}

    def to_api(self) -> dict:
        """Convert to Docker API format."""
        result: dict = {
            "NetworkMode": self.network_mode,
            "Binds": self.binds,
        }
        if self.port_bindings:
            result["PortBindings"] = self.port_bindings
        return result


class ContainerConfig(BaseModel):
    """Docker container configuration for creation."""

    image: str
    name: str | None = None
    cmd: list[str] = []
    env: list[str] = []
    exposed_ports: dict[str, dict] = {}
    labels: dict[str, str] = {}
    host_config: HostConfig = HostConfig()

    model_config = {"frozen": True}

    def to_api(self) -> dict:
        """Convert to Docker API JSON format."""
        result: dict = {
            "Image": self.image,
            "ExposedPorts": self.exposed_ports,
            "HostConfig": self.host_config.to_api(),
        }
        # Empty Cmd keeps the image's default command
        if self.cmd:
            result["Cmd"] = self.cmd
        if self.env:
            result["Env"] = self.env
        if self.labels:
            result["Labels"] = self.labels
        return result


# =============================================================================
# Docker Client (Singleton)
# =============================================================================


class DockerClient:
    """Async Docker API client.

    Supports Unix socket and TCP connections.
    Handles event loop changes (important for tests).
    """

    def __init__(
        self,
        docker_host: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._host = docker_host or _docker_config.host
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _create_client(self) -> httpx.AsyncClient:
        """Create a new HTTP client."""
        timeout = _docker_config.api_timeout
        if self._transport is not None:
            return httpx.AsyncClient(
                transport=self._transport,
                base_url="http://docker",
                timeout=timeout,
            )
        if self._host.startswith("unix://"):
            socket_path = self._host.replace("unix://", "")
            transport = httpx.AsyncHTTPTransport(uds=socket_path)
            return httpx.AsyncClient(
                transport=transport,
                base_url="http://localhost",
                timeout=timeout,
            )
        else:
            base_url = self._host
            if base_url.startswith("tcp://"):
                base_url = base_url.replace("tcp://", "http://")
            return httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def get(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        Recreates the client if the previous one was closed
        (e.g., due to event loop change in tests).
        """
        if self._client is None or self._client.is_closed:
            self._client = self._create_client()
        return self._client

    async def ping(self) -> bool:
        """Check whether the daemon answers /_ping."""
        client = await self.get()
        try:
            resp = await client.get("/_ping")
        except httpx.HTTPError:
            return False
        return resp.status_code == 200

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


# Global singleton
_docker_client: DockerClient | None = None


def get_docker_client() -> DockerClient:
    """Get the global Docker client singleton."""
    global _docker_client
    if _docker_client is None:
        _docker_client = DockerClient()
    return _docker_client


async def close_docker() -> None:
    """Close the global Docker client."""
    global _docker_client
    if _docker_client:
        await _docker_client.close()
        _docker_client = None


# =============================================================================
# Container API
# =============================================================================


class ContainerAPI:
    """Docker Container API operations."""

    def __init__(self, client: DockerClient | None = None) -> None:
        self._docker = client or get_docker_client()

    async def create(self, config: ContainerConfig) -> str:
        """Create a container.

        Args:
            config: Container configuration

        Returns:
            ID of the new container
        """
        client = await self._docker.get()
        params = {"name": config.name} if config.name else None
        resp = await client.post(
            "/containers/create",
            params=params,
            json=config.to_api(),
        )
        resp.raise_for_status()
        data = resp.json()
        container_id = data["Id"]
        for warning in data.get("Warnings") or []:
            logger.warning("Docker warning on create: %s", warning)
        logger.info(
            "Created container: %s",
            container_id,
            extra={
                "event": LogEvent.CONTAINER_CREATED,
                "container_id": container_id,
                "image": config.image,
            },
        )
        return container_id

    async def start(self, container_id: str) -> None:
        """Start a container.

        Args:
            container_id: Container name or ID
        """
        client = await self._docker.get()
        resp = await client.post(f"/containers/{container_id}/start")
        if resp.status_code not in (204, 304):  # 304 = already started
            resp.raise_for_status()
        logger.info(
            "Started container: %s",
            container_id,
            extra={"event": LogEvent.CONTAINER_STARTED, "container_id": container_id},
        )

    async def stop(self, container_id: str, timeout: int = 10) -> None:
        """Stop a container.

        Args:
            container_id: Container name or ID
            timeout: Seconds to wait before killing
        """
        client = await self._docker.get()
        # The daemon blocks for up to `timeout` seconds before answering
        resp = await client.post(
            f"/containers/{container_id}/stop",
            params={"t": str(timeout)},
            timeout=_docker_config.api_timeout + timeout,
        )
        if resp.status_code not in (204, 304):  # 304 = already stopped
            resp.raise_for_status()
        logger.info(
            "Stopped container: %s",
            container_id,
            extra={"event": LogEvent.CONTAINER_STOPPED, "container_id": container_id},
        )

    async def kill(self, container_id: str, signal: int | str = "SIGKILL") -> None:
        """Send a signal to a container.

        Args:
            container_id: Container name or ID
            signal: Signal number or name
        """
        client = await self._docker.get()
        resp = await client.post(
            f"/containers/{container_id}/kill", params={"signal": str(signal)}
        )
        resp.raise_for_status()
        logger.info(
            "Signalled container: %s",
            container_id,
            extra={
                "event": LogEvent.CONTAINER_KILLED,
                "container_id": container_id,
                "signal": str(signal),
            },
        )

    async def remove(self, container_id: str, force: bool = True) -> None:
        """Remove a container.

        Args:
            container_id: Container name or ID
            force: Force removal of running container
        """
        client = await self._docker.get()
        resp = await client.delete(
            f"/containers/{container_id}",
            params={"force": "true" if force else "false"},
        )
        if resp.status_code == 404:
            logger.debug("Container not found: %s", container_id)
            return
        resp.raise_for_status()
        logger.info(
            "Removed container: %s",
            container_id,
            extra={"event": LogEvent.CONTAINER_REMOVED, "container_id": container_id},
        )


# =============================================================================
# Image API
# =============================================================================


def split_image_ref(image_ref: str) -> tuple[str, str]:
    """Split "repo[:tag]" into (repo, tag); a registry port is not a tag."""
    if "@" in image_ref:
        # Digest references carry no tag
        return image_ref, ""
    repo, sep, tag = image_ref.rpartition(":")
    if not sep or "/" in tag:
        return image_ref, "latest"
    return repo, tag


class ImageAPI:
    """Docker Image API operations."""

    def __init__(self, client: DockerClient | None = None) -> None:
        self._docker = client or get_docker_client()

    async def pull_stream(self, image_ref: str) -> AsyncIterator[dict]:
        """Pull image from registry, yielding progress records.

        Args:
            image_ref: Image reference (e.g., "nginx:stable")

        Yields:
            Decoded JSON progress objects from the daemon

        Raises:
            ImagePullFailedError: If the daemon reports an error in the stream

        Note:
            Docker answers 200 immediately and reports failures inside the
            chunked JSON body, so every line has to be checked.
        """
        client = await self._docker.get()
        image, tag = split_image_ref(image_ref)

        logger.info("Pulling image: %s", image_ref)

        params = {"fromImage": image}
        if tag:
            params["tag"] = tag

        async with client.stream(
            "POST",
            "/images/create",
            params=params,
            timeout=_docker_config.image_pull_timeout,
        ) as resp:
            resp.raise_for_status()
            async for line in resp.aiter_lines():
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug("Skipping malformed pull progress line: %r", line)
                    continue
                if "error" in record:
                    raise ImagePullFailedError(image_ref, str(record["error"]))
                yield record

        logger.info(
            "Pulled image: %s",
            image_ref,
            extra={"event": LogEvent.IMAGE_PULLED, "image": image_ref},
        )
