"""Container runtime interface for the lifecycle controller.

This is the only surface the controller uses to reach the container
engine. Implementations: DockerRuntime (adapters/runtime/docker.py).

Design principles:
- Handles are cheap references by ID; getting one performs no I/O
- Every method that talks to the engine is a coroutine
- Failures surface as NginxSwitchError subclasses
  (RuntimeUnavailableError, RuntimeOperationFailedError, ImagePullFailedError)
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from pydantic import BaseModel

from nginxswitch.core.models import ManagedContainerSpec


class PullProgress(BaseModel):
    """One progress record from an image pull stream."""

    status: str = ""
    id: str | None = None
    progress: str | None = None
    detail: dict = {}

    model_config = {"frozen": True}


class ContainerHandle(ABC):
    """Reference to a single container."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Container ID."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the container. Starting a running container is a no-op."""
        ...

    @abstractmethod
    async def stop(self, timeout: int = 10) -> None:
        """Stop the container.

        Args:
            timeout: Seconds to wait before the engine kills it
        """
        ...

    @abstractmethod
    async def kill(self, signal: int | str) -> None:
        """Send a signal to the container's main process.

        Args:
            signal: Signal number or name (e.g. 1 or "SIGHUP")
        """
        ...

    @abstractmethod
    async def remove(self, force: bool = False) -> None:
        """Remove the container.

        Args:
            force: Kill the container first if it is running
        """
        ...


class ContainerRuntime(ABC):
    """Interface for container engine access."""

    @abstractmethod
    def pull(self, image_ref: str) -> AsyncIterator[PullProgress]:
        """Pull an image, yielding progress until the pull completes.

        Args:
            image_ref: Image reference (e.g., "nginx:stable")

        Raises:
            ImagePullFailedError: If the engine reports a pull error
        """
        ...

    @abstractmethod
    async def create(self, spec: ManagedContainerSpec) -> ContainerHandle:
        """Create (but do not start) a container from spec.

        Returns:
            Handle to the new container
        """
        ...

    @abstractmethod
    def get(self, container_id: str) -> ContainerHandle:
        """Get a handle to an existing container by ID."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check whether the engine is reachable."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release connections held by the runtime."""
        ...
