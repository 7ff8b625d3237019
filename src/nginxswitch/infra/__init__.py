"""Infrastructure connections (Docker Engine)."""

from nginxswitch.infra.docker import (
    ContainerAPI,
    ContainerConfig,
    DockerClient,
    HostConfig,
    ImageAPI,
    close_docker,
    get_docker_client,
)

__all__ = [
    "ContainerAPI",
    "ContainerConfig",
    "DockerClient",
    "HostConfig",
    "ImageAPI",
    "close_docker",
    "get_docker_client",
]
