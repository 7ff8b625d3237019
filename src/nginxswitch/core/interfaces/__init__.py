"""Core interfaces."""

from nginxswitch.core.interfaces.runtime import (
    ContainerHandle,
    ContainerRuntime,
    PullProgress,
)

__all__ = [
    "ContainerHandle",
    "ContainerRuntime",
    "PullProgress",
]
