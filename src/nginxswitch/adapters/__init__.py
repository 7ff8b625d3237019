"""Adapters module - infrastructure implementations."""

from nginxswitch.adapters.runtime import DockerContainer, DockerRuntime

__all__ = [
    "DockerContainer",
    "DockerRuntime",
]
