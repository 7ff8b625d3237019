"""Core data models."""

from nginxswitch.core.models.container import ManagedContainerSpec, PortBinding

__all__ = ["ManagedContainerSpec", "PortBinding"]
