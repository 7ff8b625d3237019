"""Managed container specification."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from nginxswitch.app.config import Settings


class PortBinding(BaseModel):
    """Single container port published on the host."""

    container_port: int = Field(gt=0, le=65535)
    host_port: int = Field(gt=0, le=65535)
    protocol: str = "tcp"
    host_ip: str = ""

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, value: str) -> PortBinding:
        """Parse "host:container[/proto]" or "ip:host:container[/proto]"."""
        ports, _, protocol = value.partition("/")
        parts = ports.split(":")
        if len(parts) == 2:
            host_ip = ""
            host_port, container_port = parts
        elif len(parts) == 3:
            host_ip, host_port, container_port = parts
        else:
            raise ValueError(f"Invalid port binding: {value!r}")
        return cls(
            container_port=int(container_port),
            host_port=int(host_port),
            protocol=protocol or "tcp",
            host_ip=host_ip,
        )

    @property
    def key(self) -> str:
        """Docker API port key, e.g. "80/tcp"."""
        return f"{self.container_port}/{self.protocol}"


class ManagedContainerSpec(BaseModel):
    """Everything needed to create the managed nginx container.

    Immutable once the controller is constructed; the container ID the
    runtime assigns is tracked by the controller, not here.
    """

    image: str
    name: str | None = None
    binds: tuple[str, ...] = ()
    ports: tuple[PortBinding, ...] = ()
    network_mode: str = "host"

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings, config_file: Path | str) -> ManagedContainerSpec:
        """Build the default spec: generated config mounted read-only."""
        nginx = settings.nginx
        binds = (f"{config_file}:{nginx.config_path}:ro", *nginx.extra_binds)
        return cls(
            image=nginx.image,
            name=nginx.container_name,
            binds=binds,
            ports=tuple(PortBinding.parse(p) for p in nginx.ports),
            network_mode=nginx.network_mode,
        )
