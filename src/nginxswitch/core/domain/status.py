"""Managed server status enum.

Stable statuses (STOPPED, RUNNING) are the only rest states. The others
exist only while a lifecycle operation is in flight.
"""

from enum import StrEnum


class NginxStatus(StrEnum):
    """Lifecycle phase of the managed nginx container."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    RESTARTING = "restarting"
    RELOADING = "reloading"

    @property
    def is_stable(self) -> bool:
        return self in STABLE_STATUSES


STABLE_STATUSES = frozenset({NginxStatus.STOPPED, NginxStatus.RUNNING})

TRANSIENT_STATUSES = frozenset({
    NginxStatus.STARTING,
    NginxStatus.STOPPING,
    NginxStatus.RESTARTING,
    NginxStatus.RELOADING,
})
