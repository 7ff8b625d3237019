"""Domain enums."""

from nginxswitch.core.domain.status import (
    STABLE_STATUSES,
    TRANSIENT_STATUSES,
    NginxStatus,
)

__all__ = [
    "NginxStatus",
    "STABLE_STATUSES",
    "TRANSIENT_STATUSES",
]
