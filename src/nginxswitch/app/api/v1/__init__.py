"""API v1 module."""

from nginxswitch.app.api.v1.events import router as events_router
from nginxswitch.app.api.v1.nginx import router as nginx_router

__all__ = ["events_router", "nginx_router"]
