"""Process-wide services for the host application.

init_services() wires the generated config, the Docker runtime, the
controller and the action menu once per process; routes reach them
through get_controller()/get_menu() so tests can override them with
FastAPI dependency_overrides.
"""

import logging

from nginxswitch.adapters.runtime import DockerRuntime
from nginxswitch.app.actions import ActionMenu
from nginxswitch.app.config import Settings, get_settings
from nginxswitch.app.generator import NGINX_CONF, ConfigDirectory, render_nginx_conf
from nginxswitch.control import NginxController
from nginxswitch.core.interfaces import ContainerRuntime
from nginxswitch.core.logging_schema import LogEvent
from nginxswitch.core.models import ManagedContainerSpec
from nginxswitch.core.retryable import classify_error

logger = logging.getLogger(__name__)

_config_dir: ConfigDirectory | None = None
_runtime: ContainerRuntime | None = None
_controller: NginxController | None = None
_menu: ActionMenu | None = None


def init_services(
    settings: Settings | None = None,
    runtime: ContainerRuntime | None = None,
) -> NginxController:
    """Generate nginx.conf and build the controller stack."""
    global _config_dir, _runtime, _controller, _menu

    if settings is None:
        settings = get_settings()

    _config_dir = ConfigDirectory(settings.generator.dir_prefix)
    _config_dir.create()
    config_file = _config_dir.write(NGINX_CONF, render_nginx_conf(settings.generator))

    spec = ManagedContainerSpec.from_settings(settings, config_file)
    _runtime = runtime or DockerRuntime()
    _controller = NginxController(_runtime, spec, config=settings.controller)
    _menu = ActionMenu(_controller)

    logger.info(
        "Services initialized",
        extra={
            "event": LogEvent.APP_STARTED,
            "image": spec.image,
            "config_dir": str(_config_dir.path),
        },
    )
    return _controller


def get_controller() -> NginxController:
    if _controller is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    return _controller


def get_menu() -> ActionMenu:
    if _menu is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    return _menu


def get_runtime() -> ContainerRuntime:
    if _runtime is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    return _runtime


async def close_services() -> None:
    """Cancel pending intents, remove the container, then release the
    runtime and config dir.

    A failing clean() is logged and does not block the rest of shutdown.
    """
    if _menu is not None:
        await _menu.aclose()
    if _controller is not None:
        try:
            await _controller.clean()
        except Exception as exc:
            logger.error(
                "Cleanup on shutdown failed: %s",
                exc,
                extra={
                    "event": LogEvent.CLEANUP_FAILED,
                    "container_id": _controller.container_id,
                    "error_class": classify_error(exc),
                },
            )

    if _runtime is not None:
        await _runtime.close()
    if _config_dir is not None:
        _config_dir.cleanup()

    reset_services()


def reset_services() -> None:
    """Drop all references (tests, or after close_services)."""
    global _config_dir, _runtime, _controller, _menu
    _config_dir = None
    _runtime = None
    _controller = None
    _menu = None
