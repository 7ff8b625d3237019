"""nginx configuration generation.

The generated nginx.conf lives in a private temp directory for the life
of the process and is bind-mounted read-only into the container.

Configuration via GeneratorConfig (GENERATOR_ env prefix).
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from nginxswitch.app.config import GeneratorConfig, get_settings
from nginxswitch.core.logging_schema import LogEvent

logger = logging.getLogger(__name__)

NGINX_CONF = "nginx.conf"


class ConfigDirectory:
    """Temp directory holding generated nginx configuration files."""

    def __init__(self, prefix: str | None = None) -> None:
        self._prefix = prefix or get_settings().generator.dir_prefix
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError("ConfigDirectory not created. Call create() first.")
        return self._path

    def create(self) -> Path:
        """Create the directory (mode 0700). Calling twice returns the same path."""
        if self._path is None:
            # mkdtemp already creates with 0700
            self._path = Path(tempfile.mkdtemp(prefix=self._prefix))
        return self._path

    def write(self, name: str, content: str) -> Path:
        """Write a file readable by the container's nginx user."""
        target = self.path / name
        target.write_text(content, encoding="utf-8")
        os.chmod(target, 0o644)
        logger.info(
            "Generated %s",
            target,
            extra={"event": LogEvent.CONFIG_GENERATED, "path": str(target)},
        )
        return target

    def cleanup(self) -> None:
        """Remove the directory and its contents. Safe to call repeatedly."""
        if self._path is None:
            return
        shutil.rmtree(self._path, ignore_errors=True)
        self._path = None

    def __enter__(self) -> "ConfigDirectory":
        self.create()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()


def render_nginx_conf(config: GeneratorConfig | None = None) -> str:
    """Render a minimal nginx.conf proxying each configured route."""
    if config is None:
        config = get_settings().generator

    if config.routes:
        locations = [
            f"        location {path} {{\n"
            f"            proxy_pass {upstream};\n"
            f"            proxy_set_header Host $host;\n"
            f"            proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;\n"
            f"        }}\n"
            for path, upstream in sorted(config.routes.items())
        ]
    else:
        locations = [
            "        location / {\n"
            "            return 200 'nginx-switch\\n';\n"
            "        }\n"
        ]

    return (
        "worker_processes auto;\n"
        "\n"
        "events {\n"
        "    worker_connections 1024;\n"
        "}\n"
        "\n"
        "http {\n"
        "    access_log /dev/stdout;\n"
        "    error_log /dev/stderr;\n"
        "\n"
        "    server {\n"
        f"        listen {config.listen_port};\n"
        f"        server_name {config.server_name};\n"
        "\n"
        + "\n".join(locations)
        + "    }\n"
        "}\n"
    )
