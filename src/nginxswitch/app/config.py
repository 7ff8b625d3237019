"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DockerConfig(BaseSettings):
    """Docker Engine connection configuration."""

    model_config = SettingsConfigDict(env_prefix="DOCKER_")

    host: str = Field(default="unix:///var/run/docker.sock")

    # Timeout settings
    api_timeout: float = Field(default=30.0)  # seconds (Docker API calls)
    image_pull_timeout: float = Field(default=600.0)  # seconds (10 minutes)
    stop_timeout: int = Field(default=10)  # seconds before Docker sends SIGKILL


class NginxConfig(BaseSettings):
    """Managed nginx container configuration."""

    model_config = SettingsConfigDict(env_prefix="NGINX_")

    image: str = Field(default="nginx:stable")
    container_name: str | None = Field(default=None)
    network_mode: str = Field(default="host")
    # Where the generated config is mounted inside the container
    config_path: str = Field(default="/etc/nginx/nginx.conf")
    # Port mappings as "host:container[/proto]"; ignored by Docker in host mode
    ports: list[str] = Field(default=[])
    # Additional bind mounts as "host:container[:mode]"
    extra_binds: list[str] = Field(default=[])


class ControllerConfig(BaseSettings):
    """Lifecycle controller behavior."""

    model_config = SettingsConfigDict(env_prefix="CONTROLLER_")

    operation_timeout: float = Field(default=60.0)  # seconds per runtime call
    reload_signal: int = Field(default=1)  # SIGHUP: nginx re-reads its config
    rollback_on_failure: bool = Field(default=True)
    autostart: bool = Field(default=False)


class GeneratorConfig(BaseSettings):
    """nginx.conf generator configuration."""

    model_config = SettingsConfigDict(env_prefix="GENERATOR_")

    dir_prefix: str = Field(default="nginx-switch-")
    listen_port: int = Field(default=80)
    server_name: str = Field(default="localhost")
    # location -> upstream URL, e.g. {"/api/": "http://127.0.0.1:8000"}
    routes: dict[str, str] = Field(default={})


class ServerConfig(BaseSettings):
    """Host HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8765)


class SSEConfig(BaseSettings):
    """Server-Sent Events configuration."""

    model_config = SettingsConfigDict(env_prefix="SSE_")

    heartbeat_interval: float = Field(default=30.0)  # seconds
    queue_maxsize: int = Field(default=64)


class MetricsConfig(BaseSettings):
    """Prometheus metrics configuration."""

    model_config = SettingsConfigDict(env_prefix="METRICS_")

    enabled: bool = Field(default=True)


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Supports both text and JSON formats:
    - text: Human-readable for local use
    - json: Structured logging for log aggregation

    Rate limiting:
    - Suppresses identical messages within rate_limit_seconds
    - ERROR logs bypass rate limiting (always logged)
    """

    model_config = SettingsConfigDict(env_prefix="LOGGING_")

    level: str = Field(default="INFO")
    format: str = Field(default="text")
    schema_version: str = Field(default="1.0")
    service_name: str = Field(default="nginx-switch")
    rate_limit_seconds: float = Field(default=5.0)
    slow_threshold_ms: float = Field(default=5000.0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NGINX_SWITCH_",
        env_nested_delimiter="__",
    )

    docker: DockerConfig = Field(default_factory=DockerConfig)
    nginx: NginxConfig = Field(default_factory=NginxConfig)
    controller: ControllerConfig = Field(default_factory=ControllerConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    sse: SSEConfig = Field(default_factory=SSEConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache
def get_settings() -> Settings:
    return Settings()
