"""Logging configuration with operation tracing and rate limiting.

Supports two formats:
- text: Human-readable for local use
- json: Structured logging for log aggregation
"""

import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pythonjsonlogger import json as jsonlogger

from nginxswitch.app.config import LoggingConfig, get_settings

# Context variable for per-operation tracing
trace_id_ctx: ContextVar[str | None] = ContextVar("trace_id", default=None)


def get_trace_id() -> str | None:
    """Get current trace_id from context."""
    return trace_id_ctx.get()


def set_trace_id(trace_id: str | None = None) -> str:
    """Set trace_id in context, generating one if not provided.

    Args:
        trace_id: Optional trace ID to set. If None, generates a new UUID.

    Returns:
        The trace ID that was set.
    """
    tid = trace_id or str(uuid4())
    trace_id_ctx.set(tid)
    return tid


def clear_trace_context() -> None:
    """Clear trace context (call at end of operation)."""
    trace_id_ctx.set(None)


class RateLimitFilter(logging.Filter):
    """Filter to prevent log storms from repeated messages.

    Suppresses duplicate log messages within a time window.
    ERROR logs bypass rate limiting and are always logged.

    Args:
        rate_limit_seconds: Minimum seconds between identical messages (default: 5)
        max_cache_size: Maximum number of messages to track (default: 1000)
    """

    def __init__(
        self,
        rate_limit_seconds: float = 5.0,
        max_cache_size: int = 1000,
        name: str = "",
    ) -> None:
        super().__init__(name)
        self._rate_limit = rate_limit_seconds
        self._max_cache = max_cache_size
        self._last_log: dict[str, float] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter duplicate messages within the rate limit window."""
        # ERROR and above always pass through
        if record.levelno >= logging.ERROR:
            return True

        key = f"{record.name}:{record.lineno}:{record.getMessage()}"

        now = time.monotonic()
        last_time = self._last_log.get(key)

        if last_time is not None and now - last_time < self._rate_limit:
            return False

        self._last_log[key] = now

        # Prevent unbounded growth of cache
        if len(self._last_log) > self._max_cache:
            oldest_keys = sorted(self._last_log, key=self._last_log.get)[:100]  # type: ignore[arg-type]
            for old_key in oldest_keys:
                del self._last_log[old_key]

        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with schema version and trace context.

    Adds the following standard fields to all logs:
    - timestamp: ISO 8601 format with timezone
    - level: Log level name
    - logger: Logger name
    - pid: Process ID
    - schema_version: Log schema version (for backwards compatibility)
    - service: Service name
    - trace_id: Operation trace ID (if set in context)
    """

    def __init__(self, config: LoggingConfig, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._schema_version = config.schema_version
        self._service = config.service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["pid"] = record.process
        log_record["filename"] = record.filename
        log_record["lineno"] = record.lineno

        log_record["schema_version"] = self._schema_version
        log_record["service"] = self._service

        if trace_id := get_trace_id():
            log_record["trace_id"] = trace_id

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        log_record.pop("color_message", None)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the application.

    Args:
        config: Logging configuration. If None, uses settings.logging.
    """
    if config is None:
        config = get_settings().logging

    level = getattr(logging, config.level.upper(), logging.INFO)

    if config.format == "json":
        formatter: logging.Formatter = CustomJsonFormatter(config)
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(RateLimitFilter(rate_limit_seconds=config.rate_limit_seconds))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in ("uvicorn", "uvicorn.error"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = False
        uv_logger.addHandler(handler)

    # Request logging is noise for a single-user control surface
    logging.getLogger("uvicorn.access").disabled = True

    # Suppress verbose HTTP client logs (Docker API polling)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
