"""Tests for logging setup, JSON formatting and rate limiting."""

import json
import logging

from nginxswitch.app.config import LoggingConfig
from nginxswitch.app.logging import (
    CustomJsonFormatter,
    RateLimitFilter,
    clear_trace_context,
    get_trace_id,
    set_trace_id,
)
from nginxswitch.core.logging_schema import LogEvent


def _record(msg: str, level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("nginxswitch.test", level, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestTraceContext:
    def test_set_generates_id(self) -> None:
        trace_id = set_trace_id()
        try:
            assert trace_id
            assert get_trace_id() == trace_id
        finally:
            clear_trace_context()

        assert get_trace_id() is None

    def test_set_explicit_id(self) -> None:
        assert set_trace_id("abc") == "abc"
        clear_trace_context()


class TestRateLimitFilter:
    def test_suppresses_duplicates(self) -> None:
        rate_filter = RateLimitFilter(rate_limit_seconds=60)

        assert rate_filter.filter(_record("Pulling nginx")) is True
        assert rate_filter.filter(_record("Pulling nginx")) is False
        assert rate_filter.filter(_record("Pulled nginx")) is True

    def test_errors_always_pass(self) -> None:
        rate_filter = RateLimitFilter(rate_limit_seconds=60)

        assert rate_filter.filter(_record("boom", logging.ERROR)) is True
        assert rate_filter.filter(_record("boom", logging.ERROR)) is True

    def test_cache_is_bounded(self) -> None:
        rate_filter = RateLimitFilter(rate_limit_seconds=60, max_cache_size=150)

        for i in range(200):
            rate_filter.filter(_record(f"message {i}"))

        assert len(rate_filter._last_log) <= 150


class TestCustomJsonFormatter:
    def test_standard_fields(self) -> None:
        formatter = CustomJsonFormatter(LoggingConfig(service_name="nginx-switch-test"))
        record = _record(
            "Nginx status: running",
            event=LogEvent.STATUS_CHANGED,
            status="running",
        )

        data = json.loads(formatter.format(record))

        assert data["message"] == "Nginx status: running"
        assert data["level"] == "INFO"
        assert data["logger"] == "nginxswitch.test"
        assert data["service"] == "nginx-switch-test"
        assert data["schema_version"] == "1.0"
        assert data["event"] == "status_changed"
        assert data["status"] == "running"
        assert "timestamp" in data
        assert "trace_id" not in data

    def test_includes_trace_id(self) -> None:
        formatter = CustomJsonFormatter(LoggingConfig())
        set_trace_id("trace-1")
        try:
            data = json.loads(formatter.format(_record("Operation started")))
        finally:
            clear_trace_context()

        assert data["trace_id"] == "trace-1"
