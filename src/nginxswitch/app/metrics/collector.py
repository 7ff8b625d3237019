"""Prometheus metrics definitions for the lifecycle controller."""

from prometheus_client import Counter, Gauge, Histogram

from nginxswitch.core.domain import NginxStatus

# =============================================================================
# Histogram Buckets
# =============================================================================
# Docker operations: stop waits up to stop_timeout, pulls can take minutes
# Log scale: ratio ≈ 2 (100ms ~ 600s)
_BUCKETS_SLOW = (
    0.1, 0.2, 0.5, 1, 2,
    5, 10, 20, 45, 90,
    180, 600,
)  # 12 buckets

# =============================================================================
# Controller Metrics
# =============================================================================

NGINX_STATUS = Gauge(
    "nginx_switch_status",
    "Current controller status (1 for the active status, 0 otherwise)",
    ["status"],
)

OPERATION_TOTAL = Counter(
    "nginx_switch_operations_total",
    "Lifecycle operations by outcome",
    ["operation", "status"],
)

OPERATION_FAILURES_TOTAL = Counter(
    "nginx_switch_operation_failures_total",
    "Failed lifecycle operations by error class",
    ["operation", "error_class"],
)

OPERATION_DURATION = Histogram(
    "nginx_switch_operation_duration_seconds",
    "Lifecycle operation duration (guard accepted to completion)",
    ["operation"],
    buckets=_BUCKETS_SLOW,
)

IMAGE_PULLS_TOTAL = Counter(
    "nginx_switch_image_pulls_total",
    "Image pulls by result",
    ["result"],
)


def set_status_metric(status: NginxStatus) -> None:
    """Mark status as the single active value of NGINX_STATUS."""
    for candidate in NginxStatus:
        NGINX_STATUS.labels(status=candidate.value).set(1 if candidate is status else 0)
