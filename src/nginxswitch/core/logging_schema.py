"""Logging field schema - v1.0

Standard fields (added to all logs):
- schema_version: Log schema version
- service: Service name (nginx-switch)
- event: Event type (status_changed, operation_failed, etc.)
- trace_id: Operation trace ID
- duration_ms: Duration in milliseconds

High cardinality fields (OK in logs, NOT in metric labels):
- container_id: Managed container ID
- image: Image reference
"""

from enum import StrEnum


class LogEvent(StrEnum):
    """Standard log event types.

    Use these event types in the 'event' extra field for consistent
    log filtering and analysis.
    """

    # Lifecycle events
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"

    # Controller events
    STATUS_CHANGED = "status_changed"
    OPERATION_STARTED = "operation_started"
    OPERATION_SUCCESS = "operation_success"
    OPERATION_FAILED = "operation_failed"
    OPERATION_TIMEOUT = "operation_timeout"
    OPERATION_SLOW = "operation_slow"
    INVALID_TRANSITION = "invalid_transition"
    STATUS_ROLLED_BACK = "status_rolled_back"
    OPERATION_SUPERSEDED = "operation_superseded"

    # Container runtime events
    IMAGE_PULL_PROGRESS = "image_pull_progress"
    IMAGE_PULLED = "image_pulled"
    CONTAINER_CREATED = "container_created"
    CONTAINER_STARTED = "container_started"
    CONTAINER_STOPPED = "container_stopped"
    CONTAINER_KILLED = "container_killed"
    CONTAINER_REMOVED = "container_removed"

    # Cleanup events
    CLEANUP_STARTED = "cleanup_started"
    CLEANUP_COMPLETED = "cleanup_completed"
    CLEANUP_FAILED = "cleanup_failed"

    # Notification events
    OBSERVER_FAILED = "observer_failed"
    SSE_CONNECTED = "sse_connected"
    SSE_DISCONNECTED = "sse_disconnected"

    # Host events
    CONFIG_GENERATED = "config_generated"
    INTENT_FAILED = "intent_failed"
    REQUEST_FAILED = "request_failed"


class ErrorClass(StrEnum):
    """Error classification for structured error logging.

    Use these in the 'error_class' extra field to enable
    filtering by error type and setting up alerts.
    """

    TRANSIENT = "transient"  # Network timeout, daemon restart, 5xx
    PERMANENT = "permanent"  # Invalid input, not found, bad transition
    TIMEOUT = "timeout"  # Operation timeout
    UNKNOWN = "unknown"
