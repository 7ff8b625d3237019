"""Error classification for container runtime failures.

Classifies errors as transient (worth retrying later) or permanent.
The controller never retries on its own; the classification is logged
as 'error_class' and exported in failure metrics so the host can decide.

Usage:
    from nginxswitch.core.retryable import classify_error, is_retryable

    error_class = classify_error(exc)
"""

import asyncio

import httpx

from nginxswitch.core.errors import (
    ImagePullFailedError,
    InvalidTransitionError,
    OperationTimeoutError,
    RuntimeOperationFailedError,
    RuntimeUnavailableError,
)
from nginxswitch.core.logging_schema import ErrorClass

# =============================================================================
# httpx error classification
# =============================================================================

HTTPX_RETRYABLE = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.RemoteProtocolError,
)

HTTPX_NON_RETRYABLE = (
    httpx.InvalidURL,
    httpx.UnsupportedProtocol,
)


def is_httpx_retryable(exc: Exception) -> bool:
    """Check if httpx exception is retryable."""
    if isinstance(exc, HTTPX_RETRYABLE):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        # 4xx client errors (conflict, not found) - not retryable
        if 400 <= status < 500:
            return False
        # 5xx daemon errors - retryable
        if status >= 500:
            return True
    return False


# =============================================================================
# Unified classification
# =============================================================================


def classify_error(exc: BaseException) -> ErrorClass:
    """Classify error for logging and metrics.

    Args:
        exc: Exception to classify

    Returns:
        TIMEOUT: Operation exceeded its time bound
        TRANSIENT: Runtime unreachable or daemon-side failure
        PERMANENT: Request rejected (bad transition, conflict, pull failure)
        UNKNOWN: Cannot classify
    """
    if isinstance(exc, (asyncio.TimeoutError, OperationTimeoutError)):
        return ErrorClass.TIMEOUT

    if isinstance(exc, InvalidTransitionError):
        return ErrorClass.PERMANENT
    if isinstance(exc, RuntimeUnavailableError):
        return ErrorClass.TRANSIENT
    if isinstance(exc, ImagePullFailedError):
        return ErrorClass.PERMANENT

    # Wrapped runtime errors carry the original httpx error as __cause__
    if isinstance(exc, RuntimeOperationFailedError):
        if exc.__cause__ is not None and exc.__cause__ is not exc:
            return classify_error(exc.__cause__)
        return ErrorClass.UNKNOWN

    if isinstance(exc, httpx.HTTPStatusError):
        return ErrorClass.TRANSIENT if is_httpx_retryable(exc) else ErrorClass.PERMANENT
    if isinstance(exc, httpx.TimeoutException):
        return ErrorClass.TIMEOUT
    if isinstance(exc, HTTPX_RETRYABLE):
        return ErrorClass.TRANSIENT
    if isinstance(exc, HTTPX_NON_RETRYABLE):
        return ErrorClass.PERMANENT

    return ErrorClass.UNKNOWN


def is_retryable(exc: BaseException) -> bool:
    """Check if error is transient and the operation may be retried later."""
    return classify_error(exc) in (ErrorClass.TRANSIENT, ErrorClass.TIMEOUT)
