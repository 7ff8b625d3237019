"""Error handling module for nginx-switch.

This module defines error codes, exception classes, and response models.

Error Response Format:
{
    "error": {
        "code": "INVALID_TRANSITION",
        "message": "Cannot stop while stopped"
    }
}

Usage:
    from nginxswitch.core.errors import InvalidTransitionError

    raise InvalidTransitionError("stop", NginxStatus.STOPPED)
"""

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Error codes."""

    INVALID_TRANSITION = "INVALID_TRANSITION"
    RUNTIME_UNAVAILABLE = "RUNTIME_UNAVAILABLE"
    RUNTIME_OPERATION_FAILED = "RUNTIME_OPERATION_FAILED"
    IMAGE_PULL_FAILED = "IMAGE_PULL_FAILED"
    OPERATION_TIMEOUT = "OPERATION_TIMEOUT"


class ErrorDetail(BaseModel):
    """Error detail containing code and message."""

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Error response format."""

    error: ErrorDetail


class NginxSwitchError(Exception):
    """Base exception for nginx-switch.

    All nginx-switch specific exceptions should inherit from this class.
    This enables centralized exception handling in FastAPI.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
        status_code: HTTP status code to return
    """

    def __init__(self, code: ErrorCode, message: str, status_code: int) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(
            error=ErrorDetail(code=self.code.value, message=self.message)
        )


class InvalidTransitionError(NginxSwitchError):
    """409 Conflict - Operation not allowed from the current status.

    Raised synchronously by the guard, before any side effect.
    """

    def __init__(self, operation: str, status: str, message: str | None = None) -> None:
        self.operation = operation
        self.status = status
        super().__init__(
            ErrorCode.INVALID_TRANSITION,
            message or f"Cannot {operation} while {status}",
            409,
        )


class RuntimeUnavailableError(NginxSwitchError):
    """503 Service Unavailable - Container runtime cannot be reached."""

    def __init__(self, message: str = "Container runtime unavailable") -> None:
        super().__init__(ErrorCode.RUNTIME_UNAVAILABLE, message, 503)


class RuntimeOperationFailedError(NginxSwitchError):
    """502 Bad Gateway - Container runtime rejected or failed an operation."""

    def __init__(
        self,
        message: str = "Container runtime operation failed",
        code: ErrorCode = ErrorCode.RUNTIME_OPERATION_FAILED,
    ) -> None:
        super().__init__(code, message, 502)


class ImagePullFailedError(RuntimeOperationFailedError):
    """502 Bad Gateway - Image could not be pulled."""

    def __init__(self, image_ref: str, reason: str = "") -> None:
        self.image_ref = image_ref
        message = f"Failed to pull image {image_ref}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, code=ErrorCode.IMAGE_PULL_FAILED)


class OperationTimeoutError(NginxSwitchError):
    """504 Gateway Timeout - Runtime call did not complete in time."""

    def __init__(self, operation: str, timeout_s: float) -> None:
        self.operation = operation
        self.timeout_s = timeout_s
        super().__init__(
            ErrorCode.OPERATION_TIMEOUT,
            f"{operation} timed out after {timeout_s:g}s",
            504,
        )
