"""
Centralized exception hierarchy for USIM.

Provides specific exception types for the screen, event and upload
surfaces so that routes can map them to stable HTTP responses.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Base Exception
# =============================================================================


class UsimError(RuntimeError):
    """
    Base exception for all USIM errors.

    Attributes:
        message: Human-readable error message.
        detail: Additional error details (optional).
        error_code: Machine-readable error code.
        request_id: Unique identifier for the request (optional).
    """

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.error_code = error_code or self._default_error_code()
        self.request_id = request_id or self._generate_request_id()

    def _default_error_code(self) -> str:
        """Generate default error code from class name."""
        return f"usim_{self.__class__.__name__.lower()}"

    def _generate_request_id(self) -> str:
        """Generate request ID if not provided."""
        return str(uuid.uuid4())

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        if self.request_id:
            result["request_id"] = self.request_id
        return result

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message

    def log(self, level: int = logging.ERROR) -> None:
        """Log the exception with structured data."""
        logger.log(
            level,
            self.message,
            extra={
                "error_code": self.error_code,
                "detail": self.detail,
                "request_id": self.request_id,
                "exception_type": self.__class__.__name__,
            },
        )


# =============================================================================
# Client Errors
# =============================================================================


class ValidationError(UsimError):
    """
    Raised when input validation fails.

    HTTP Status: 400 Bad Request
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.field = field
        full_message = f"{field}: {message}" if field else message
        super().__init__(
            full_message,
            detail=detail,
            error_code="validation_error",
            request_id=request_id,
        )


class UnknownEventError(UsimError):
    """
    Raised when no handler is registered for an event name.

    HTTP Status: 400 Bad Request
    """

    def __init__(
        self,
        event_name: str,
        *,
        screen: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.event_name = event_name
        self.screen = screen
        detail = f"No handler for {event_name!r}"
        if screen:
            detail += f" on screen {screen!r}"
        super().__init__(
            "Unknown event",
            detail=detail,
            error_code="unknown_event",
            request_id=request_id,
        )


class PayloadTooLargeError(ValidationError):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(
        self,
        *,
        max_size_mb: float,
        request_id: str | None = None,
    ) -> None:
        self.max_size_mb = max_size_mb
        super().__init__(
            message=f"File too large (max {max_size_mb:g}MB)",
            field="file",
            request_id=request_id,
        )
        self.error_code = "payload_too_large"


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(UsimError):
    """
    Raised when a requested resource is not found.

    HTTP Status: 404 Not Found
    """

    def __init__(
        self,
        message: str,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        detail = None
        if resource_type and resource_id:
            detail = f"{resource_type} with ID {resource_id!r} not found"
        super().__init__(
            message,
            detail=detail,
            error_code="not_found",
            request_id=request_id,
        )


class ScreenNotFoundError(NotFoundError):
    """Raised when a screen identifier does not resolve to a registered screen."""

    def __init__(
        self,
        screen: str,
        *,
        request_id: str | None = None,
    ) -> None:
        # Keep the echoed identifier short; it comes straight from the URL.
        shown = screen if len(screen) <= 200 else screen[:200] + "..."
        super().__init__(
            message="Screen not found",
            resource_type="Screen",
            resource_id=shown,
            request_id=request_id,
        )
        self.screen = screen
        self.error_code = "screen_not_found"


class UploadNotFoundError(NotFoundError):
    """Raised when an upload id or file path is missing or not owned by the session."""

    def __init__(
        self,
        upload_id: str,
        *,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message="File not found or access denied",
            resource_type="Upload",
            resource_id=upload_id,
            request_id=request_id,
        )
        self.upload_id = upload_id
        self.error_code = "upload_not_found"


# =============================================================================
# Server Errors
# =============================================================================


class HandlerError(UsimError):
    """
    Raised when a screen or event handler fails.

    The original exception is kept as ``__cause__``.

    HTTP Status: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Handler failed",
        *,
        handler: str | None = None,
        reason: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.handler = handler
        self.reason = reason
        detail_parts = []
        if handler:
            detail_parts.append(f"Handler: {handler}")
        if reason:
            detail_parts.append(f"Reason: {reason}")
        detail = "; ".join(detail_parts) if detail_parts else None
        super().__init__(
            message,
            detail=detail,
            error_code="handler_error",
            request_id=request_id,
        )


class ConfigurationError(UsimError):
    """
    Raised when configuration is invalid or missing.

    HTTP Status: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str,
        *,
        setting_name: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.setting_name = setting_name
        detail = f"Missing or invalid setting: {setting_name}" if setting_name else None
        super().__init__(
            message,
            detail=detail,
            error_code="configuration_error",
            request_id=request_id,
        )


class UploadStorageError(UsimError):
    """
    Raised when the upload store fails to read or write.

    HTTP Status: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Upload storage operation failed",
        *,
        operation: str | None = None,
        path: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.path = path
        detail_parts = []
        if operation:
            detail_parts.append(f"Operation: {operation}")
        if path:
            detail_parts.append(f"Path: {path}")
        detail = "; ".join(detail_parts) if detail_parts else None
        super().__init__(
            message,
            detail=detail,
            error_code="upload_storage_error",
            request_id=request_id,
        )


# =============================================================================
# HTTP Exception Helpers
# =============================================================================


def exception_to_http_status(exc: UsimError) -> int:
    """
    Map exception to appropriate HTTP status code.

    Subclasses are listed before their bases so the most specific
    mapping wins.
    """
    status_map = {
        PayloadTooLargeError: 413,
        ValidationError: 400,
        UnknownEventError: 400,
        ScreenNotFoundError: 404,
        UploadNotFoundError: 404,
        NotFoundError: 404,
        HandlerError: 500,
        ConfigurationError: 500,
        UploadStorageError: 500,
    }

    for exc_class, status in status_map.items():
        if isinstance(exc, exc_class):
            return status
    return 500


def handle_exception(exc: Exception, request_id: str | None = None) -> dict[str, Any]:
    """
    Convert any exception to standardized error response.

    Args:
        exc: The exception to handle.
        request_id: Request ID for tracing.

    Returns:
        Dictionary with error details.
    """
    if isinstance(exc, UsimError):
        exc.request_id = request_id or exc.request_id
        return exc.to_dict()

    if isinstance(exc, FileNotFoundError):
        return NotFoundError("Resource not found", request_id=request_id).to_dict()

    logger.error(
        "Unhandled exception",
        extra={
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "request_id": request_id,
        },
        exc_info=True,
    )
    return UsimError(
        "An unexpected error occurred",
        detail=str(exc) if __debug__ else None,
        request_id=request_id,
    ).to_dict()
