"""
Observability utilities for API request tracking.

Provides request ID generation and middleware for logging correlation
with structured JSON logging.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from usim.api.middleware import get_client_ip
from usim.exceptions import UsimError, handle_exception
from usim.logging_config import LogContext, get_logger

# Context variables for request-scoped data (async-safe)
_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
_request_start_ctx: ContextVar[float | None] = ContextVar("request_start", default=None)

logger = get_logger(__name__)

SENSITIVE_PARAMS = {"api_key", "token", "password", "secret", "auth", "usim"}


def generate_request_id() -> str:
    """
    Generate a unique request ID for tracing.

    Uses UUID4 for uniqueness. Format: 8-4-4-4-12 hexadecimal characters.
    """
    return str(uuid.uuid4())


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return _request_id_ctx.get()


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request observability and tracing.

    - Generates a request ID (or uses the X-Request-ID header)
    - Tracks request duration and flags slow requests
    - Logs request start, completion and failure as structured events
    - Echoes the request ID in the response headers

    Log format:
        {
            "timestamp": "2026-01-03T10:00:00Z",
            "level": "INFO",
            "request_id": "abc123",
            "message": "request_completed",
            "path": "/api/ui/admin/dashboard",
            "duration_ms": 12.5
        }
    """

    def __init__(self, app: ASGIApp, *, slow_request_threshold_ms: float = 1000.0) -> None:
        super().__init__(app)
        self._logger = get_logger(__name__)
        self.slow_request_threshold_ms = slow_request_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or generate_request_id()
        client_ip = get_client_ip(request)

        _request_id_ctx.set(request_id)
        _request_start_ctx.set(time.perf_counter())

        LogContext.clear()
        LogContext.set_request_id(request_id)
        LogContext.set("client_ip", client_ip)
        LogContext.set("endpoint", str(request.url.path))

        request_meta: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "user_agent": request.headers.get("user-agent"),
        }
        if request.url.query:
            request_meta["query_params"] = self._sanitize_query_params(str(request.url.query))

        self._logger.info("request_started", extra=request_meta)

        try:
            response = await call_next(request)
        except Exception as exc:
            error_meta: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "error_type": type(exc).__name__,
                "duration_ms": self._elapsed_ms(),
            }
            if isinstance(exc, UsimError):
                exc.request_id = request_id
                error_meta["error_code"] = exc.error_code
                exc.log()
            else:
                error_meta["error_detail"] = handle_exception(exc, request_id=request_id).get("detail")
            self._logger.error("request_failed", extra=error_meta)
            raise

        duration_ms = self._elapsed_ms()
        response.headers["X-Request-ID"] = request_id

        response_meta: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        if duration_ms >= self.slow_request_threshold_ms:
            response_meta["slow_request"] = True
            self._logger.warning("request_completed_slow", extra=response_meta)
        else:
            self._logger.info("request_completed", extra=response_meta)
        return response

    @staticmethod
    def _elapsed_ms() -> float:
        start = _request_start_ctx.get()
        return round((time.perf_counter() - start) * 1000, 2) if start else 0.0

    @staticmethod
    def _sanitize_query_params(query: str) -> str:
        """Redact sensitive values (including signed client storage) from a query string."""
        sanitized = []
        for part in query.split("&"):
            if "=" in part:
                key, _ = part.split("=", 1)
                if key.lower() in SENSITIVE_PARAMS:
                    sanitized.append(f"{key}=***REDACTED***")
                    continue
            sanitized.append(part)
        return "&".join(sanitized)
