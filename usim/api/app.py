"""
FastAPI application factory.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from usim import __version__
from usim.api.auth import Authenticator
from usim.api.middleware import (
    setup_client_session,
    setup_compression,
    setup_cors,
    setup_request_size_limit,
    setup_security_headers,
)
from usim.api.observability import ObservabilityMiddleware, generate_request_id, get_request_id
from usim.api.routes import events as events_routes
from usim.api.routes import ui as ui_routes
from usim.api.routes import uploads as uploads_routes
from usim.api.state import AppState
from usim.config import Settings, get_settings
from usim.exceptions import HandlerError, UsimError, exception_to_http_status
from usim.logging_config import get_logger, log_event

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    discover: bool = True,
    authenticator: Authenticator | None = None,
) -> FastAPI:
    """
    Build the USIM application.

    ``authenticator`` maps a request to a user id (or None); see
    ``usim.api.auth``.

    Screens are discovered here rather than in the lifespan so that a
    ``TestClient`` used without a ``with`` block still sees them.
    """
    settings = settings or get_settings()
    state = AppState.from_settings(settings, authenticator=authenticator)
    if discover:
        state.resolver.discover()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        deleted, failed = state.uploads.cleanup_expired()
        log_event("usim_started", screens=len(state.resolver), uploads_deleted=deleted, uploads_failed=failed)
        yield

    app = FastAPI(
        title="USIM",
        version=__version__,
        docs_url="/docs" if settings.debug_mode else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.usim = state

    setup_compression(app)
    setup_cors(app, settings)
    setup_security_headers(app)
    setup_request_size_limit(app, settings)
    setup_client_session(app, settings)

    # Observability middleware (must be added last to wrap all others)
    app.add_middleware(ObservabilityMiddleware)

    @app.get("/health")
    def health(response: Response) -> dict:
        response.headers["Cache-Control"] = "no-store"
        return {"ok": True}

    app.include_router(ui_routes.router)
    app.include_router(events_routes.router)
    app.include_router(uploads_routes.router)

    def _error_headers(request: Request) -> dict[str, str]:
        # Ensure clients always get a request id for correlation, even on errors.
        rid = request.headers.get("x-request-id") or get_request_id() or generate_request_id()
        return {"X-Request-ID": rid, "Cache-Control": "no-store"}

    @app.exception_handler(UsimError)
    def _usim_error(request: Request, exc: UsimError) -> JSONResponse:
        headers = _error_headers(request)
        exc.request_id = headers["X-Request-ID"]
        status = exception_to_http_status(exc)
        if isinstance(exc, HandlerError):
            logger.error(
                "Handler failed",
                extra={"handler": exc.handler, "reason": exc.reason},
                exc_info=(type(exc), exc, exc.__traceback__),
            )
        elif status >= 500:
            exc.log()
        content = exc.to_dict()
        if status >= 500 and not settings.debug_mode:
            content.pop("detail", None)
        return JSONResponse(status_code=status, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "message": "Invalid request", "errors": errors},
            headers=_error_headers(request),
        )

    @app.exception_handler(Exception)
    def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        # ObservabilityMiddleware logs the exception; we still return a safe, stable envelope.
        _ = exc
        return JSONResponse(status_code=500, content={"error": "internal_error"}, headers=_error_headers(request))

    return app
