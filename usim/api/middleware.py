"""
Middleware and request helpers for the API.
"""

from __future__ import annotations

import re
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from usim.config import Settings

SESSION_HEADER = "x-session-id"

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{8,128}$")


def get_client_ip(request: Request) -> str:
    return (request.client.host if request.client else "") or ""


def valid_session_id(value: str | None) -> bool:
    return bool(value) and bool(_SESSION_ID_RE.match(value))


def setup_compression(app: FastAPI) -> None:
    app.add_middleware(GZipMiddleware, minimum_size=800)


def setup_cors(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(settings.cors_allow_origins),
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Session-ID", "X-USIM-Storage"],
        max_age=settings.cors_max_age,
    )


def setup_security_headers(app: FastAPI) -> None:
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        return response


def setup_request_size_limit(app: FastAPI, settings: Settings) -> None:
    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.max_request_bytes:
            return JSONResponse(
                status_code=413,
                content={"error": "payload_too_large", "message": "Payload too large"},
                headers={"Cache-Control": "no-store"},
            )
        return await call_next(request)


def setup_client_session(app: FastAPI, settings: Settings) -> None:
    """
    Give every client a stable session id.

    ``X-Session-ID`` wins over the ``ui_client_id`` cookie; when neither
    carries a usable id a new one is issued as an httponly cookie.
    """

    @app.middleware("http")
    async def client_session(request: Request, call_next):
        header_id = request.headers.get(SESSION_HEADER)
        cookie_id = request.cookies.get(settings.client_id_cookie)

        issued = None
        if valid_session_id(header_id):
            session_id = header_id
        elif valid_session_id(cookie_id):
            session_id = cookie_id
        else:
            session_id = issued = uuid.uuid4().hex

        request.state.session_id = session_id
        response = await call_next(request)
        if issued:
            response.set_cookie(
                settings.client_id_cookie,
                issued,
                max_age=settings.client_id_cookie_max_age,
                httponly=True,
                samesite="lax",
                secure=not settings.debug_mode and request.url.scheme == "https",
            )
        return response
