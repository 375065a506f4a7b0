"""
Dependency helpers for API routes.

These are kept as simple functions (not FastAPI Depends) because the app
keeps its stateful components on request.app.state.
"""

from __future__ import annotations

import uuid

from fastapi import Request

from usim.api.middleware import valid_session_id
from usim.api.state import AppState
from usim.context import RequestContext
from usim.storage import STORAGE_FIELD, STORAGE_HEADER

ROUTE_PARAM_PREFIX = "route_"


def get_state(request: Request) -> AppState:
    return request.app.state.usim


def get_session_id(request: Request) -> str:
    session_id = getattr(request.state, "session_id", None)
    if not valid_session_id(session_id):
        session_id = uuid.uuid4().hex
        request.state.session_id = session_id
    return session_id


def get_ui_context(request: Request, *, storage_token: str | None = None) -> RequestContext:
    """
    Build the per-request context: session, user, decoded client storage
    and query parameters (``route_*`` ones split out as route params).
    """
    state = get_state(request)
    token = storage_token or request.headers.get(STORAGE_HEADER) or request.query_params.get(STORAGE_FIELD)

    query: dict[str, str] = {}
    route: dict[str, str] = {}
    for key, value in request.query_params.items():
        if key == STORAGE_FIELD:
            continue
        if key.startswith(ROUTE_PARAM_PREFIX):
            route[key[len(ROUTE_PARAM_PREFIX):]] = value
        else:
            query[key] = value

    return RequestContext(
        session_id=get_session_id(request),
        user_id=state.authenticator(request),
        storage=state.signer.loads(token) if token else {},
        query_params=query,
        route_params=route,
    )
