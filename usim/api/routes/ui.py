"""
Screen rendering routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from usim.api.dependencies import get_state, get_ui_context
from usim.api.models import ErrorResponse

router = APIRouter(prefix="/api", tags=["ui"])


@router.get("/ui-screens")
def list_screens(request: Request, response: Response) -> dict:
    response.headers["Cache-Control"] = "no-store"
    return {"screens": get_state(request).resolver.manifest()}


@router.get(
    "/ui/{screen:path}",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid parent container"},
        404: {"model": ErrorResponse, "description": "Unknown or malformed screen identifier"},
    },
)
def show_screen(
    screen: str,
    request: Request,
    response: Response,
    reset: bool = Query(default=False),
    parent: str = Query(default="main", max_length=41),
) -> dict:
    state = get_state(request)
    descriptor = state.resolver.resolve(screen)
    document = state.resolver.render(descriptor, get_ui_context(request), reset=reset, parent=parent)
    response.headers["Cache-Control"] = "no-store"
    return document
