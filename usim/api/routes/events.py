"""
UI event route.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from usim.api.dependencies import get_state, get_ui_context
from usim.api.models import ErrorResponse, UIEventRequest
from usim.events import Ack

router = APIRouter(prefix="/api", tags=["events"])


@router.post(
    "/ui-event",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or unhandled event"},
        500: {"model": ErrorResponse, "description": "Handler failed"},
    },
)
def handle_ui_event(payload: UIEventRequest, request: Request, response: Response) -> dict:
    state = get_state(request)
    context = get_ui_context(request, storage_token=payload.usim)
    result = state.dispatcher.dispatch(payload.to_event(), context)
    response.headers["Cache-Control"] = "no-store"
    return result.to_dict() if isinstance(result, Ack) else result
