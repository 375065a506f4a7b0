"""
Pydantic models for API requests and responses.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from usim.events import UIEvent


# =============================================================================
# Request Models
# =============================================================================


class UIEventRequest(BaseModel):
    """
    A client event.

    ``action`` names the handler; when it is absent ``event`` does. The
    client usually sends both (``event="click"``, ``action="submit_form"``).
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "component_id": 123455012,
                    "event": "click",
                    "action": "increment",
                    "parameters": {"step": 1},
                }
            ]
        }
    )

    event: str = Field(default="", max_length=100, description="Event type or name")
    action: str | None = Field(default=None, max_length=100, description="Handler name")
    screen: str | None = Field(default=None, max_length=200, description="Target screen identifier")
    component_id: int | None = Field(default=None, ge=0, description="Id of the component that fired the event")
    parameters: dict[str, Any] = Field(default_factory=dict, description="Event parameters")
    usim: str | None = Field(default=None, max_length=100_000, description="Signed client storage")

    @model_validator(mode="after")
    def _require_name(self) -> UIEventRequest:
        if not (self.action or self.event):
            raise ValueError("either 'event' or 'action' is required")
        return self

    def to_event(self) -> UIEvent:
        return UIEvent(
            event_name=self.action or self.event,
            params=dict(self.parameters),
            screen=self.screen,
            component_id=self.component_id,
        )


# =============================================================================
# Response Models
# =============================================================================


class UploadResponse(BaseModel):
    id: str
    path: str
    url: str
    component_id: str
    original_filename: str
    stored_filename: str
    size: int
    size_formatted: str
    mime_type: str
    type: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    expires_at: str


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None
    detail: str | None = None
    request_id: str | None = None
