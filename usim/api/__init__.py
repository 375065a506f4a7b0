"""
USIM HTTP API package.

Public exports:
- create_app: FastAPI factory (``uvicorn --factory usim.api:create_app``)
- AppState: app.state container used by tests
"""

from __future__ import annotations

from usim.api.app import create_app
from usim.api.state import AppState

__all__ = ["AppState", "create_app"]
