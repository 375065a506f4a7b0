"""
Request authentication hooks.

The API never decides who a user is on its own. An application passes an
``Authenticator`` to ``create_app``; without one every request is anonymous,
unless ``Settings.trust_user_header`` is on, in which case the ``X-User-ID``
header set by a trusted upstream proxy is used.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from fastapi import Request

from usim.config import Settings

USER_HEADER = "x-user-id"

Authenticator = Callable[[Request], Optional[str]]

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_.@-]{1,128}$")


def anonymous(request: Request) -> Optional[str]:
    return None


def user_header(request: Request) -> Optional[str]:
    """User id from ``X-User-ID``; only safe behind a proxy that overwrites the header."""
    value = (request.headers.get(USER_HEADER) or "").strip()
    return value if _USER_ID_RE.match(value) else None


def default_authenticator(settings: Settings) -> Authenticator:
    return user_header if settings.trust_user_header else anonymous
