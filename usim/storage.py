"""
Signed client-side storage.

Screens keep small ``store_*`` values on the client between requests. The
values travel as ``base64(json).base64(hmac_sha256)`` so the server can
detect tampering without keeping them in the session.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

STORAGE_HEADER = "X-USIM-Storage"
STORAGE_FIELD = "usim"

# Values the JS client sends when it has nothing stored.
_EMPTY_MARKERS = {"", "null", "undefined"}


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


class StorageSigner:
    def __init__(self, key: str) -> None:
        if not key:
            raise ValueError("storage signing key must not be empty")
        self._key = key.encode("utf-8")

    def _sign(self, payload: str) -> str:
        digest = hmac.new(self._key, payload.encode("ascii"), hashlib.sha256).digest()
        return _b64encode(digest)

    def dumps(self, values: dict[str, Any]) -> str:
        payload = _b64encode(json.dumps(values, separators=(",", ":"), sort_keys=True).encode("utf-8"))
        return f"{payload}.{self._sign(payload)}"

    def loads(self, token: str | None) -> dict[str, Any]:
        """
        Decode a token; anything missing, tampered or malformed yields ``{}``.
        """
        if token is None or token.strip() in _EMPTY_MARKERS:
            return {}

        payload, _, signature = token.strip().partition(".")
        if not payload or not signature:
            logger.warning("Client storage token is malformed")
            return {}

        try:
            expected = self._sign(payload)
        except UnicodeEncodeError:
            logger.warning("Client storage token is malformed")
            return {}
        if not hmac.compare_digest(expected, signature):
            logger.warning("Client storage signature mismatch")
            return {}

        try:
            data = json.loads(_b64decode(payload).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning("Client storage payload could not be decoded: %s", e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Client storage payload is not an object")
            return {}
        return data
