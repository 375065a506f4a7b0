"""
Session-scoped UI state store.

Keeps the flattened component tree of every screen a session has opened,
plus which screen currently fills each parent container ("main", "modal").
Entries expire after ``ttl_seconds``; an expired screen is rebuilt from
scratch on the next request.
"""

from __future__ import annotations

import copy
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class _Entry:
    value: Any
    stored_at: float


class UIStateStore:
    """
    Thread-safe in-memory TTL store.

    Expired entries are swept every ``cleanup_every`` writes, together with
    the root-container map of any session that has no live screen left.

    Example:
        store = UIStateStore(ttl_seconds=1800)
        store.store("admin/dashboard", session_id, ui_json, parent="main")
        ui_json = store.get("admin/dashboard", session_id)
    """

    def __init__(self, ttl_seconds: int = 1800, *, clock=time.monotonic, cleanup_every: int = 500) -> None:
        self.ttl_seconds = ttl_seconds
        self.cleanup_every = cleanup_every
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._roots: dict[str, dict[str, str]] = {}
        self._writes = 0
        self._lock = threading.Lock()

    @staticmethod
    def _key(prefix: str, name: str, session_id: str) -> str:
        return f"{prefix}:{name}:{session_id}"

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.stored_at > self.ttl_seconds

    def _get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry, self._clock()):
                del self._entries[key]
                return None
            return copy.deepcopy(entry.value)

    def _put(self, key: str, value: Any, *, root: tuple[str, str, str] | None = None) -> None:
        with self._lock:
            self._entries[key] = _Entry(copy.deepcopy(value), self._clock())
            if root:
                session_id, parent, identifier = root
                self._roots.setdefault(session_id, {})[parent] = identifier
            self._writes += 1
            sweep = self.cleanup_every > 0 and self._writes % self.cleanup_every == 0
        if sweep:
            self.cleanup_expired()

    def _delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def _live_roots(self, session_id: str, now: float) -> dict[str, str]:
        """Root map of a session minus containers whose screen state is gone. Caller holds the lock."""
        roots = self._roots.get(session_id)
        if not roots:
            self._roots.pop(session_id, None)
            return {}
        for parent, identifier in list(roots.items()):
            entry = self._entries.get(self._key("ui_state", identifier, session_id))
            if entry is None or self._expired(entry, now):
                del roots[parent]
        if not roots:
            del self._roots[session_id]
        return roots

    # ------------------------------------------------------------------
    # Screen state
    # ------------------------------------------------------------------

    def get(self, identifier: str, session_id: str) -> Optional[dict[str, dict[str, Any]]]:
        return self._get(self._key("ui_state", identifier, session_id))

    def store(self, identifier: str, session_id: str, ui: dict[str, dict[str, Any]], *, parent: str | None = None) -> bool:
        if not ui:
            return False
        root = (session_id, parent, identifier) if parent else None
        self._put(self._key("ui_state", identifier, session_id), ui, root=root)
        return True

    def clear(self, identifier: str, session_id: str) -> bool:
        return self._delete(self._key("ui_state", identifier, session_id))

    def root_components(self, session_id: str) -> dict[str, str]:
        """Parent container name -> screen identifier for this session."""
        with self._lock:
            return dict(self._live_roots(session_id, self._clock()))

    # ------------------------------------------------------------------
    # Key/value helpers
    # ------------------------------------------------------------------

    def store_key_value(self, key: str, session_id: str, value: Any) -> None:
        self._put(self._key("ui_key", key, session_id), value)

    def get_key_value(self, key: str, session_id: str) -> Any:
        return self._get(self._key("ui_key", key, session_id))

    def clear_key_value(self, key: str, session_id: str) -> bool:
        return self._delete(self._key("ui_key", key, session_id))

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def cleanup_expired(self) -> int:
        """Drop expired entries and stale root maps; returns how many entries were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if self._expired(e, now)]
            for key in expired:
                del self._entries[key]
            for session_id in list(self._roots):
                self._live_roots(session_id, now)
        return len(expired)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"entries": len(self._entries), "sessions": len(self._roots)}
