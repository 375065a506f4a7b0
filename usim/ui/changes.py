"""
Per-request collector of UI changes.
"""

from __future__ import annotations

from typing import Any

from usim.storage import StorageSigner


class UIChanges:
    """
    Accumulates diff entries, control messages (toast, redirect, ...) and
    storage variables produced while handling one request.
    """

    def __init__(self) -> None:
        self._changes: dict[str, Any] = {}
        self._storage: dict[str, Any] = {}

    def add(self, change: dict[str, Any]) -> None:
        """Add entries; a key that is already present keeps its first value."""
        for key, value in change.items():
            self._changes.setdefault(key, value)

    def set_storage(self, values: dict[str, Any]) -> None:
        self._storage.update(values)

    @property
    def storage(self) -> dict[str, Any]:
        return dict(self._storage)

    def is_empty(self) -> bool:
        return not self._changes

    def document(self, signer: StorageSigner) -> dict[str, Any]:
        """Build the response document, including signed client storage."""
        doc = dict(self._changes)
        doc["storage"] = {"usim": signer.dumps(self._storage)}
        return doc
