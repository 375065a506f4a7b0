"""
Diff two flattened UI states.
"""

from __future__ import annotations

from typing import Any

_MISSING = object()


def compare(old: dict[str, dict[str, Any]] | None, new: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """
    Return per-component changes needed to turn ``old`` into ``new``.

    New components are emitted in full, changed components carry only the
    keys whose values differ (removed keys map to ``None``), and components
    missing from ``new`` are emitted as ``{"_removed": True}``.
    """
    old = old or {}
    diff: dict[str, dict[str, Any]] = {}

    for component_id, entry in new.items():
        previous = old.get(component_id)
        if previous is None:
            diff[component_id] = dict(entry)
            continue

        changes = {}
        for key, value in entry.items():
            if previous.get(key, _MISSING) != value:
                changes[key] = value
        for key in previous.keys() - entry.keys():
            changes[key] = None
        if changes:
            diff[component_id] = changes

    for component_id in old.keys() - new.keys():
        diff[component_id] = {"_removed": True}

    return diff
