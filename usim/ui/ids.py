"""
Deterministic component ids.

Every screen owns a block of ``ID_BLOCK`` ids starting at a stable offset
derived from its identifier. Named components hash into the upper half of
the block, unnamed ones are numbered in build order in the lower half, so
rebuilding a screen yields the same ids.
"""

from __future__ import annotations

import zlib

ID_BLOCK = 10_000
NAMED_BASE = 5_000
OFFSET_BUCKETS = 100_000


def screen_offset(identifier: str) -> int:
    """Stable id offset for a screen identifier."""
    return (zlib.crc32(identifier.encode("utf-8")) % OFFSET_BUCKETS) * ID_BLOCK


def offset_of(component_id: int) -> int:
    """Offset of the block a component id belongs to."""
    return component_id - component_id % ID_BLOCK


class IdAllocator:
    """Hands out component ids within one screen's block."""

    def __init__(self, offset: int) -> None:
        if offset % ID_BLOCK:
            raise ValueError(f"offset {offset} is not aligned to {ID_BLOCK}")
        self.offset = offset
        self._counter = 0
        self._issued: set[int] = set()

    def root_id(self) -> int:
        self._issued.add(self.offset)
        return self.offset

    def allocate(self, name: str | None = None) -> int:
        if name:
            slot = zlib.crc32(name.encode("utf-8")) % NAMED_BASE
            for step in range(NAMED_BASE):
                candidate = self.offset + NAMED_BASE + (slot + step) % NAMED_BASE
                if candidate not in self._issued:
                    self._issued.add(candidate)
                    return candidate
            raise ValueError("named component id space exhausted")

        while True:
            self._counter += 1
            if self._counter >= NAMED_BASE:
                raise ValueError("component id space exhausted")
            candidate = self.offset + self._counter
            if candidate not in self._issued:
                self._issued.add(candidate)
                return candidate

    def reserve(self, component_ids) -> None:
        """Mark ids restored from stored state as taken."""
        for cid in component_ids:
            self._issued.add(cid)
            local = cid - self.offset
            if 0 < local < NAMED_BASE:
                self._counter = max(self._counter, local)
