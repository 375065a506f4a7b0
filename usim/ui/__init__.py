"""
UI model: components, ids, diffing and change collection.
"""

from __future__ import annotations

from usim.ui.changes import UIChanges
from usim.ui.components import Component, MenuDropdown, serialize_value
from usim.ui.differ import compare
from usim.ui.enums import Align, FontWeight, LayoutType
from usim.ui.ids import ID_BLOCK, IdAllocator, offset_of, screen_offset

__all__ = [
    "Align",
    "Component",
    "FontWeight",
    "ID_BLOCK",
    "IdAllocator",
    "LayoutType",
    "MenuDropdown",
    "UIChanges",
    "compare",
    "offset_of",
    "screen_offset",
    "serialize_value",
]
