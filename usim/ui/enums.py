"""
Presentation enumerations used by screen builders.

Values cross the wire as their lowercase tag (``"left"``, ``"bold"``,
``"grid"``). ``Align("diagonal")`` raises ``ValueError``.
"""

from __future__ import annotations

from enum import Enum


class Align(str, Enum):
    """Horizontal alignment options for UI components."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class FontWeight(str, Enum):
    NORMAL = "normal"
    BOLD = "bold"
    LIGHT = "light"
    MEDIUM = "medium"
    SEMIBOLD = "semibold"


class LayoutType(str, Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"
    GRID = "grid"
    FLEX = "flex"
