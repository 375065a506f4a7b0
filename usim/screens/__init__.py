"""Screens: base class, registry and resolver."""

from usim.screens.base import AccessResult, Screen, guard_handler
from usim.screens.registry import ScreenDescriptor, ScreenResolver, kebab, normalize_identifier

__all__ = [
    "AccessResult",
    "Screen",
    "ScreenDescriptor",
    "ScreenResolver",
    "guard_handler",
    "kebab",
    "normalize_identifier",
]
