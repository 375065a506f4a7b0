"""
Screen registry and resolver.

Screens are registered under a slash-separated identifier
(``admin/user-list``). Requests resolve against the registry only: the
identifier is validated segment by segment and looked up in a dict, so a
request path never reaches the filesystem or the import machinery.
Discovery walks ``screens_path`` once at startup and imports each module
under ``screens_namespace``.
"""

from __future__ import annotations

import importlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from usim.context import RequestContext
from usim.exceptions import ConfigurationError, ScreenNotFoundError, ValidationError
from usim.logging_config import PerformanceTracker, get_logger, log_event
from usim.screens.base import Screen, guard_handler
from usim.state import UIStateStore
from usim.storage import StorageSigner
from usim.ui.changes import UIChanges
from usim.ui.ids import offset_of, screen_offset

logger = get_logger(__name__)

MAX_IDENTIFIER_LENGTH = 200

_SEGMENT_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")
_PARENT_RE = re.compile(r"^[a-z][a-z0-9_-]{0,40}$")


def kebab(name: str) -> str:
    """``UserList`` -> ``user-list``, ``HTTPStatus`` -> ``http-status``, ``my_admin`` -> ``my-admin``."""
    name = re.sub(r"(?<=[A-Z])(?=[A-Z][a-z])", "-", name)
    name = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", name)
    return name.replace("_", "-").lower()


def normalize_identifier(raw: Any) -> str:
    """
    Validate a requested screen identifier and return its canonical form.

    Raises:
        ScreenNotFoundError: for empty, oversized or malformed identifiers,
            including any ``.``/``..`` segment, backslash or NUL byte.
    """
    if not isinstance(raw, str) or not raw:
        raise ScreenNotFoundError(str(raw))
    if len(raw) > MAX_IDENTIFIER_LENGTH or "\\" in raw or "\x00" in raw:
        raise ScreenNotFoundError(raw)

    segments = raw.strip("/").lower().replace("_", "-").split("/")
    for segment in segments:
        if not _SEGMENT_RE.match(segment):
            raise ScreenNotFoundError(raw)
    return "/".join(segments)


def validate_parent(parent: str) -> str:
    if not _PARENT_RE.match(parent or ""):
        raise ValidationError("invalid parent container", field="parent")
    return parent


@dataclass(frozen=True)
class ScreenDescriptor:
    """A registered screen: its identifier, class and id block."""

    name: str
    screen_class: type[Screen]
    id_offset: int

    @property
    def module(self) -> str:
        return self.screen_class.__module__

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "route": "/" + self.name,
            "label": self.screen_class.get_menu_label(),
            "icon": self.screen_class.menu_icon,
            "module": self.module,
        }


class ScreenResolver:
    """
    Maps identifiers to screens and renders them.

    Example:
        resolver = ScreenResolver("app.ui.screens", Path("app/ui/screens"), state=store, signer=signer)
        resolver.discover()
        descriptor = resolver.resolve("admin/dashboard")
        document = resolver.render(descriptor, context)
    """

    def __init__(
        self,
        namespace: str,
        screens_path: Path | str,
        *,
        state: UIStateStore,
        signer: StorageSigner,
        login_url: str = "/auth/login",
    ) -> None:
        self.namespace = namespace
        self.screens_path = Path(screens_path)
        self.state = state
        self.signer = signer
        self.login_url = login_url
        self._screens: dict[str, ScreenDescriptor] = {}
        self._by_offset: dict[int, ScreenDescriptor] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._screens

    def __len__(self) -> int:
        return len(self._screens)

    def names(self) -> list[str]:
        return sorted(self._screens)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, screen_class: type[Screen], name: str | None = None) -> ScreenDescriptor:
        if not (isinstance(screen_class, type) and issubclass(screen_class, Screen)):
            raise ConfigurationError(f"{screen_class!r} is not a Screen subclass")

        raw = name if name is not None else kebab(screen_class.__name__)
        try:
            identifier = normalize_identifier(raw)
        except ScreenNotFoundError as exc:
            raise ConfigurationError(f"Invalid screen identifier {raw!r}") from exc

        if identifier in self._screens:
            existing = self._screens[identifier]
            raise ConfigurationError(
                f"Screen {identifier!r} is already registered by {existing.module}.{existing.screen_class.__name__}"
            )

        offset = screen_offset(identifier)
        if offset in self._by_offset:
            clash = self._by_offset[offset].name
            raise ConfigurationError(f"Screens {clash!r} and {identifier!r} hash to the same id block")

        descriptor = ScreenDescriptor(identifier, screen_class, offset)
        self._screens[identifier] = descriptor
        self._by_offset[offset] = descriptor
        logger.debug("Registered screen", extra={"screen": identifier, "screen_class": screen_class.__name__})
        return descriptor

    def discover(self) -> int:
        """
        Import every module under ``screens_path`` and register its screens.

        A screen in ``<screens_path>/admin/user_list.py`` named ``UserList``
        registers as ``admin/user-list``. Modules and packages whose name
        starts with ``_`` are skipped.

        Returns:
            Number of screens registered by this call.
        """
        if not self.screens_path.is_dir():
            logger.warning("Screens path does not exist", extra={"screens_path": str(self.screens_path)})
            return 0

        count = 0
        with PerformanceTracker("screen_discovery", namespace=self.namespace):
            for file in sorted(self.screens_path.rglob("*.py")):
                parts = file.relative_to(self.screens_path).with_suffix("").parts
                if any(part.startswith("_") for part in parts):
                    continue

                module_name = ".".join((self.namespace, *parts))
                try:
                    module = importlib.import_module(module_name)
                except ImportError as exc:
                    raise ConfigurationError(
                        f"Cannot import screen module {module_name!r}",
                        setting_name="USIM_SCREENS_NAMESPACE",
                    ) from exc

                prefix = "/".join(kebab(part) for part in parts[:-1])
                for obj in list(vars(module).values()):
                    if not self._is_concrete_screen(obj, module.__name__):
                        continue
                    name = kebab(obj.__name__)
                    self.register(obj, f"{prefix}/{name}" if prefix else name)
                    count += 1

        log_event("screens_discovered", namespace=self.namespace, count=count)
        return count

    @staticmethod
    def _is_concrete_screen(obj: Any, module_name: str) -> bool:
        return (
            isinstance(obj, type)
            and issubclass(obj, Screen)
            and obj is not Screen
            and obj.__module__ == module_name
            and obj.build is not Screen.build
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, identifier: Any) -> ScreenDescriptor:
        canonical = normalize_identifier(identifier)
        descriptor = self._screens.get(canonical)
        if descriptor is None:
            raise ScreenNotFoundError(identifier)
        return descriptor

    def get(self, name: str) -> ScreenDescriptor | None:
        return self._screens.get(name)

    def resolve_component(self, component_id: int) -> ScreenDescriptor:
        """The screen whose id block contains ``component_id``."""
        try:
            cid = int(component_id)
        except (TypeError, ValueError):
            raise ScreenNotFoundError(str(component_id)) from None
        descriptor = self._by_offset.get(offset_of(cid)) if cid >= 0 else None
        if descriptor is None:
            raise ScreenNotFoundError(str(component_id))
        return descriptor

    def manifest(self) -> list[dict[str, Any]]:
        return [self._screens[name].to_dict() for name in self.names()]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def instantiate(self, descriptor: ScreenDescriptor, context: RequestContext, changes: UIChanges) -> Screen:
        return descriptor.screen_class(context, descriptor=descriptor, state=self.state, changes=changes)

    def render(
        self,
        descriptor: ScreenDescriptor,
        context: RequestContext,
        *,
        reset: bool = False,
        parent: str = "main",
    ) -> dict[str, Any]:
        """
        Produce the full UI document for a screen.

        Denied access yields a redirect or abort instruction instead of
        the screen. With ``reset`` the stored tree is discarded and the
        screen is rebuilt from ``build()``.
        """
        validate_parent(parent)

        with guard_handler(f"{descriptor.name}.authorize"):
            access = descriptor.screen_class.check_access(context, login_url=self.login_url)
        if not access.allowed:
            log_event("screen_access_denied", level="WARNING", screen=descriptor.name, action=access.action)
            return access.to_document()

        changes = UIChanges()
        changes.set_storage(context.storage)
        screen = self.instantiate(descriptor, context, changes)

        with PerformanceTracker("screen_render", screen=descriptor.name, reset=reset):
            with guard_handler(f"{descriptor.name}.build"):
                if reset:
                    screen.clear_stored_ui()
                screen.initialize(query_params=context.query_params, parent=parent)
                if reset:
                    screen.reset_state()
                screen.finalize(reload=True)

        return changes.document(self.signer)
