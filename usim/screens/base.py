"""
Base class for server-rendered screens.

A screen subclass implements ``build()`` to lay out its components and
``on_<event>`` methods to react to client events:

    class Dashboard(Screen):
        store_clicks: int = 0

        def build(self, root):
            root.add(ui.label("lbl_clicks", text="0"), ui.button("btn_inc", label="+", action="increment"))

        def on_increment(self, params):
            self.store_clicks += 1
            self.component("lbl_clicks").set(text=str(self.store_clicks))

The lifecycle around a handler is ``initialize()`` (load stored tree,
inject ``store_*`` values), the handler, then ``finalize()`` (store tree,
emit diff and storage).
"""

from __future__ import annotations

import copy
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Iterator

from usim.context import RequestContext
from usim.exceptions import HandlerError, UsimError
from usim.state import UIStateStore
from usim.ui import builder as ui
from usim.ui.changes import UIChanges
from usim.ui.components import Component
from usim.ui.differ import compare
from usim.ui.enums import LayoutType
from usim.ui.ids import IdAllocator

if TYPE_CHECKING:
    from usim.screens.registry import ScreenDescriptor

STORAGE_PREFIX = "store_"
_STORABLE_TYPES = (bool, int, float, str, list, dict)


@dataclass
class AccessResult:
    allowed: bool
    action: str | None = None
    params: dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        """Client instruction for a denied request."""
        if self.action == "redirect":
            return {"redirect": self.params["url"]}
        if self.action == "abort":
            return {"abort": {"code": self.params["code"], "message": self.params["message"]}}
        if self.action == "toast":
            return {"toast": {"message": self.params["message"], "type": self.params.get("type", "warning")}}
        return {"error": "Access denied"}


@contextmanager
def guard_handler(handler: str) -> Iterator[None]:
    """Re-raise non-USIM exceptions from screen/event code as ``HandlerError``."""
    try:
        yield
    except UsimError:
        raise
    except Exception as exc:
        raise HandlerError(handler=handler, reason=f"{type(exc).__name__}: {exc}") from exc


def _words(class_name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", class_name)


class Screen:
    """Base class for all screens."""

    menu_label: ClassVar[str | None] = None
    menu_icon: ClassVar[str | None] = None

    def __init__(
        self,
        context: RequestContext,
        *,
        descriptor: ScreenDescriptor,
        state: UIStateStore,
        changes: UIChanges,
    ) -> None:
        self.context = context
        self.identifier = descriptor.name
        self.id_offset = descriptor.id_offset
        self.state = state
        self.changes = changes
        self.query_params: dict[str, str] = {}
        self.root: Component | None = None
        self._old_ui: dict[str, dict[str, Any]] = {}

        # Per-instance copies so handlers can mutate list/dict defaults.
        for name in self.storage_fields():
            setattr(self, name, copy.deepcopy(getattr(type(self), name)))

    # ------------------------------------------------------------------
    # Access control
    # ------------------------------------------------------------------

    @classmethod
    def authorize(cls, context: RequestContext) -> bool:
        """Override to restrict access; see ``require_auth``."""
        return True

    @staticmethod
    def require_auth(context: RequestContext) -> bool:
        return context.is_authenticated

    @classmethod
    def check_access(cls, context: RequestContext, *, login_url: str = "/auth/login") -> AccessResult:
        if cls.authorize(context):
            return AccessResult(allowed=True)

        if not context.is_authenticated:
            return AccessResult(
                allowed=False,
                action="redirect",
                params={"url": login_url, "message": "Please login to access this page."},
            )

        return AccessResult(
            allowed=False,
            action="abort",
            params={"code": 403, "message": "Unauthorized: Insufficient permissions."},
        )

    @classmethod
    def get_menu_label(cls) -> str:
        return cls.menu_label or _words(cls.__name__)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def build(self, root: Component) -> None:
        raise NotImplementedError

    def post_load(self) -> None:
        """Runs after a full render, before the document is produced."""

    def reset_state(self) -> None:
        """Runs when a render is requested with ``reset``."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, *, query_params: dict[str, str] | None = None, parent: str = "main") -> None:
        self.root = self._load_root(parent)
        self._old_ui = self.root.to_json()
        self.query_params = dict(query_params or {})
        self.inject_storage(self.context.storage)

    def finalize(self, *, reload: bool = False) -> None:
        if self.root is None:
            raise RuntimeError("finalize() called before initialize()")

        if reload:
            self.post_load()

        new_ui = self.root.to_json()
        self.state.store(self.identifier, self.context.session_id, new_ui, parent=self.root.get("parent"))

        diff = compare({} if reload else self._old_ui, new_ui)
        for component_id, entry in diff.items():
            entry["_id"] = component_id
            if component_id in new_ui:
                entry["type"] = new_ui[component_id]["type"]
            self.changes.add({component_id: entry})

        self.changes.set_storage(self.storage_variables())

    def _load_root(self, parent: str) -> Component:
        cached = self.state.get(self.identifier, self.context.session_id)
        if cached is not None:
            return Component.from_json(cached)

        slug = self.identifier.replace("/", "_").replace("-", "_")
        root = ui.container(
            slug,
            layout=LayoutType.VERTICAL,
            padding=30,
            justify_content="center",
            align_items="center",
        )
        root.bind(IdAllocator(self.id_offset), parent=parent)
        self.build(root)
        self.state.store(self.identifier, self.context.session_id, root.to_json(), parent=parent)
        return root

    def clear_stored_ui(self) -> None:
        self.state.clear(self.identifier, self.context.session_id)

    def component(self, name: str) -> Component:
        """Look up a component by name; raises ``LookupError`` if absent."""
        if self.root is None:
            raise RuntimeError("screen is not initialized")
        found = self.root.find(name)
        if found is None:
            raise LookupError(f"Component {name!r} not found in screen {self.identifier!r}")
        return found

    # ------------------------------------------------------------------
    # Client storage
    # ------------------------------------------------------------------

    @classmethod
    def storage_fields(cls) -> list[str]:
        """Class attributes named ``store_*`` holding JSON-compatible defaults."""
        names: list[str] = []
        for klass in reversed(cls.__mro__):
            if klass is Screen or not issubclass(klass, Screen):
                continue
            for name, value in vars(klass).items():
                if name.startswith(STORAGE_PREFIX) and isinstance(value, _STORABLE_TYPES) and name not in names:
                    names.append(name)
        return names

    def inject_storage(self, storage: dict[str, Any]) -> None:
        for name in self.storage_fields():
            if name in storage:
                setattr(self, name, storage[name])

    def storage_variables(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.storage_fields()}

    # ------------------------------------------------------------------
    # Client instructions
    # ------------------------------------------------------------------

    def toast(
        self,
        message: str,
        type: str = "info",
        *,
        duration: int = 5000,
        position: str = "top-right",
    ) -> None:
        self.changes.add({
            "toast": {
                "message": message,
                "type": type,
                "duration": duration,
                "position": position,
            }
        })

    def redirect(self, url: str = "/") -> None:
        self.changes.add({"redirect": url})

    def abort(self, status_code: int, message: str = "") -> None:
        self.changes.add({"abort": {"status_code": status_code, "message": message}})

    def close_modal(self) -> None:
        self.changes.add({"action": "close_modal"})

    def update_modal(self, content: dict[str, Any]) -> None:
        self.changes.add({"update_modal": content})

    def on_close_modal(self, params: dict[str, Any]) -> None:
        self.close_modal()
