"""
Component tree for server-rendered screens.

A screen builds a tree of ``Component`` objects under a root container.
The tree flattens to ``{id: {type, parent, ...config}}`` for storage and
transport and is rebuilt from that form on the next event.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterator

from usim.ui.ids import IdAllocator, offset_of


def serialize_value(value: Any) -> Any:
    """Convert enum members (also nested in lists/dicts) to their wire tag."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    return value


class Component:
    """A node in a screen's UI tree."""

    def __init__(self, kind: str, name: str | None = None, **config: Any) -> None:
        self.kind = kind
        self.name = name
        self.id: int | None = None
        self.parent: Component | None = None
        self.children: list[Component] = []
        self.config: dict[str, Any] = {"visible": True}
        self.config.update(config)
        self._allocator: IdAllocator | None = None

    def __repr__(self) -> str:
        return f"Component(kind={self.kind!r}, name={self.name!r}, id={self.id!r})"

    def __getitem__(self, key: str) -> Any:
        return self.config[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.config[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def set(self, **config: Any) -> Component:
        self.config.update(config)
        return self

    def visible(self, flag: bool = True) -> Component:
        self.config["visible"] = flag
        return self

    @property
    def is_container(self) -> bool:
        return self.kind in ("container", "card", "form", "table")

    @property
    def is_root(self) -> bool:
        return bool(self.config.get("root"))

    # ------------------------------------------------------------------
    # Tree operations
    # ------------------------------------------------------------------

    def add(self, *children: Component) -> Component:
        for child in children:
            if child.parent is not None:
                raise ValueError(f"{child!r} already has a parent")
            child.parent = self
            self.children.append(child)
            allocator = self._root_allocator()
            if allocator is not None:
                child._assign_ids(allocator)
        return self

    def remove(self, child: Component) -> None:
        self.children.remove(child)
        child.parent = None

    def clear(self) -> None:
        for child in list(self.children):
            self.remove(child)

    def walk(self) -> Iterator[Component]:
        """Depth-first, parents before children."""
        yield self
        for child in self.children:
            yield from child.walk()

    def find(self, name: str) -> Component | None:
        for component in self.walk():
            if component.name == name:
                return component
        return None

    def find_by_id(self, component_id: int) -> Component | None:
        for component in self.walk():
            if component.id == component_id:
                return component
        return None

    def bind(self, allocator: IdAllocator, *, parent: str = "main") -> Component:
        """Make this component the root of a screen and assign ids to the tree."""
        self._allocator = allocator
        self.config["root"] = True
        self.config["parent"] = parent
        self.id = allocator.root_id()
        for child in self.children:
            child._assign_ids(allocator)
        return self

    def _root_allocator(self) -> IdAllocator | None:
        node: Component | None = self
        while node is not None:
            if node._allocator is not None:
                return node._allocator
            node = node.parent
        return None

    def _assign_ids(self, allocator: IdAllocator) -> None:
        if self.id is None:
            self.id = allocator.allocate(self.name)
        for child in self.children:
            child._assign_ids(allocator)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_entry(self) -> dict[str, Any]:
        entry: dict[str, Any] = {"type": self.kind}
        if self.name is not None:
            entry["name"] = self.name
        for key, value in self.config.items():
            entry[key] = serialize_value(value)
        if self.parent is not None:
            entry["parent"] = str(self.parent.id)
        return entry

    def to_json(self) -> dict[str, dict[str, Any]]:
        """Flatten the tree to ``{str(id): entry}``; ids must be assigned."""
        flat: dict[str, dict[str, Any]] = {}
        for component in self.walk():
            if component.id is None:
                raise ValueError(f"{component!r} has no id; bind the root first")
            flat[str(component.id)] = component.to_entry()
        return flat

    @classmethod
    def from_json(cls, flat: dict[str, dict[str, Any]]) -> Component:
        """Rebuild a tree from its flattened form and return the root."""
        components: dict[str, Component] = {}
        root: Component | None = None

        for key, entry in flat.items():
            config = dict(entry)
            kind = config.pop("type", None)
            if not kind:
                raise ValueError(f"component {key!r} has no type")
            name = config.pop("name", None)
            component = COMPONENT_CLASSES.get(kind, cls)(kind, name)
            component.config = config
            component.id = int(key)
            components[key] = component
            if config.get("root"):
                root = component

        if root is None:
            raise ValueError("no root container found in UI state")

        for key, component in components.items():
            if component is root:
                continue
            parent_key = component.config.pop("parent", None)
            if parent_key is None:
                raise ValueError(f"component {key!r} has no parent defined")
            parent = components.get(str(parent_key))
            if parent is None:
                continue
            component.parent = parent
            parent.children.append(component)

        allocator = IdAllocator(offset_of(root.id))
        allocator.reserve(c.id for c in components.values())
        root._allocator = allocator
        return root


class MenuDropdown(Component):
    """
    Dropdown menu; items live in the ``items`` config list.

    Every item method takes ``visible``; a hidden item is simply not added,
    so the rendered menu only lists what the current user may use.
    """

    def __init__(self, kind: str = "menu_dropdown", name: str | None = None, **config: Any) -> None:
        super().__init__(kind, name, **config)
        self.config.setdefault("items", [])

    @property
    def items(self) -> list[dict[str, Any]]:
        return self.config["items"]

    def item(
        self,
        label: str,
        action: str | None = None,
        params: dict[str, Any] | None = None,
        icon: str | None = None,
        *,
        visible: bool = True,
    ) -> MenuDropdown:
        """An entry that sends ``action`` as a UI event when chosen."""
        if visible:
            self.items.append({"label": label, "action": action, "params": dict(params or {}), "icon": icon})
        return self

    def link(self, label: str, url: str, icon: str | None = None, *, visible: bool = True) -> MenuDropdown:
        if visible:
            self.items.append({"label": label, "url": url, "icon": icon})
        return self

    def separator(self, *, visible: bool = True) -> MenuDropdown:
        if visible:
            self.items.append({"type": "separator"})
        return self

    def submenu(
        self,
        label: str,
        build: Callable[[MenuDropdown], Any],
        icon: str | None = None,
        *,
        visible: bool = True,
    ) -> MenuDropdown:
        """Nested menu; ``build`` receives a fresh menu to fill in."""
        if visible:
            nested = MenuDropdown(name=f"{label}_submenu")
            build(nested)
            self.items.append({"label": label, "icon": icon, "submenu": nested.items})
        return self

    def screen(self, descriptor: Any, context: Any, *, label: str | None = None, icon: str | None = None) -> MenuDropdown:
        """Link to a registered screen, skipped when ``context`` may not open it."""
        if not descriptor.screen_class.check_access(context).allowed:
            return self
        info = descriptor.to_dict()
        return self.link(label or info["label"], info["route"], icon or info["icon"])

    def clear_items(self) -> MenuDropdown:
        self.config["items"] = []
        return self

    def trigger(self, label: str = "☰", icon: str | None = None, style: str = "default") -> MenuDropdown:
        self.config["trigger"] = {"label": label, "icon": icon, "style": style}
        return self

    def trigger_image(
        self, image_url: str, alt: str = "User", label: str | None = None, style: str = "default"
    ) -> MenuDropdown:
        self.config["trigger"] = {"image": image_url, "alt": alt, "label": label, "style": style}
        return self


# Kinds rebuilt as a subclass by ``Component.from_json``.
COMPONENT_CLASSES: dict[str, type[Component]] = {
    "menu_dropdown": MenuDropdown,
}
