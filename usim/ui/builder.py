"""
Factory functions for UI components.

    from usim.ui import builder as ui

    root.add(
        ui.label("lbl_title", text="Dashboard", font_weight=FontWeight.BOLD),
        ui.button("btn_refresh", label="Refresh", action="refresh"),
    )
"""

from __future__ import annotations

import datetime
from typing import Any, Iterable

from usim.ui.components import Component, MenuDropdown
from usim.ui.enums import Align, FontWeight, LayoutType


def container(name: str | None = None, *, layout: LayoutType = LayoutType.VERTICAL, **config: Any) -> Component:
    return Component("container", name, layout=layout, **config)


def card(name: str | None = None, *, title: str = "", **config: Any) -> Component:
    return Component("card", name, title=title, **config)


def form(name: str | None = None, **config: Any) -> Component:
    return Component("form", name, **config)


def label(
    name: str | None = None,
    *,
    text: str = "",
    align: Align = Align.LEFT,
    font_weight: FontWeight = FontWeight.NORMAL,
    **config: Any,
) -> Component:
    return Component("label", name, text=text, align=align, font_weight=font_weight, **config)


def button(name: str | None = None, *, label: str = "", action: str | None = None, **config: Any) -> Component:
    """A button; ``action`` is the event name sent back when it is clicked."""
    return Component("button", name, label=label, action=action, **config)


def input_field(
    name: str | None = None,
    *,
    value: str = "",
    input_type: str = "text",
    placeholder: str = "",
    **config: Any,
) -> Component:
    return Component("input", name, value=value, input_type=input_type, placeholder=placeholder, **config)


def select(
    name: str | None = None,
    *,
    options: Iterable[Any] = (),
    value: Any = None,
    **config: Any,
) -> Component:
    return Component("select", name, options=list(options), value=value, **config)


def checkbox(name: str | None = None, *, label: str = "", checked: bool = False, **config: Any) -> Component:
    return Component("checkbox", name, label=label, checked=checked, **config)


def uploader(
    name: str | None = None,
    *,
    allowed_types: Iterable[str] = ("*",),
    max_size: float = 10,
    max_files: int = 1,
    **config: Any,
) -> Component:
    """File uploader; ``max_size`` is in megabytes."""
    return Component(
        "uploader",
        name,
        allowed_types=list(allowed_types),
        max_size=max_size,
        max_files=max_files,
        **config,
    )


def table(
    name: str | None = None,
    *,
    rows: int = 0,
    cols: int = 0,
    title: str = "",
    columns: Iterable[str] = (),
    pagination: int | None = None,
    **config: Any,
) -> Component:
    """
    A table whose rows are ``table_row`` children.

    ``rows``/``cols`` of 0 mean the size follows the rows added.
    """
    return Component(
        "table",
        name,
        rows=rows,
        cols=cols,
        title=title,
        columns=list(columns),
        pagination=pagination,
        **config,
    )


def table_row(table: Component, name: str | None = None, *, cells: Iterable[Any] = (), **config: Any) -> Component:
    """Append a row to ``table`` and return the row."""
    if table.kind != "table":
        raise ValueError(f"table_row needs a table, got {table.kind!r}")
    cells = list(cells)
    if table.get("cols") and len(cells) > table["cols"]:
        raise ValueError(f"row has {len(cells)} cells, table has {table['cols']} columns")
    row = Component("table_row", name, cells=cells, **config)
    table.add(row)
    return row


def menu_dropdown(
    name: str,
    *,
    position: str = "bottom-left",
    width: int | str | None = None,
    **config: Any,
) -> MenuDropdown:
    if isinstance(width, int):
        width = f"{width}px"
    menu = MenuDropdown(name=name, position=position, **config)
    if width is not None:
        menu["width"] = width
    return menu.trigger()


def calendar(
    name: str | None = None,
    *,
    year: int | None = None,
    month: int | None = None,
    events: Iterable[dict[str, Any]] = (),
    references_columns: int = 2,
    show_saturday_info: bool = True,
    show_sunday_info: bool = True,
    min_height: str = "30px",
    max_height: str | None = None,
    cell_size: str | None = None,
    border_radius: str = "12px",
    event_border_radius: str = "0px",
    **config: Any,
) -> Component:
    """Month view; defaults to the current month. ``references_columns`` is clamped to 1..3."""
    today = datetime.date.today()
    month = today.month if month is None else month
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1..12, got {month}")
    return Component(
        "calendar",
        name,
        year=today.year if year is None else year,
        month=month,
        events=list(events),
        references_columns=max(1, min(3, references_columns)),
        show_saturday_info=show_saturday_info,
        show_sunday_info=show_sunday_info,
        min_height=min_height,
        max_height=max_height,
        cell_size=cell_size,
        border_radius=border_radius,
        event_border_radius=event_border_radius,
        number_style=config.pop("number_style", {}),
        **config,
    )
