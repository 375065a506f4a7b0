from __future__ import annotations

from usim.screens import Screen
from usim.ui import builder as ui

PAGE_SIZE = 3

PEOPLE = [
    ("Ada Lovelace", "ada@example.com"),
    ("Alan Turing", "alan@example.com"),
    ("Grace Hopper", "grace@example.com"),
    ("Edsger Dijkstra", "edsger@example.com"),
    ("Barbara Liskov", "barbara@example.com"),
]


class TableDemo(Screen):
    menu_icon = "📊"

    store_page: int = 1

    def build(self, root):
        root.set(title="Table Component Demo")
        people = ui.table("people_table", cols=2, title="People", columns=["Name", "Email"], pagination=PAGE_SIZE)
        root.add(people, ui.label("lbl_page"))
        for index in range(PAGE_SIZE):
            ui.table_row(people, f"row_{index}")

    def post_load(self):
        self._show_page()

    def reset_state(self):
        self.store_page = 1

    def on_change_page(self, params):
        pages = -(-len(PEOPLE) // PAGE_SIZE)
        self.store_page = max(1, min(pages, int(params.get("page", 1))))
        self._show_page()

    def _show_page(self):
        start = (self.store_page - 1) * PAGE_SIZE
        page = PEOPLE[start:start + PAGE_SIZE]
        for index in range(PAGE_SIZE):
            row = self.component(f"row_{index}")
            if index < len(page):
                row.set(cells=list(page[index]), visible=True)
            else:
                row.set(cells=[], visible=False)
        self.component("lbl_page").set(text=f"Page {self.store_page}")
