from __future__ import annotations

from usim.screens import Screen
from usim.ui import builder as ui
from usim.uploads import format_file_size


class UploaderDemo(Screen):
    menu_label = "Uploader Demo"

    store_files: list = []

    def build(self, root):
        root.set(title="Uploader Demo", max_width="500px")
        root.add(
            ui.uploader("avatar_uploader", allowed_types=["image/*"], max_size=2, max_files=3),
            ui.button("btn_save", label="Save", action="save_files"),
            ui.label("lbl_status", text="No files saved"),
        )

    def on_save_files(self, params):
        files = [f for f in params.get("files", []) if isinstance(f, dict) and f.get("id")]
        if not files:
            self.toast("Select at least one file", "warning")
            return

        self.store_files = [f["id"] for f in files]
        total = sum(int(f.get("size", 0)) for f in files)
        self.component("lbl_status").set(text=f"{len(files)} file(s) ready, {format_file_size(total)}")
