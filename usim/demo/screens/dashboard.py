from __future__ import annotations

from usim.screens import Screen
from usim.ui import builder as ui
from usim.ui.enums import Align, FontWeight, LayoutType


class Dashboard(Screen):
    menu_label = "Dashboard"
    menu_icon = "🏠"

    store_clicks: int = 0

    def build(self, root):
        root.set(title="Dashboard", max_width="600px")
        root.add(
            ui.label("lbl_title", text="Welcome", align=Align.CENTER, font_weight=FontWeight.BOLD),
            ui.label("lbl_clicks", text="Clicks: 0"),
            ui.container("toolbar", layout=LayoutType.HORIZONTAL, gap="12px").add(
                ui.button("btn_increment", label="+1", action="increment"),
                ui.button("btn_notify", label="Notify", action="notify"),
            ),
        )

    def post_load(self):
        self._show_clicks()

    def reset_state(self):
        self.store_clicks = 0

    def on_increment(self, params):
        self.store_clicks += int(params.get("step", 1))
        self._show_clicks()

    def on_notify(self, params):
        self.toast(params.get("message", "Hello from the server"), "success")

    def on_logged_user(self, params):
        name = params.get("name") or self.context.user_id or "user"
        self.component("lbl_title").set(text=f"Welcome, {name}")

    def _show_clicks(self):
        self.component("lbl_clicks").set(text=f"Clicks: {self.store_clicks}")
