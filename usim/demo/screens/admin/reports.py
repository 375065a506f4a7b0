from __future__ import annotations

from usim.screens import Screen
from usim.ui import builder as ui


class Reports(Screen):
    """Only visible to signed-in users."""

    menu_label = "Admin Reports"
    menu_icon = "📊"

    @classmethod
    def authorize(cls, context):
        return cls.require_auth(context) and context.user_id != "guest"

    def build(self, root):
        root.add(
            ui.card("report_card", title="Monthly report").add(
                ui.label("lbl_summary", text="Nothing to report yet"),
                ui.button("btn_refresh", label="Refresh", action="refresh"),
            )
        )

    def on_refresh(self, params):
        self.component("lbl_summary").set(text=f"Report refreshed for {self.context.user_id}")
