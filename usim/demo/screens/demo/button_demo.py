from __future__ import annotations

from usim.screens import Screen
from usim.ui import builder as ui


class ButtonDemo(Screen):
    store_state: bool = False

    def build(self, root):
        root.set(title="Button Demo - Click Me!", max_width="400px", shadow=2)
        root.add(ui.button("btn_toggle", label="Click Me!", action="toggle_label", style="primary"))

    def post_load(self):
        self._update_button()

    def on_toggle_label(self, params):
        self.store_state = not self.store_state
        self._update_button()

    def _update_button(self):
        if self.store_state:
            self.component("btn_toggle").set(label="Clicked! 🎉", style="success")
        else:
            self.component("btn_toggle").set(label="Click Me!", style="primary")
