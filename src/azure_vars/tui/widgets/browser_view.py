"""Widget that draws the browser state through the pure renderer."""

from __future__ import annotations

from textual.app import RenderResult
from textual.widget import Widget

from azure_vars.core.browser import Browser
from azure_vars.core.cache import Node
from azure_vars.tui.render import render_frame


class BrowserView(Widget, can_focus=True):
    """Displays the current level of the tree with its load state."""

    def __init__(self, browser: Browser, **kwargs) -> None:
        super().__init__(**kwargs)
        self.browser = browser
        self.tick = 0

    def render(self) -> RenderResult:
        """Render the frame for the current viewport size."""
        frame = render_frame(self.browser, self.size.width, self.size.height, self.tick)
        return frame.to_text()

    def is_animating(self) -> bool:
        """True while a spinner is visible."""
        if self.browser.current_node.load_state.is_loading:
            return True
        return any(
            isinstance(row, Node) and row.load_state.is_loading
            for row in self.browser.rows()
        )

    def advance_spinner(self) -> None:
        if self.is_animating():
            self.tick += 1
            self.refresh()
