"""Full-screen fatal error (authentication)."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Static


class FatalErrorScreen(Screen[None]):
    """Shows an unrecoverable error and exits once acknowledged."""

    BINDINGS = [
        Binding("enter", "acknowledge", "Exit"),
        Binding("escape", "acknowledge", "Exit"),
        Binding("q", "acknowledge", "Exit"),
    ]

    def __init__(self, message: str) -> None:
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        """Compose the error screen."""
        yield Vertical(
            Static("Authentication failed", classes="fatal-title"),
            Static(self.message, id="fatal-message", classes="fatal-message", markup=False),
            Static("Run 'az login' (or set ADO_PAT) and start again.", classes="fatal-hint"),
            Static("[dim]Press Enter to exit[/dim]", classes="fatal-hint"),
            classes="fatal-container",
        )

    def action_acknowledge(self) -> None:
        """Exit the application with a failure code."""
        self.app.exit(return_code=1, message=self.message)
