"""Help screen showing keybindings."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Static


HELP_TEXT = """\
[bold cyan]azure-vars TUI[/bold cyan]
Browse Azure DevOps variable groups.

[bold yellow]Global Keybindings[/bold yellow]
[dim]These work on any screen:[/dim]

  [bold]q[/bold]        Quit the application
  [bold]?[/bold]        Show this help screen
  [bold]t[/bold]        Toggle dark / light theme

[bold yellow]Navigation[/bold yellow]

  [bold]↑ / k[/bold]    Move up
  [bold]↓ / j[/bold]    Move down
  [bold]PgUp/PgDn[/bold] Move ten rows
  [bold]Home/End[/bold] Jump to first / last row
  [bold]Enter / →[/bold] Open organization, project or group
  [bold]← / h[/bold]    Go back one level
  [bold]Esc[/bold]      Clear the filter, then go back

[bold yellow]Search & Filter[/bold yellow]

  [bold]/[/bold]        Filter by name (and variable key)
  [bold]Enter[/bold]    Keep the filter and return to the list
  [bold]Esc[/bold]      Clear the filter

  Matches keep their parents visible. Branches that have not been
  loaded yet are marked [dim](not searched)[/dim].

[bold yellow]Variable Groups[/bold yellow]

  [bold]s[/bold]        Reveal / mask secret values (resets when you leave)
  [bold]c[/bold]        Copy the highlighted variable as KEY=value
  [bold]e[/bold]        Export the group to <name>_variables.json

[bold yellow]Loading & Errors[/bold yellow]

  [bold]r[/bold]        Retry a failed load, or refresh the current view
  Rate-limited requests are retried automatically.

[dim]Press Esc or q to close this help[/dim]
"""


class HelpScreen(ModalScreen[None]):
    """Modal help screen with keybindings."""

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("q", "close", "Close"),
    ]

    def compose(self) -> ComposeResult:
        """Compose the help screen."""
        yield Vertical(
            Static("Help", classes="help-title"),
            VerticalScroll(
                Static(HELP_TEXT, classes="help-content", markup=True),
                id="help-scroll",
            ),
            classes="help-container",
        )

    def action_close(self) -> None:
        """Close the help screen."""
        self.dismiss()
