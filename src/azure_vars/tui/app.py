"""Main TUI application for azure-vars."""

from __future__ import annotations

import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header

from azure_vars.config import Config, ConfigStore
from azure_vars.core.cache import HierarchicalCache
from azure_vars.core.devops_client import AzureDevOpsClient
from azure_vars.tui.screens.browser import BrowserScreen

logger = logging.getLogger(__name__)

DARK_THEME = "textual-dark"
LIGHT_THEME = "textual-light"


class AzureVarsApp(App[None]):
    """Main azure-vars TUI application."""

    TITLE = "azure-vars"
    SUB_TITLE = "Azure DevOps variable groups"
    CSS_PATH = "styles/app.tcss"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("?", "help", "Help"),
        Binding("t", "toggle_theme", "Theme"),
    ]

    def __init__(
        self,
        client: AzureDevOpsClient,
        config: Config | None = None,
        config_store: ConfigStore | None = None,
    ) -> None:
        super().__init__()
        self.client = client
        self.config = config or Config()
        self.config_store = config_store
        # Cache lives for the whole session; screens only hold paths into it
        self.cache = HierarchicalCache()

    def compose(self) -> ComposeResult:
        """Compose the app layout."""
        yield Header()
        yield Footer()

    def on_mount(self) -> None:
        """Called when app is mounted."""
        if self.config.preferences.get("theme") in (DARK_THEME, LIGHT_THEME):
            self.theme = self.config.preferences["theme"]
        start_names = [self.config.selected_organization or "", self.config.project or ""]
        self.push_screen(BrowserScreen(self.cache, start_names))

    def action_help(self) -> None:
        """Show the help screen."""
        from azure_vars.tui.screens.help import HelpScreen

        self.push_screen(HelpScreen())

    def action_toggle_theme(self) -> None:
        """Switch between the dark and light themes."""
        self.theme = LIGHT_THEME if self.theme == DARK_THEME else DARK_THEME

    def show_fatal_error(self, message: str) -> None:
        """Full-screen fatal error; the app exits once acknowledged."""
        from azure_vars.tui.screens.fatal import FatalErrorScreen

        self.push_screen(FatalErrorScreen(message))

    def remember_selection(self, organization: str | None, project: str | None) -> None:
        """Record what to reopen next time; written out by ``save_config``.

        Nothing is recorded while the organization list is showing, so
        quitting early keeps the previous selection.
        """
        if not organization:
            return
        prefs = dict(self.config.preferences)
        if project:
            prefs["project"] = project
        else:
            prefs.pop("project", None)
        self.config.preferences = prefs
        self.config.selected_organization = organization

    def save_config(self) -> None:
        """Write the session's selection and theme back to the config store."""
        if self.config_store is None:
            return
        self.config.preferences = {**self.config.preferences, "theme": self.theme}
        self.config_store.save(self.config)
