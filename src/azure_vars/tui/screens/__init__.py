"""TUI screens for azure-vars."""

from azure_vars.tui.screens.browser import BrowserScreen
from azure_vars.tui.screens.fatal import FatalErrorScreen
from azure_vars.tui.screens.help import HelpScreen

__all__ = [
    "BrowserScreen",
    "FatalErrorScreen",
    "HelpScreen",
]
