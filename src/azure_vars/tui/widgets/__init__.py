"""TUI widgets for azure-vars."""

from azure_vars.tui.widgets.browser_view import BrowserView

__all__ = ["BrowserView"]
