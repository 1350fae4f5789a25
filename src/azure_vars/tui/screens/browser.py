"""Browser screen: organizations, projects, variable groups and variables."""

from __future__ import annotations

from collections.abc import Sequence
from functools import partial
from typing import TYPE_CHECKING

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Input
from textual.worker import Worker, WorkerState

from azure_vars.core.browser import Browser, FetchOutcome, FetchRequest
from azure_vars.core.cache import HierarchicalCache
from azure_vars.core.export import export_group
from azure_vars.core.loader import run_fetch
from azure_vars.core.models import NodePath
from azure_vars.tui.widgets.browser_view import BrowserView

if TYPE_CHECKING:
    from azure_vars.tui.app import AzureVarsApp

SPINNER_INTERVAL = 0.1


class BrowserScreen(Screen[None]):
    """Single view over the tree, driven by the interaction state machine.

    Fetches run in worker threads; their results come back as worker state
    changes on this screen's message queue.
    """

    BINDINGS = [
        Binding("enter", "enter_node", "Open"),
        Binding("right,l", "enter_node", "Open", show=False),
        Binding("escape", "cancel_or_back", "Back"),
        Binding("left,h", "back", "Back", show=False),
        Binding("up,k", "cursor_up", "Up", show=False),
        Binding("down,j", "cursor_down", "Down", show=False),
        Binding("pageup", "page_up", "Page Up", show=False),
        Binding("pagedown", "page_down", "Page Down", show=False),
        Binding("home", "cursor_top", "Top", show=False),
        Binding("end", "cursor_bottom", "Bottom", show=False),
        Binding("/", "toggle_search", "Search"),
        Binding("s", "toggle_reveal", "Secrets"),
        Binding("r", "refresh", "Retry/Refresh"),
        Binding("c", "copy_variable", "Copy"),
        Binding("e", "export_group", "Export"),
    ]

    def __init__(self, cache: HierarchicalCache, start_names: Sequence[str] = ()) -> None:
        super().__init__()
        self.browser = Browser(cache, self, start_names)
        self._requests: dict[Worker, FetchRequest] = {}
        self._fatal_shown = False

    @property
    def app(self) -> AzureVarsApp:
        """Get the app instance with proper typing."""
        return super().app  # type: ignore[return-value]

    def compose(self) -> ComposeResult:
        """Compose the browser screen."""
        yield Vertical(
            Input(placeholder="Filter by name or key...", id="search-input", classes="search-input hidden"),
            BrowserView(self.browser, id="browser-view", classes="browser-view"),
            classes="content",
        )

    def on_mount(self) -> None:
        """Called when screen is mounted."""
        view = self.query_one("#browser-view", BrowserView)
        view.focus()
        self.set_interval(SPINNER_INTERVAL, view.advance_spinner)
        self.browser.start()
        self._after_change()

    # Dispatcher protocol

    def dispatch_fetch(self, request: FetchRequest) -> None:
        """Run a fetch in a background thread."""
        worker = self.run_worker(
            partial(run_fetch, self.app.client, request),
            name=f"fetch:{'/'.join(request.path) or 'root'}",
            group="fetch",
            thread=True,
            exit_on_error=False,
        )
        self._requests[worker] = request

    def schedule_retry(self, path: NodePath, delay: float) -> None:
        """Retry a failed node after ``delay`` seconds."""
        self.set_timer(delay, partial(self._auto_retry, path))

    def _auto_retry(self, path: NodePath) -> None:
        self.browser.retry(path, automatic=True)
        self._after_change()

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Feed finished fetches back into the state machine."""
        worker = event.worker
        request = self._requests.get(worker)
        if request is None:
            return

        if event.state == WorkerState.SUCCESS:
            outcome: FetchOutcome = worker.result  # type: ignore[assignment]
        elif event.state == WorkerState.ERROR:
            outcome = FetchOutcome(request, error=worker.error)
        elif event.state == WorkerState.CANCELLED:
            del self._requests[worker]
            return
        else:
            return

        del self._requests[worker]
        self.browser.on_fetch_completed(outcome)
        self._after_change()

    def _after_change(self) -> None:
        """Redraw and keep the app's idea of the current selection in sync."""
        self.query_one("#browser-view", BrowserView).refresh()
        self.app.remember_selection(*self.browser.selection())
        if self.browser.fatal_error and not self._fatal_shown:
            self._fatal_shown = True
            self.app.show_fatal_error(self.browser.fatal_error)

    # Navigation

    def action_enter_node(self) -> None:
        """Open the highlighted organization, project or group."""
        if self.browser.enter():
            self._after_change()

    def action_back(self) -> None:
        """Go up one level."""
        if self.browser.back():
            self._after_change()

    def action_cancel_or_back(self) -> None:
        """Cancel search, clear a lingering filter, or go back."""
        if self.browser.filtering or self.browser.filter.query:
            self._close_search()
        else:
            self.action_back()

    def action_cursor_up(self) -> None:
        self.browser.move(-1)
        self._after_change()

    def action_cursor_down(self) -> None:
        self.browser.move(1)
        self._after_change()

    def action_page_up(self) -> None:
        self.browser.page_up()
        self._after_change()

    def action_page_down(self) -> None:
        self.browser.page_down()
        self._after_change()

    def action_cursor_top(self) -> None:
        self.browser.move_top()
        self._after_change()

    def action_cursor_bottom(self) -> None:
        self.browser.move_bottom()
        self._after_change()

    # Search

    def action_toggle_search(self) -> None:
        """Show the search input, or hide and clear it."""
        search_input = self.query_one("#search-input", Input)
        if search_input.has_class("hidden"):
            search_input.remove_class("hidden")
            search_input.value = self.browser.filter.query
            search_input.focus()
            self.browser.start_filter()
            self._after_change()
        else:
            self._close_search()

    def _close_search(self) -> None:
        search_input = self.query_one("#search-input", Input)
        search_input.add_class("hidden")
        with search_input.prevent(Input.Changed):
            search_input.value = ""
        self.browser.cancel_filter()
        self.query_one("#browser-view", BrowserView).focus()
        self._after_change()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Handle search input changes."""
        if event.input.id == "search-input":
            self.browser.set_filter(event.value)
            self._after_change()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Keep the query and return to browsing."""
        if event.input.id == "search-input":
            event.input.add_class("hidden")
            self.browser.submit_filter()
            self.query_one("#browser-view", BrowserView).focus()
            self._after_change()

    # Actions

    def action_toggle_reveal(self) -> None:
        """Show or mask secret values of the open variable group."""
        if not self.browser.toggle_reveal():
            self.app.notify("Open a variable group to reveal secrets", severity="warning", timeout=2)
        self._after_change()

    def action_refresh(self) -> None:
        """Retry a failed view or re-fetch the current one."""
        self.browser.refresh()
        self._after_change()

    def action_copy_variable(self) -> None:
        """Copy the highlighted variable as KEY=value."""
        text = self.browser.copy_text()
        if text is not None:
            self.app.copy_to_clipboard(text)
            self.app.notify(f"Copied {text.split('=', 1)[0]}", timeout=2)
        self._after_change()

    def action_export_group(self) -> None:
        """Export the open variable group to JSON."""
        group = self.browser.current_group()
        if group is None:
            self.app.notify("Open a variable group to export it", severity="warning", timeout=2)
            return
        try:
            path = export_group(group)
        except OSError as e:
            self.app.notify(str(e), title="Export Failed", severity="error", timeout=5)
            return
        self.app.notify(f"Exported to {path}", title="Export Successful", timeout=3)
