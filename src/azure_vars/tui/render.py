"""Pure rendering of the browser state into a frame of terminal lines."""

from __future__ import annotations

import re
from dataclasses import dataclass

from rich.text import Text

from azure_vars.core.browser import Browser, Mode, Row
from azure_vars.core.cache import Node
from azure_vars.core.models import LoadState, NodeKind, Variable
from azure_vars.core.search import MatchStatus

SPINNER = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
MASK = "••••••••"
HIDDEN_SECRET = "<secret value hidden>"
NO_VALUE = "<no value>"

SELECTED_STYLE = "bold reverse"
MATCH_STYLE = "bold yellow"


@dataclass(frozen=True)
class Frame:
    width: int
    height: int
    lines: tuple[Text, ...]

    def to_text(self) -> Text:
        return Text("\n").join(self.lines)

    @property
    def plain(self) -> str:
        return "\n".join(line.plain for line in self.lines)


def _fit(line: Text, width: int) -> Text:
    line = line.copy()
    line.truncate(width, overflow="ellipsis")
    return line


def _highlight(text: Text, query: str) -> Text:
    if query:
        text.highlight_regex(re.compile(re.escape(query), re.IGNORECASE), MATCH_STYLE)
    return text


def _state_badge(node: Node, tick: int) -> Text:
    state = node.load_state
    if state.is_loading:
        return Text(f" {SPINNER[tick % len(SPINNER)]}", style="cyan")
    if state.is_failed:
        hint = "r to retry" if state.retryable else "not retryable"
        return Text(f" ✗ failed ({hint})", style="red")
    if state.is_loaded and node.kind is not NodeKind.VARIABLE_GROUP:
        return Text(f" ({len(node.children)})", style="dim")
    if node.stale:
        return Text(" [stale]", style="yellow")
    return Text("")


def _node_line(browser: Browser, node: Node, tick: int) -> Text:
    query = browser.filter.query
    line = _highlight(Text(node.name, style="bold"), query)
    item = node.item
    if node.kind is NodeKind.VARIABLE_GROUP:
        line.append(f"  ({len(item.variables)} vars)", style="dim")  # type: ignore[union-attr]
    line.append_text(_state_badge(node, tick))
    description = getattr(item, "description", "")
    if description:
        line.append(f"  {description}", style="dim italic")
    if browser.filter.status(node.path) is MatchStatus.NOT_SEARCHED:
        line.append("  (not searched)", style="dim")
    return line


def _variable_value(var: Variable, revealed: bool) -> Text:
    if var.is_secret and not revealed:
        return Text(MASK, style="red")
    if var.value is None:
        return Text(HIDDEN_SECRET if var.is_secret else NO_VALUE, style="dim")
    return Text(var.value, style="red" if var.is_secret else "cyan")


def _variable_line(browser: Browser, var: Variable) -> Text:
    line = _highlight(Text(var.key, style="bold"), browser.filter.query)
    line.append(" = ")
    line.append_text(_variable_value(var, browser.is_revealed(browser.current_path)))
    if var.is_secret:
        line.append("  (secret)", style="dim")
    return line


def _row_line(browser: Browser, row: Row, tick: int) -> Text:
    if isinstance(row, Variable):
        return _variable_line(browser, row)
    return _node_line(browser, row, tick)


def _header(browser: Browser) -> list[Text]:
    crumb = Text(" > ".join(browser.breadcrumb()), style="bold")
    node = browser.current_node
    if node.kind is NodeKind.VARIABLE_GROUP:
        shown = "shown" if browser.is_revealed(node.path) else "masked"
        crumb.append(f"   secrets: {shown}", style="red" if shown == "shown" else "dim")
    lines = [crumb]

    query = browser.filter.query
    if browser.mode is Mode.FILTERING:
        lines.append(Text(f"/{query}  ({len(browser.rows())} shown)", style="yellow"))
    elif query:
        lines.append(Text(f"filter: '{query}'  (/ to edit)", style="yellow"))
    return lines


def _notices(node: Node, label: str, tick: int) -> list[Text]:
    state: LoadState = node.load_state
    if state.is_loading:
        verb = "Refreshing" if node.children else "Loading"
        return [Text(f"{SPINNER[tick % len(SPINNER)]} {verb} {label.lower()}...", style="cyan")]
    if state.is_failed:
        hint = "Press r to retry" if state.retryable else "This error cannot be retried"
        lines = [Text(f"✗ {state.reason}", style="bold red"), Text(hint, style="dim")]
        if node.stale:
            lines.append(Text("Showing last known values:", style="yellow"))
        return lines
    if node.stale:
        return [Text("[stale] waiting for refresh", style="yellow")]
    return []


def render_frame(browser: Browser, width: int, height: int, tick: int = 0) -> Frame:
    """Lay out breadcrumb, notices, the visible rows and the status line.

    Rows scroll to keep the cursor on screen and every line is clipped to
    ``width``.
    """
    width = max(width, 1)
    height = max(height, 0)
    node = browser.current_node
    label = node.kind.label

    top = _header(browser)
    bottom: list[Text] = []
    if browser.status is not None:
        style = "red" if browser.status.is_error else "green"
        bottom.append(Text(browser.status.text, style=style))

    body = _notices(node, label, tick)
    rows = browser.rows()
    if not rows and not node.load_state.is_loading and not node.load_state.is_failed:
        if browser.filter.query:
            body.append(Text(f"No matches for '{browser.filter.query}'", style="dim"))
        elif node.load_state.is_loaded:
            body.append(Text(f"No {label.lower()} found", style="dim"))

    available = max(height - len(top) - len(bottom) - len(body), 0)
    cursor = min(browser.cursor, max(len(rows) - 1, 0))
    offset = cursor - available + 1 if cursor >= available > 0 else 0
    for idx, row in enumerate(rows[offset : offset + available], start=offset):
        line = _row_line(browser, row, tick)
        if idx == cursor:
            line = Text("> ") + line
            line.stylize(SELECTED_STYLE)
        else:
            line = Text("  ") + line
        body.append(line)

    lines = (top + body + bottom)[:height] if height else []
    # Keep the status line when the viewport is too small for everything
    if bottom and height and lines[-1] is not bottom[-1]:
        lines[-1] = bottom[-1]
    return Frame(width=width, height=height, lines=tuple(_fit(line, width) for line in lines))
