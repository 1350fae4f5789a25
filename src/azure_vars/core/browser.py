"""Interaction state machine for the variable group browser.

The browser owns the cursor, navigation stack, filter mode and reveal
toggle. It never performs I/O: fetches are handed to a ``Dispatcher`` and
their results come back through ``on_fetch_completed``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

from azure_vars.core.auth import AuthError
from azure_vars.core.cache import HierarchicalCache, Node
from azure_vars.core.devops_client import AuthExpired, FetchError, MalformedResponse, RateLimited
from azure_vars.core.models import (
    ROOT,
    Item,
    NodeKind,
    NodePath,
    Organization,
    Project,
    Variable,
    VariableGroup,
)
from azure_vars.core.search import FilterEngine

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
MAX_AUTO_RETRIES = 3
AUTH_RETRY_DELAY = 1.0

Row = Union[Node, Variable]


class Mode(Enum):
    BROWSING = "browsing"
    FILTERING = "filtering"
    LOADING = "loading"


@dataclass(frozen=True)
class FetchRequest:
    path: NodePath
    kind: NodeKind
    org_name: str | None = None
    project_id: str | None = None


@dataclass(frozen=True)
class FetchOutcome:
    request: FetchRequest
    children: Sequence[Item] | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class StatusMessage:
    text: str
    is_error: bool = False

    @classmethod
    def info(cls, text: str) -> StatusMessage:
        return cls(text)

    @classmethod
    def error(cls, text: str) -> StatusMessage:
        return cls(text, is_error=True)


class Dispatcher(Protocol):
    def dispatch_fetch(self, request: FetchRequest) -> None: ...

    def schedule_retry(self, path: NodePath, delay: float) -> None: ...


class Browser:
    """Keyboard-driven navigation over the hierarchical cache."""

    def __init__(
        self,
        cache: HierarchicalCache,
        dispatcher: Dispatcher,
        start_names: Sequence[str] = (),
    ) -> None:
        self.cache = cache
        self.dispatcher = dispatcher
        self.filter = FilterEngine(cache)
        self.stack: list[NodePath] = [ROOT]
        self.filtering = False
        self.revealed: NodePath | None = None
        self.status: StatusMessage | None = None
        self.fatal_error: str | None = None
        self._cursors: dict[NodePath, int] = {}
        self._auto_retries: dict[NodePath, int] = {}
        # Names (organization, project) to open automatically once loaded
        self._pending_names: list[str] = []
        for name in start_names:
            if not name:
                break
            self._pending_names.append(name)

    # -- derived state -------------------------------------------------

    @property
    def current_path(self) -> NodePath:
        return self.stack[-1]

    @property
    def current_node(self) -> Node:
        return self.cache.get_node(self.current_path)

    @property
    def mode(self) -> Mode:
        if self.filtering:
            return Mode.FILTERING
        if self.current_node.load_state.is_loading:
            return Mode.LOADING
        return Mode.BROWSING

    @property
    def cursor(self) -> int:
        return self._cursors.get(self.current_path, 0)

    @cursor.setter
    def cursor(self, value: int) -> None:
        self._cursors[self.current_path] = value

    def rows(self) -> list[Row]:
        """Visible entries of the current view, after filtering."""
        node = self.current_node
        if node.kind is NodeKind.VARIABLE_GROUP:
            group: VariableGroup = node.item  # type: ignore[assignment]
            return [
                var
                for var in group.variables
                if self.filter.is_variable_visible(node.path, var)
            ]
        return [
            child
            for child in self.cache.children(node.path)
            if self.filter.is_visible(child.path)
        ]

    def selected(self) -> Row | None:
        rows = self.rows()
        if not rows:
            return None
        return rows[min(self.cursor, len(rows) - 1)]

    def current_group(self) -> VariableGroup | None:
        node = self.current_node
        if node.kind is NodeKind.VARIABLE_GROUP:
            return node.item  # type: ignore[return-value]
        return None

    def selected_variable(self) -> Variable | None:
        row = self.selected()
        return row if isinstance(row, Variable) else None

    def is_revealed(self, group_path: NodePath) -> bool:
        return self.revealed is not None and self.revealed == group_path == self.current_path

    def breadcrumb(self) -> list[str]:
        return [self.cache.get_node(path).name for path in self.stack]

    def selection(self) -> tuple[str | None, str | None]:
        """Organization and project names currently open, for the config."""
        names: list[str | None] = [
            self.cache.get_node(path).name for path in self.stack[1:3]
        ]
        names += [None] * (2 - len(names))
        return names[0], names[1]

    # -- fetch dispatch ------------------------------------------------

    def _request_for(self, path: NodePath) -> FetchRequest:
        node = self.cache.get_node(path)
        if node.kind is NodeKind.ROOT:
            return FetchRequest(path, node.kind)
        org: Organization = self.cache.get_node(path[:1]).item  # type: ignore[assignment]
        if node.kind is NodeKind.ORGANIZATION:
            return FetchRequest(path, node.kind, org_name=org.name)
        project: Project = node.item  # type: ignore[assignment]
        return FetchRequest(path, node.kind, org_name=org.name, project_id=project.id)

    def _load(self, path: NodePath) -> bool:
        if not self.cache.begin_load(path):
            return False
        logger.debug("Dispatching fetch for %r", path)
        self.dispatcher.dispatch_fetch(self._request_for(path))
        return True

    def start(self) -> None:
        """Kick off the initial organization fetch."""
        self._load(ROOT)

    # -- navigation ----------------------------------------------------

    def move(self, delta: int) -> None:
        count = len(self.rows())
        if count == 0:
            self.cursor = 0
            return
        self.cursor = max(0, min(self.cursor + delta, count - 1))

    def move_top(self) -> None:
        self.cursor = 0

    def move_bottom(self) -> None:
        self.cursor = max(0, len(self.rows()) - 1)

    def page_up(self) -> None:
        self.move(-PAGE_SIZE)

    def page_down(self) -> None:
        self.move(PAGE_SIZE)

    def enter(self) -> bool:
        """Descend into the selected node, fetching its children if needed."""
        row = self.selected()
        if not isinstance(row, Node):
            return False
        self._push(row.path)
        return True

    def _push(self, path: NodePath) -> None:
        self.stack.append(path)
        self.revealed = None
        self.status = None
        node = self.cache.get_node(path)
        if node.load_state.is_not_loaded:
            self._load(path)

    def back(self) -> bool:
        if len(self.stack) == 1:
            return False
        self.stack.pop()
        self.revealed = None
        self._pending_names.clear()
        self._clamp_cursor()
        return True

    # -- filtering -----------------------------------------------------

    def start_filter(self) -> None:
        self.filtering = True

    def set_filter(self, text: str) -> None:
        self.filter.set_query(text)
        self.cursor = 0

    def submit_filter(self) -> None:
        self.filtering = False

    def cancel_filter(self) -> None:
        self.filter.set_query("")
        self.filtering = False
        self._clamp_cursor()

    # -- secrets -------------------------------------------------------

    def toggle_reveal(self) -> bool:
        """Flip the mask for the group being viewed. No-op elsewhere."""
        if self.current_node.kind is not NodeKind.VARIABLE_GROUP:
            return False
        self.revealed = None if self.revealed == self.current_path else self.current_path
        return True

    def copy_text(self) -> str | None:
        """``KEY=value`` for the selected variable, unless it is masked."""
        var = self.selected_variable()
        if var is None:
            return None
        if var.is_secret and not self.is_revealed(self.current_path):
            self.status = StatusMessage.error("Reveal secrets (s) before copying")
            return None
        value = var.value if var.value is not None else ""
        return f"{var.key}={value}"

    # -- refresh and retry ---------------------------------------------

    def _fetch_target(self) -> NodePath:
        """Variable groups are fetched through their project."""
        node = self.current_node
        if node.kind is NodeKind.VARIABLE_GROUP:
            return node.parent_path  # type: ignore[return-value]
        return node.path

    def refresh(self) -> None:
        """Retry a failed view, otherwise invalidate it and fetch again."""
        path = self._fetch_target()
        node = self.cache.get_node(path)
        if node.load_state.is_failed:
            self.retry(path)
            return
        if node.load_state.is_loading:
            return
        failed = [a for a in self.cache.ancestors(path) if a.load_state.is_failed]
        if failed:
            # Nothing below a failed parent can load until it does
            self.retry(failed[0].path)
            return
        self.cache.invalidate(path)
        self.status = StatusMessage.info(f"Refreshing {node.name}...")
        self._load(path)

    def retry(self, path: NodePath | None = None, automatic: bool = False) -> bool:
        path = self._fetch_target() if path is None else path
        if path not in self.cache:
            return False
        node = self.cache.get_node(path)
        state = node.load_state
        if not state.is_failed:
            return False
        if not state.retryable:
            if not automatic:
                self.status = StatusMessage.error(f"{state.reason} (not retryable)")
            return False
        if not automatic:
            self._auto_retries.pop(path, None)
        return self._load(path)

    # -- completions ---------------------------------------------------

    def on_fetch_completed(self, outcome: FetchOutcome) -> None:
        path = outcome.request.path
        error = outcome.error
        loaded = False

        if isinstance(error, AuthError):
            logger.error("Authentication failed: %s", error.message)
            self.fatal_error = error.message
            self.cache.complete_load(path, error=error)
        elif error is not None:
            if not isinstance(error, FetchError):
                logger.error("Unexpected fetch failure for %r", path, exc_info=error)
                error = MalformedResponse(str(error))
            self._on_fetch_failed(path, error)
        elif self.cache.complete_load(path, children=outcome.children):
            logger.debug("Loaded %d children for %r", len(outcome.children or ()), path)
            self._auto_retries.pop(path, None)
            loaded = True

        # The focused node may have been removed by this result
        self._prune_stack()
        target = self._fetch_target()
        if loaded and path == target:
            self.status = None
        self._clamp_cursor()
        if self.fatal_error is None:
            self._resume(target)
        self._follow_pending()

    def _resume(self, target: NodePath) -> None:
        """Fetch a focused node that was opened while its parent reloaded."""
        if self.cache.get_node(target).load_state.is_not_loaded:
            self._load(target)

    def _on_fetch_failed(self, path: NodePath, error: FetchError) -> None:
        if not self.cache.complete_load(path, error=error):
            return
        name = self.cache.get_node(path).name
        logger.warning("Failed to load %s: %s", name, error.reason)

        delay: float | None = None
        if isinstance(error, RateLimited):
            delay = error.retry_after
        elif isinstance(error, AuthExpired):
            delay = AUTH_RETRY_DELAY

        attempts = self._auto_retries.get(path, 0)
        if delay is not None and attempts < MAX_AUTO_RETRIES:
            self._auto_retries[path] = attempts + 1
            self.dispatcher.schedule_retry(path, delay)
            self.status = StatusMessage.error(
                f"{name}: {error.reason}; retrying in {delay:g}s"
            )
        else:
            self.status = StatusMessage.error(f"Failed to load {name}: {error.reason}")

    def _prune_stack(self) -> None:
        """Drop stack entries whose nodes disappeared after a refresh."""
        for idx, path in enumerate(self.stack):
            if path not in self.cache:
                del self.stack[idx:]
                self.revealed = None
                break

    def _clamp_cursor(self) -> None:
        count = len(self.rows())
        self.cursor = max(0, min(self.cursor, count - 1)) if count else 0

    def _follow_pending(self) -> None:
        """Open the configured organization/project once their parent loads."""
        while self._pending_names and self.current_node.load_state.is_loaded:
            wanted = self._pending_names[0].casefold()
            children = self.cache.children(self.current_path)
            match = next((c for c in children if c.name.casefold() == wanted), None)
            if match is None:
                self.status = StatusMessage.error(
                    f"{self._pending_names[0]!r} not found in {self.current_node.name}"
                )
                self._pending_names.clear()
                return
            self._pending_names.pop(0)
            self.cursor = children.index(match)
            self._push(match.path)
