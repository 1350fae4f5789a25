"""In-memory tree of organizations, projects and variable groups.

Nodes live in a flat arena keyed by their path, so a subtree can be
re-fetched or invalidated without touching its siblings.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from azure_vars.core.models import (
    LOADED,
    LOADING,
    NOT_LOADED,
    ROOT,
    Item,
    LoadState,
    NodeKind,
    NodePath,
    VariableGroup,
)

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Raised for operations on paths the cache does not know."""


@dataclass
class Node:
    path: NodePath
    kind: NodeKind
    item: Item | None = None
    load_state: LoadState = NOT_LOADED
    children: list[NodePath] = field(default_factory=list)
    # True while the children shown are left over from before an invalidate or failure
    stale: bool = False

    @property
    def name(self) -> str:
        return self.item.name if self.item is not None else "Organizations"

    @property
    def parent_path(self) -> NodePath | None:
        return self.path[:-1] if self.path else None

    @property
    def fetches_children(self) -> bool:
        """Variable groups arrive with their variables; nothing to fetch."""
        return self.kind is not NodeKind.VARIABLE_GROUP


class HierarchicalCache:
    """Exclusive owner of every tree node.

    ``version`` increases on each mutation so derived views (filtering)
    know when to recompute.
    """

    def __init__(self) -> None:
        self._nodes: dict[NodePath, Node] = {ROOT: Node(path=ROOT, kind=NodeKind.ROOT)}
        self.version = 0

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def _bump(self) -> None:
        self.version += 1

    def get_node(self, path: NodePath) -> Node:
        try:
            return self._nodes[path]
        except KeyError:
            raise CacheError(f"Unknown node {path!r}") from None

    def children(self, path: NodePath) -> list[Node]:
        return [self._nodes[p] for p in self.get_node(path).children]

    def walk(self, path: NodePath = ROOT) -> Iterator[Node]:
        """Depth-first iteration over a subtree, parents before children."""
        stack = [self.get_node(path)]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(self._nodes[p] for p in reversed(node.children))

    def can_load(self, path: NodePath) -> bool:
        node = self.get_node(path)
        if not node.fetches_children:
            return False
        parent = node.parent_path
        return parent is None or self._nodes[parent].load_state.is_loaded

    def begin_load(self, path: NodePath) -> bool:
        """Mark a node as loading.

        Returns True when the caller should dispatch a fetch. Already loading
        or loaded nodes, and nodes whose parent is not loaded, return False.
        """
        node = self.get_node(path)
        if node.load_state.is_loading or node.load_state.is_loaded:
            return False
        if not self.can_load(path):
            logger.debug("Refusing to load %r: parent not loaded", path)
            return False
        node.load_state = LOADING
        self._bump()
        return True

    def complete_load(
        self,
        path: NodePath,
        children: Sequence[Item] | None = None,
        error: Exception | None = None,
    ) -> bool:
        """Apply a fetch result. Last write wins.

        On success the child list is replaced in one step. On error the node
        is marked failed and keeps its previous children as a stale snapshot.
        Returns False if the node no longer exists.
        """
        node = self._nodes.get(path)
        if node is None:
            logger.debug("Dropping completion for vanished node %r", path)
            return False

        if error is not None:
            reason = getattr(error, "reason", None) or str(error)
            retryable = bool(getattr(error, "retryable", False))
            node.load_state = LoadState.failed(reason, retryable)
            node.stale = bool(node.children)
            self._bump()
            return True

        self._replace_children(node, children or [])
        node.load_state = LOADED
        node.stale = False
        self._bump()
        return True

    def _replace_children(self, node: Node, items: Sequence[Item]) -> None:
        child_kind = node.kind.child_kind
        if child_kind is None:
            raise CacheError(f"{node.kind.value} nodes have no child nodes")

        new_paths: list[NodePath] = []
        for item in items:
            child_path = node.path + (item.key,)
            existing = self._nodes.get(child_path)
            if existing is not None:
                existing.item = item
                child = existing
            else:
                child = Node(path=child_path, kind=child_kind, item=item)
                self._nodes[child_path] = child
            if isinstance(item, VariableGroup):
                child.load_state = LOADED
                child.stale = False
            new_paths.append(child_path)

        keep = set(new_paths)
        for old in node.children:
            if old not in keep:
                self._drop_subtree(old)
        node.children = new_paths

    def _drop_subtree(self, path: NodePath) -> None:
        for sub in list(self.walk(path)):
            del self._nodes[sub.path]

    def invalidate(self, path: NodePath) -> None:
        """Reset a subtree to NotLoaded, keeping its data as a stale snapshot.

        A node that is itself loading stays loading; its in-flight fetch
        already provides the replacement. Loading descendants are reset and
        their results overwrite whatever is current when they arrive.
        """
        for node in self.walk(path):
            if node.path == path and node.load_state.is_loading:
                continue
            node.load_state = NOT_LOADED
            node.stale = bool(node.children) or node.kind is NodeKind.VARIABLE_GROUP
        self._bump()

    def ancestors(self, path: NodePath) -> list[Node]:
        """Nodes from the root down to and excluding ``path``."""
        return [self._nodes[path[:i]] for i in range(len(path))]
