"""Incremental tree filtering over the loaded part of the cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from azure_vars.core.cache import HierarchicalCache, Node
from azure_vars.core.models import ROOT, NodeKind, NodePath, Variable

VariableId = tuple[NodePath, str]


class MatchStatus(Enum):
    MATCH = "match"
    NO_MATCH = "no_match"
    # Subtree not fetched yet, so absence of a match means nothing
    NOT_SEARCHED = "not_searched"


@dataclass(frozen=True)
class FilterState:
    query: str = ""
    matched: frozenset[NodePath] = field(default_factory=frozenset)
    direct: frozenset[NodePath] = field(default_factory=frozenset)
    not_searched: frozenset[NodePath] = field(default_factory=frozenset)
    matched_variables: frozenset[VariableId] = field(default_factory=frozenset)

    @property
    def active(self) -> bool:
        return bool(self.query)


class FilterEngine:
    """Case-insensitive substring filter applied as a tree predicate.

    A node is visible when it, one of its descendants, or one of its
    ancestors matches the query directly. Results are recomputed lazily
    whenever the query or the cache changes.
    """

    def __init__(self, cache: HierarchicalCache) -> None:
        self.cache = cache
        self._query = ""
        self._state = FilterState()
        self._computed_for: tuple[str, int] | None = None

    @property
    def query(self) -> str:
        return self._query

    def set_query(self, text: str) -> None:
        self._query = text
        self._computed_for = None

    @property
    def state(self) -> FilterState:
        key = (self._query, self.cache.version)
        if self._computed_for != key:
            self._state = self._compute()
            self._computed_for = key
        return self._state

    def _compute(self) -> FilterState:
        needle = self._query.casefold()
        if not needle:
            return FilterState()

        matched: set[NodePath] = set()
        direct: set[NodePath] = set()
        not_searched: set[NodePath] = set()
        matched_vars: set[VariableId] = set()

        def visit(node: Node) -> tuple[bool, bool]:
            """Return (subtree has a match, subtree has unexplored parts)."""
            is_direct = node.kind is not NodeKind.ROOT and needle in node.name.casefold()
            if is_direct:
                direct.add(node.path)

            found = is_direct
            unexplored = False

            if node.kind is NodeKind.VARIABLE_GROUP:
                for var in node.item.variables:  # type: ignore[union-attr]
                    if needle in var.key.casefold():
                        matched_vars.add((node.path, var.key))
                        found = True
            elif not node.children and not node.load_state.is_loaded:
                unexplored = True

            for child in self.cache.children(node.path):
                child_found, child_unexplored = visit(child)
                found = found or child_found
                unexplored = unexplored or child_unexplored

            if found:
                matched.add(node.path)
            elif unexplored:
                not_searched.add(node.path)
            return found, unexplored

        visit(self.cache.get_node(ROOT))
        return FilterState(
            query=self._query,
            matched=frozenset(matched),
            direct=frozenset(direct),
            not_searched=frozenset(not_searched),
            matched_variables=frozenset(matched_vars),
        )

    def status(self, path: NodePath) -> MatchStatus:
        state = self.state
        if not state.active or path in state.matched:
            return MatchStatus.MATCH
        if path in state.not_searched:
            return MatchStatus.NOT_SEARCHED
        return MatchStatus.NO_MATCH

    def _ancestor_matches(self, path: NodePath) -> bool:
        direct = self.state.direct
        return any(path[:i] in direct for i in range(1, len(path)))

    def matches(self, path: NodePath) -> bool:
        """True when the node itself or something below it matches."""
        return self.status(path) is MatchStatus.MATCH

    def is_visible(self, path: NodePath) -> bool:
        if not self.state.active or path == ROOT:
            return True
        if self.status(path) is not MatchStatus.NO_MATCH:
            return True
        return self._ancestor_matches(path)

    def variable_matches(self, group_path: NodePath, variable: Variable) -> bool:
        return (group_path, variable.key) in self.state.matched_variables

    def is_variable_visible(self, group_path: NodePath, variable: Variable) -> bool:
        state = self.state
        if not state.active:
            return True
        if (group_path, variable.key) in state.matched_variables:
            return True
        return group_path in state.direct or self._ancestor_matches(group_path)
