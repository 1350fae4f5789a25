"""Data model for the variable group browser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# Nodes are addressed by the tuple of child keys leading to them from the root.
NodePath = tuple[str, ...]

ROOT: NodePath = ()


class NodeKind(Enum):
    """Level of a node in the Organization -> Project -> VariableGroup tree."""

    ROOT = "root"
    ORGANIZATION = "organization"
    PROJECT = "project"
    VARIABLE_GROUP = "variable_group"

    @property
    def child_kind(self) -> NodeKind | None:
        """Kind of the nodes one level below, None for the leaf level."""
        order = list(NodeKind)
        idx = order.index(self)
        return order[idx + 1] if idx + 1 < len(order) else None

    @property
    def label(self) -> str:
        return {
            NodeKind.ROOT: "Organizations",
            NodeKind.ORGANIZATION: "Projects",
            NodeKind.PROJECT: "Variable Groups",
            NodeKind.VARIABLE_GROUP: "Variables",
        }[self]


@dataclass(frozen=True)
class Organization:
    id: str
    name: str

    @property
    def key(self) -> str:
        return self.name


@dataclass(frozen=True)
class Project:
    id: str
    org_name: str
    name: str
    description: str = ""

    @property
    def key(self) -> str:
        return self.id


@dataclass(frozen=True)
class Variable:
    """A key/value pair inside a variable group.

    Secret values are returned as ``None`` by the service; the value is never
    altered for display purposes, masking happens at render time.
    """

    key: str
    value: str | None
    is_secret: bool = False


@dataclass(frozen=True)
class VariableGroup:
    id: str
    project_id: str
    name: str
    description: str = ""
    variables: tuple[Variable, ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        return self.id

    def to_dict(self) -> dict[str, object]:
        """Serialize for export. Secret values are always written as null."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "variables": [
                {
                    "name": var.key,
                    "value": None if var.is_secret else var.value,
                    "is_secret": var.is_secret,
                }
                for var in self.variables
            ],
        }


Item = Union[Organization, Project, VariableGroup]


class LoadStatus(Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadState:
    """Fetch state of a node's children."""

    status: LoadStatus
    reason: str | None = None
    retryable: bool = False

    @classmethod
    def failed(cls, reason: str, retryable: bool) -> LoadState:
        return cls(LoadStatus.FAILED, reason, retryable)

    @property
    def is_loaded(self) -> bool:
        return self.status is LoadStatus.LOADED

    @property
    def is_loading(self) -> bool:
        return self.status is LoadStatus.LOADING

    @property
    def is_failed(self) -> bool:
        return self.status is LoadStatus.FAILED

    @property
    def is_not_loaded(self) -> bool:
        return self.status is LoadStatus.NOT_LOADED


NOT_LOADED = LoadState(LoadStatus.NOT_LOADED)
LOADING = LoadState(LoadStatus.LOADING)
LOADED = LoadState(LoadStatus.LOADED)
