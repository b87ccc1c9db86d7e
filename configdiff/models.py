"""Data models for configdiff."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from .tree import Node


class ChangeType(Enum):
    ADD = "add"
    REMOVE = "remove"
    MODIFY = "modify"
    MOVE = "move"


class OperationType(Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"
    MOVE = "move"


@dataclass(frozen=True)
class Coercions:
    """Rules for treating values of different scalar kinds as equal."""
    numeric_strings: bool = False
    bool_strings: bool = False


@dataclass(frozen=True)
class Options:
    """
    Immutable configuration for one comparison.

    Attributes:
        ignore_paths: Exact paths, or paths ending in ``/*`` meaning everything
            beneath the prefix
        array_set_keys: Array path -> key field used to match its elements
        coercions: Cross-kind scalar equality rules
        stable_order: Sort changes by canonical path
    """
    ignore_paths: tuple[str, ...] = ()
    array_set_keys: Mapping[str, str] = field(default_factory=dict)
    coercions: Coercions = field(default_factory=Coercions)
    stable_order: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'ignore_paths', tuple(self.ignore_paths))
        object.__setattr__(
            self, 'array_set_keys', MappingProxyType(dict(self.array_set_keys))
        )

    def __hash__(self) -> int:
        return hash((
            self.ignore_paths,
            tuple(sorted(self.array_set_keys.items())),
            self.coercions,
            self.stable_order,
        ))


@dataclass
class Change:
    """
    A single difference found during comparison.

    Attributes:
        from_path: Source position of a Move
        index: Position of an element added to a keyed array, in the new array
    """
    type: ChangeType
    path: str
    old_value: Optional[Node] = None
    new_value: Optional[Node] = None
    from_path: Optional[str] = None
    index: Optional[int] = None

    def to_dict(self) -> dict:
        result = {
            "type": self.type.value,
            "path": self.path,
            "old_value": _plain(self.old_value),
            "new_value": _plain(self.new_value),
        }
        if self.from_path is not None:
            result["from"] = self.from_path
        if self.index is not None:
            result["index"] = self.index
        return result


@dataclass
class Operation:
    """A single patch operation, modelled on RFC 6902."""
    op: OperationType
    path: str
    value: Optional[Node] = None
    from_path: Optional[str] = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"op": self.op.value}
        if self.from_path is not None:
            result["from"] = self.from_path
        result["path"] = self.path
        if self.op in (OperationType.ADD, OperationType.REPLACE):
            result["value"] = _plain(self.value)
        return result


@dataclass
class Patch:
    """Ordered operations derived from a change list."""
    operations: list[Operation] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def to_list(self) -> list[dict]:
        return [op.to_dict() for op in self.operations]

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_list(), indent=indent, ensure_ascii=False)


@dataclass
class WarningEntry:
    """A soft warning generated during comparison."""
    path: str
    message: str

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "message": self.message,
        }


@dataclass
class DiffResult:
    """Complete output of a comparison."""
    changes: list[Change] = field(default_factory=list)
    patch: Patch = field(default_factory=Patch)
    report: str = ""
    warnings: list[WarningEntry] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return len(self.changes) > 0

    def to_dict(self) -> dict:
        result = {
            "has_changes": self.has_changes,
            "changes": [c.to_dict() for c in self.changes],
            "patch": self.patch.to_list(),
        }
        if self.warnings:
            result["warnings"] = [w.to_dict() for w in self.warnings]
        return result


def _plain(node: Optional[Node]) -> Any:
    return node.to_value() if node is not None else None
