"""Tree comparison for configdiff.

The comparator walks two document trees depth-first and emits Change
records.  Traversal uses an explicit worklist instead of recursion so very
deep documents cannot exhaust the call stack; the order of the emitted
changes is the same as the recursive definition would give.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional, Sequence, Union

from .models import Change, ChangeType, Options, WarningEntry
from .matcher import PathMatcher
from .comparators import equal_scalars
from .exceptions import InvariantViolationError
from .tree import (
    Node,
    NullNode,
    BoolNode,
    NumberNode,
    StringNode,
    ObjectNode,
    ArrayNode,
    format_scalar,
    join_path,
    index_path,
    identity_path,
)

logger = logging.getLogger(__name__)

_KNOWN_NODES = (NullNode, BoolNode, NumberNode, StringNode, ObjectNode, ArrayNode)


class _Pending(NamedTuple):
    """A node pair still to be compared."""
    old: Node
    new: Node
    path: str


# Worklist entries are either pairs to compare or changes ready to emit
_Task = Union[_Pending, Change]


class _Keyed(NamedTuple):
    index: int
    identity: str
    element: ObjectNode


class Differ:
    """
    Compares two document trees.

    Handles:
    - Ignore patterns (exact and ``/*`` subtree wildcards)
    - Object member add/remove/recurse
    - Positional and keyed (set-mode) array reconciliation
    - Coercion-aware scalar equality
    """

    def __init__(self, options: Optional[Options] = None):
        self.options = options or Options()
        self.matcher = PathMatcher(self.options.ignore_paths)

        self.changes: list[Change] = []
        self.warnings: list[WarningEntry] = []
        self.nodes_compared = 0

    def diff(self, old: Node, new: Node, path: str = "/") -> list[Change]:
        """
        Compare two trees.

        Args:
            old: The old/baseline tree
            new: The new tree
            path: Canonical path of the two roots

        Returns:
            Changes in traversal order
        """
        self._reset()
        return self._run([_Pending(old, new, path)])

    def reconcile(
        self,
        old_items: Sequence[Node],
        new_items: Sequence[Node],
        path: str
    ) -> list[Change]:
        """Compare two arrays located at ``path``."""
        self._reset()
        tasks = self._diff_arrays(
            ArrayNode(list(old_items), path=path),
            ArrayNode(list(new_items), path=path),
            path
        )
        return self._run(tasks)

    def _reset(self):
        self.changes = []
        self.warnings = []
        self.nodes_compared = 0

    def _run(self, tasks: list[_Task]) -> list[Change]:
        stack = list(reversed(tasks))
        while stack:
            task = stack.pop()
            if isinstance(task, Change):
                self.changes.append(task)
                continue
            # Children go on in reverse so they pop in document order
            stack.extend(reversed(self._compare(task.old, task.new, task.path)))

        return self.changes

    def _differs(self, old: Node, new: Node, path: str) -> bool:
        """Check whether anything under a node pair would produce a change."""
        stack: list[_Task] = [_Pending(old, new, path)]
        while stack:
            task = stack.pop()
            if isinstance(task, Change):
                return True
            stack.extend(self._compare(task.old, task.new, task.path, descend=True))
        return False

    def _compare(
        self,
        old: Node,
        new: Node,
        path: str,
        descend: bool = False
    ) -> list[_Task]:
        """Compare one node pair, returning follow-up tasks."""
        if self._ignored(path):
            return []

        self._check_node(old, path)
        self._check_node(new, path)
        self.nodes_compared += 1

        # Scalars of different kinds may still be equal under a coercion
        if old.is_scalar and new.is_scalar:
            if equal_scalars(old, new, self.options.coercions):
                return []
            return [self._modify(path, old, new)]

        if type(old) is not type(new):
            return [self._modify(path, old, new)]

        if isinstance(old, ObjectNode):
            return self._diff_objects(old, new, path)
        return self._diff_arrays(old, new, path, descend)

    def _diff_objects(self, old: ObjectNode, new: ObjectNode, path: str) -> list[_Task]:
        """Compare two objects member by member."""
        tasks: list[_Task] = []
        keys = list(old.members) + [k for k in new.members if k not in old.members]

        for key in keys:
            child_path = join_path(path, key)
            if self._ignored(child_path):
                continue

            if key not in new.members:
                tasks.append(Change(
                    type=ChangeType.REMOVE,
                    path=child_path,
                    old_value=old.members[key]
                ))
            elif key not in old.members:
                tasks.append(Change(
                    type=ChangeType.ADD,
                    path=child_path,
                    new_value=new.members[key]
                ))
            else:
                tasks.append(_Pending(old.members[key], new.members[key], child_path))

        return tasks

    def _diff_arrays(
        self,
        old: ArrayNode,
        new: ArrayNode,
        path: str,
        descend: bool = False
    ) -> list[_Task]:
        """Compare two arrays, keyed when a set key is configured for the path."""
        key = self.options.array_set_keys.get(path)
        if key is not None:
            old_index = self._index_by_key(old.items, key, path, "old")
            new_index = self._index_by_key(new.items, key, path, "new")
            if old_index is not None and new_index is not None:
                return self._diff_keyed_arrays(old_index, new_index, key, path)
        return self._diff_positional_arrays(old, new, path, descend)

    def _diff_positional_arrays(
        self,
        old: ArrayNode,
        new: ArrayNode,
        path: str,
        descend: bool = False
    ) -> list[_Task]:
        """
        Compare arrays index-by-index.  Never produces moves.

        Paired scalars compare as usual.  Paired containers are reported as
        one Modify of the whole element when anything beneath them differs,
        so two reordered objects without a configured key give one Modify
        per index rather than a change for every field that moved.
        """
        tasks: list[_Task] = []
        common = min(len(old.items), len(new.items))

        for i in range(common):
            old_item, new_item = old.items[i], new.items[i]
            item_path = index_path(path, i)
            self._check_node(old_item, item_path)
            self._check_node(new_item, item_path)
            if descend or old_item.is_scalar or new_item.is_scalar:
                tasks.append(_Pending(old_item, new_item, item_path))
            elif self._differs(old_item, new_item, item_path):
                tasks.append(self._modify(item_path, old_item, new_item))

        # Missing items in new
        for i in range(common, len(old.items)):
            item_path = index_path(path, i)
            if not self._ignored(item_path):
                tasks.append(Change(
                    type=ChangeType.REMOVE,
                    path=item_path,
                    old_value=old.items[i]
                ))

        # Extra items in new
        for i in range(common, len(new.items)):
            item_path = index_path(path, i)
            if not self._ignored(item_path):
                tasks.append(Change(
                    type=ChangeType.ADD,
                    path=item_path,
                    new_value=new.items[i]
                ))

        return tasks

    def _diff_keyed_arrays(
        self,
        old_index: dict[tuple, _Keyed],
        new_index: dict[tuple, _Keyed],
        key: str,
        path: str
    ) -> list[_Task]:
        """Compare arrays by matching objects on a key field."""
        tasks: list[_Task] = []

        for identity, entry in old_index.items():
            if identity not in new_index:
                item_path = identity_path(path, key, entry.identity)
                if not self._ignored(item_path):
                    tasks.append(Change(
                        type=ChangeType.REMOVE,
                        path=item_path,
                        old_value=entry.element
                    ))

        for identity, entry in new_index.items():
            if identity not in old_index:
                item_path = identity_path(path, key, entry.identity)
                if not self._ignored(item_path):
                    tasks.append(Change(
                        type=ChangeType.ADD,
                        path=item_path,
                        new_value=entry.element,
                        index=entry.index
                    ))

        for identity, old_entry in old_index.items():
            new_entry = new_index.get(identity)
            if new_entry is None:
                continue

            item_path = identity_path(path, key, old_entry.identity)
            if self._ignored(item_path):
                continue

            # Content comparison leaves the key field out
            tasks.append(_Pending(
                _without_key(old_entry.element, key, item_path),
                _without_key(new_entry.element, key, item_path),
                item_path
            ))

            if old_entry.index != new_entry.index:
                tasks.append(Change(
                    type=ChangeType.MOVE,
                    path=index_path(path, new_entry.index),
                    old_value=old_entry.element,
                    new_value=new_entry.element,
                    from_path=index_path(path, old_entry.index)
                ))

        return tasks

    def _index_by_key(
        self,
        items: list[Node],
        key: str,
        path: str,
        side: str
    ) -> Optional[dict[tuple, _Keyed]]:
        """
        Build an identity -> element map for keyed comparison.

        Returns:
            The map in traversal order, or None when the array cannot be
            keyed (non-object element, missing or non-scalar key, duplicate
            identity) and must be compared by position instead
        """
        index: dict[tuple, _Keyed] = {}

        for i, item in enumerate(items):
            if not isinstance(item, ObjectNode):
                self._add_warning(
                    path,
                    f"Element {i} in {side} array is a {item.kind.value}, not an object; "
                    f"comparing by position"
                )
                return None

            member = item.members.get(key)
            if member is None or not member.is_scalar:
                self._add_warning(
                    path,
                    f"Element {i} in {side} array has no scalar '{key}' field; "
                    f"comparing by position"
                )
                return None

            text = format_scalar(member)
            identity = (member.kind.value, text)
            if identity in index:
                self._add_warning(
                    path,
                    f"Duplicate key {key}={text} at indices "
                    f"{index[identity].index} and {i} in {side} array; comparing by position"
                )
                return None

            index[identity] = _Keyed(i, text, item)

        return index

    def _ignored(self, path: str) -> bool:
        return bool(self.matcher) and self.matcher.matches(path)

    def _modify(self, path: str, old: Node, new: Node) -> Change:
        return Change(
            type=ChangeType.MODIFY,
            path=path,
            old_value=old,
            new_value=new
        )

    def _check_node(self, node: Node, path: str):
        if not isinstance(node, _KNOWN_NODES):
            raise InvariantViolationError(
                f"Unknown node type {type(node).__name__}", path
            )

    def _add_warning(self, path: str, message: str):
        """Add a warning entry."""
        logger.warning("%s: %s", path, message)
        self.warnings.append(WarningEntry(path=path, message=message))


def _without_key(element: ObjectNode, key: str, path: str) -> ObjectNode:
    return ObjectNode(
        {k: v for k, v in element.members.items() if k != key},
        path=path
    )


def reconcile(
    old_items: Sequence[Node],
    new_items: Sequence[Node],
    path: str,
    options: Optional[Options] = None
) -> list[Change]:
    """Compare two arrays at ``path`` by position or by configured key."""
    return Differ(options).reconcile(old_items, new_items, path)
