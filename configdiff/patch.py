"""Patch assembly, stable ordering and patch application for configdiff."""

from __future__ import annotations

import copy
from typing import Any, Iterable, Optional, Union

from .models import Change, ChangeType, Operation, OperationType, Patch
from .tree import from_value, format_scalar, index_path, parse_path, parse_segment
from .exceptions import PatchError


_CHANGE_ORDER = {
    ChangeType.REMOVE: 0,
    ChangeType.ADD: 1,
    ChangeType.MODIFY: 2,
    ChangeType.MOVE: 3,
}


def path_sort_key(path: str) -> tuple:
    """
    Structure-aware sort key for a canonical path.

    Segments compare in order, so parents sort before their children;
    numeric indices compare numerically and sort before ``[key=value]``
    identities, which compare as text.
    """
    key = []
    for segment in parse_path(path):
        parsed = parse_segment(segment)
        if parsed is None:
            key.append((segment, ()))
            continue
        name, selectors = parsed
        key.append((name, tuple(
            (0, s, "") if isinstance(s, int) else (1, 0, f"{s[0]}={s[1]}")
            for s in selectors
        )))
    return tuple(key)


def sort_changes(changes: Iterable[Change]) -> list[Change]:
    """
    Sort changes into a total, deterministic order.

    Ties on path are broken by change type, source path and finally the
    raw path text, so the result does not depend on traversal order.
    """
    return sorted(changes, key=lambda c: (
        path_sort_key(c.path),
        _CHANGE_ORDER[c.type],
        c.from_path or "",
        c.path,
    ))


def assemble(changes: Iterable[Change], stable_order: bool = False) -> Patch:
    """
    Convert changes into patch operations.

    Args:
        changes: Changes as produced by the comparator
        stable_order: Sort changes by canonical path first

    Returns:
        Patch with one operation per change, plus a paired replace for
        moves whose element content also changed
    """
    if stable_order:
        changes = sort_changes(changes)

    operations: list[Operation] = []
    for change in changes:
        if change.type == ChangeType.ADD:
            path = change.path
            if change.index is not None:
                # Keyed adds are placed by their index in the new array
                path = index_path(_array_path(change.path), change.index)
            operations.append(Operation(OperationType.ADD, path, value=change.new_value))
        elif change.type == ChangeType.REMOVE:
            operations.append(Operation(OperationType.REMOVE, change.path))
        elif change.type == ChangeType.MODIFY:
            operations.append(Operation(OperationType.REPLACE, change.path, value=change.new_value))
        elif change.type == ChangeType.MOVE:
            operations.append(Operation(
                OperationType.MOVE, change.path, from_path=change.from_path
            ))
            if not change.old_value.equal(change.new_value):
                operations.append(Operation(
                    OperationType.REPLACE, change.path, value=change.new_value
                ))

    return Patch(operations)


def apply_patch(
    document: Any,
    patch: Union[Patch, Iterable[Union[Operation, dict]]]
) -> Any:
    """
    Apply a patch to a plain document (dicts, lists and scalars).

    Paths may address object keys, array indices (``[0]``) and set-mode
    identities (``[key=value]``).  Application order:

    1. move sources are resolved against the original document;
    2. add and replace operations, in patch order; an element added at an
       array index keeps that index through the later steps;
    3. removes, deepest and highest index first;
    4. moves and index adds, placing each element at its destination index
       with the remaining elements keeping their relative order;
    5. replaces targeting a move destination.

    The input document is not modified.

    Returns:
        The patched copy

    Raises:
        PatchError: If an operation cannot be applied
    """
    result = copy.deepcopy(document)
    operations = [_as_operation(op) for op in patch]

    moves = [op for op in operations if op.op == OperationType.MOVE]
    destinations = {op.path for op in moves}
    placements = _collect_placements(result, moves)

    deferred: list[Operation] = []
    removes: list[Operation] = []
    for op in operations:
        if op.op == OperationType.MOVE:
            continue
        if op.op == OperationType.REMOVE:
            removes.append(op)
        elif op.op == OperationType.REPLACE and op.path in destinations:
            deferred.append(op)
        elif op.op == OperationType.ADD and _is_index_path(op.path):
            _insert(result, op, placements)
        else:
            result = _apply_one(result, op)

    for op in sorted(removes, key=lambda o: path_sort_key(o.path), reverse=True):
        result = _apply_one(result, op)

    for array_path, entries in placements.items():
        _place(_resolve(result, _steps(array_path), array_path), entries, array_path)

    for op in deferred:
        result = _apply_one(result, op)

    return result


def _as_operation(op: Union[Operation, dict]) -> Operation:
    if isinstance(op, Operation):
        return op
    try:
        kind = OperationType(op["op"])
        path = op["path"]
    except (KeyError, ValueError, TypeError) as e:
        raise PatchError(f"Invalid operation {op!r}: {e}")
    value = from_value(op["value"]) if "value" in op else None
    return Operation(kind, path, value=value, from_path=op.get("from"))


def _collect_placements(document: Any, moves: list[Operation]) -> dict[str, list[tuple[int, Any]]]:
    """Resolve move sources to element references, grouped by array path."""
    placements: dict[str, list[tuple[int, Any]]] = {}
    for op in moves:
        if op.from_path is None:
            raise PatchError("Move operation without source", op.path)

        dest_steps = _steps(op.path)
        if not dest_steps or not isinstance(dest_steps[-1], int):
            raise PatchError("Move destination must be an array index", op.path)

        src_steps = _steps(op.from_path)
        if src_steps[:-1] != dest_steps[:-1]:
            raise PatchError(f"Move source {op.from_path} is in a different array", op.path)

        element = _resolve(document, src_steps, op.from_path)
        placements.setdefault(_array_path(op.path), []).append((dest_steps[-1], element))
    return placements


def _insert(document: Any, op: Operation, placements: dict[str, list[tuple[int, Any]]]):
    """
    Insert an element at an array index.

    Added objects and arrays are also registered for placement, so removes
    and moves applied afterwards do not shift them away from their index.
    """
    steps = _steps(op.path)
    parent = _resolve(document, steps[:-1], op.path)
    if not isinstance(parent, list):
        raise PatchError("Parent is not an array", op.path)

    index = steps[-1]
    value = op.value.to_value() if op.value is not None else None
    if isinstance(value, (dict, list)):
        parent.insert(min(index, len(parent)), value)
        placements.setdefault(_array_path(op.path), []).append((index, value))
    elif index > len(parent):
        raise PatchError(f"Index {index} out of range", op.path)
    else:
        parent.insert(index, value)


def _place(items: Any, entries: list[tuple[int, Any]], path: str):
    """Put moved elements at their destinations; others fill the gaps in order."""
    if not isinstance(items, list):
        raise PatchError("Move target is not an array", path)

    moved = {id(element) for _, element in entries}
    for _, element in entries:
        if not any(item is element for item in items):
            raise PatchError("Moved element no longer present", path)

    taken: set[int] = set()
    placed: list[Any] = [None] * len(items)
    for dest, element in entries:
        if dest >= len(items) or dest in taken:
            raise PatchError(f"Invalid move destination index {dest}", path)
        taken.add(dest)
        placed[dest] = element

    rest = iter([item for item in items if id(item) not in moved])
    for i in range(len(items)):
        if i not in taken:
            placed[i] = next(rest)

    items[:] = placed


def _apply_one(document: Any, op: Operation) -> Any:
    steps = _steps(op.path)
    value = op.value.to_value() if op.value is not None else None

    if not steps:
        if op.op == OperationType.REMOVE:
            return None
        return value

    parent = _resolve(document, steps[:-1], op.path)
    last = steps[-1]

    if isinstance(last, str):
        if not isinstance(parent, dict):
            raise PatchError("Parent is not an object", op.path)
        if op.op == OperationType.ADD:
            parent[last] = value
        elif last not in parent:
            raise PatchError(f"Key '{last}' not found", op.path)
        elif op.op == OperationType.REPLACE:
            parent[last] = value
        else:
            del parent[last]
        return document

    if not isinstance(parent, list):
        raise PatchError("Parent is not an array", op.path)

    if isinstance(last, int):
        index = last
        if op.op == OperationType.ADD:
            if index > len(parent):
                raise PatchError(f"Index {index} out of range", op.path)
            parent.insert(index, value)
            return document
    else:
        index = _find_identity(parent, last)
        if op.op == OperationType.ADD:
            if index is not None:
                raise PatchError("Identity already present", op.path)
            parent.append(value)
            return document

    if index is None or index >= len(parent):
        raise PatchError("Array element not found", op.path)
    if op.op == OperationType.REPLACE:
        parent[index] = value
    else:
        del parent[index]
    return document


def _array_path(path: str) -> str:
    """Path of the array holding the element at ``path``."""
    return path[:path.rindex("[")]


def _is_index_path(path: str) -> bool:
    steps = _steps(path)
    return bool(steps) and isinstance(steps[-1], int)


def _steps(path: str) -> list:
    steps: list = []
    for segment in parse_path(path):
        parsed = parse_segment(segment)
        if parsed is None:
            raise PatchError(f"Malformed path segment '{segment}'", path)
        name, selectors = parsed
        if name:
            steps.append(name)
        steps.extend(selectors)
    return steps


def _resolve(document: Any, steps: list, path: str) -> Any:
    current = document
    for step in steps:
        if isinstance(step, str):
            if not isinstance(current, dict) or step not in current:
                raise PatchError(f"Key '{step}' not found", path)
            current = current[step]
        elif isinstance(step, int):
            if not isinstance(current, list) or step >= len(current):
                raise PatchError(f"Index {step} out of range", path)
            current = current[step]
        else:
            index = _find_identity(current, step) if isinstance(current, list) else None
            if index is None:
                raise PatchError(f"No element with {step[0]}={step[1]}", path)
            current = current[index]
    return current


def _find_identity(items: list, selector: tuple) -> Optional[int]:
    key, identity = selector
    for i, item in enumerate(items):
        if not isinstance(item, dict) or key not in item:
            continue
        member = item[key]
        if isinstance(member, (dict, list)):
            continue
        if format_scalar(from_value(member)) == identity:
            return i
    return None
