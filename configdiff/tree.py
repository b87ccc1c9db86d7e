"""Normalized document tree for configdiff.

Every input format (YAML, JSON, HCL) is converted into this common tree before
comparison. The tree is a tagged variant: one node class per kind, each
carrying only its own payload. Nodes also carry a canonical path such as
``/spec/containers[0]/image``, assigned once by ``set_paths`` after the
whole tree has been built. Object keys and identities are escaped in
paths the way JSON Pointer does it, extended to brackets and "=", so
``kubernetes.io/name`` becomes ``kubernetes.io~1name``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, Optional

from .exceptions import ParseError


class NodeKind(Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    OBJECT = "object"
    ARRAY = "array"


# Floats beyond this magnitude are not rendered as integers
_MAX_EXACT_INT = 2 ** 53

_SEGMENT_RE = re.compile(r'^([^\[\]]*)((?:\[[^\[\]]*\])*)$')
_BRACKET_RE = re.compile(r'\[([^\[\]]*)\]')

# "~" goes first so escapes are not escaped again
_ESCAPES = (("~", "~0"), ("/", "~1"), ("[", "~2"), ("]", "~3"), ("=", "~4"))


class Node:
    """Base class for tree nodes.  Not instantiated directly."""

    kind: ClassVar[NodeKind]
    path: str

    @property
    def is_scalar(self) -> bool:
        return self.kind not in (NodeKind.OBJECT, NodeKind.ARRAY)

    def equal(self, other: Optional[Node]) -> bool:
        """Structural equality; paths and object member order are ignored."""
        return self == other

    def clone(self) -> Node:
        raise NotImplementedError

    def to_value(self) -> Any:
        """Plain Python representation of this node's content."""
        raise NotImplementedError

    def children(self) -> list[tuple[str, Node]]:
        """(child path, child) pairs for containers, empty for scalars."""
        return []

    def set_paths(self, base_path: str = "/") -> None:
        """Assign canonical paths to this node and all its descendants."""
        stack: list[tuple[Node, str]] = [(self, base_path)]
        while stack:
            node, path = stack.pop()
            node.path = path
            if isinstance(node, ObjectNode):
                for key, child in node.members.items():
                    stack.append((child, join_path(path, key)))
            elif isinstance(node, ArrayNode):
                for i, child in enumerate(node.items):
                    stack.append((child, index_path(path, i)))

    def get_by_path(self, path: str) -> Optional[Node]:
        """
        Retrieve the node at a canonical path.

        Supports ``name``, ``name[0]`` and ``name[key=value]`` segments.

        Returns:
            The node, or None if the path does not exist
        """
        current: Optional[Node] = self
        for segment in parse_path(path):
            parsed = parse_segment(segment)
            if parsed is None or current is None:
                return None
            name, selectors = parsed
            if name:
                if not isinstance(current, ObjectNode):
                    return None
                current = current.members.get(name)
            for selector in selectors:
                if not isinstance(current, ArrayNode):
                    return None
                current = _select_item(current, selector)
                if current is None:
                    return None
        return current


@dataclass(eq=True)
class NullNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.NULL
    path: str = field(default="", compare=False, repr=False)

    def clone(self) -> NullNode:
        return NullNode(path=self.path)

    def to_value(self) -> Any:
        return None


@dataclass(eq=True)
class BoolNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.BOOL
    value: bool = False
    path: str = field(default="", compare=False, repr=False)

    def clone(self) -> BoolNode:
        return BoolNode(self.value, path=self.path)

    def to_value(self) -> Any:
        return self.value


@dataclass(eq=True)
class NumberNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.NUMBER
    value: float = 0.0
    path: str = field(default="", compare=False, repr=False)

    def __post_init__(self):
        self.value = float(self.value)

    def clone(self) -> NumberNode:
        return NumberNode(self.value, path=self.path)

    def to_value(self) -> Any:
        if _is_integral(self.value):
            return int(self.value)
        return self.value


@dataclass(eq=True)
class StringNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.STRING
    value: str = ""
    path: str = field(default="", compare=False, repr=False)

    def clone(self) -> StringNode:
        return StringNode(self.value, path=self.path)

    def to_value(self) -> Any:
        return self.value


@dataclass(eq=True)
class ObjectNode(Node):
    """A mapping of string keys to nodes.  Member order is irrelevant."""
    kind: ClassVar[NodeKind] = NodeKind.OBJECT
    members: dict[str, Node] = field(default_factory=dict)
    path: str = field(default="", compare=False, repr=False)

    def clone(self) -> ObjectNode:
        return ObjectNode(
            {key: child.clone() for key, child in self.members.items()},
            path=self.path
        )

    def to_value(self) -> Any:
        return {key: child.to_value() for key, child in self.members.items()}

    def children(self) -> list[tuple[str, Node]]:
        return [(join_path(self.path, k), v) for k, v in self.members.items()]

    def sorted_keys(self) -> list[str]:
        return sorted(self.members)


@dataclass(eq=True)
class ArrayNode(Node):
    kind: ClassVar[NodeKind] = NodeKind.ARRAY
    items: list[Node] = field(default_factory=list)
    path: str = field(default="", compare=False, repr=False)

    def clone(self) -> ArrayNode:
        return ArrayNode([item.clone() for item in self.items], path=self.path)

    def to_value(self) -> Any:
        return [item.to_value() for item in self.items]

    def children(self) -> list[tuple[str, Node]]:
        return [(index_path(self.path, i), v) for i, v in enumerate(self.items)]


def from_value(value: Any) -> Node:
    """
    Convert a plain Python value into a document tree.

    Paths are not assigned; call ``set_paths`` on the result.

    Args:
        value: A value made of dicts, lists, strings, numbers, bools and None

    Returns:
        The root node
    """
    if value is None:
        return NullNode()
    if isinstance(value, bool):
        return BoolNode(value)
    if isinstance(value, (int, float)):
        return NumberNode(float(value))
    if isinstance(value, str):
        return StringNode(value)
    if isinstance(value, (datetime, date)):
        # YAML timestamps are kept as text
        return StringNode(value.isoformat())
    if isinstance(value, dict):
        return ObjectNode({str(k): from_value(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return ArrayNode([from_value(v) for v in value])
    raise ParseError(f"Unsupported value type: {type(value).__name__}")


def to_value(node: Node) -> Any:
    return node.to_value()


def format_scalar(node: Node) -> str:
    """
    Canonical text for a scalar node.

    Used for set-mode identities in paths, e.g. ``/items[id=1]``.
    """
    if isinstance(node, NullNode):
        return "null"
    if isinstance(node, BoolNode):
        return "true" if node.value else "false"
    if isinstance(node, NumberNode):
        if _is_integral(node.value):
            return str(int(node.value))
        return repr(node.value)
    if isinstance(node, StringNode):
        return node.value
    raise TypeError(f"Not a scalar node: {node.kind.value}")


def escape_segment(text: str) -> str:
    """
    Escape path syntax in an object key or identity.

    Example: "kubernetes.io/change-cause" -> "kubernetes.io~1change-cause"
    """
    for char, escaped in _ESCAPES:
        text = text.replace(char, escaped)
    return text


def unescape_segment(text: str) -> str:
    if "~" not in text:
        return text
    for char, escaped in reversed(_ESCAPES):
        text = text.replace(escaped, char)
    return text


def join_path(base: str, key: str) -> str:
    """Build a child path from a parent path and an object key."""
    if base in ("", "/"):
        return "/" + escape_segment(key)
    return f"{base}/{escape_segment(key)}"


def index_path(base: str, index: int) -> str:
    return f"{base}[{index}]"


def identity_path(base: str, key: str, identity: str) -> str:
    return f"{base}[{escape_segment(key)}={escape_segment(identity)}]"


def parse_path(path: str) -> list[str]:
    """
    Split a canonical path into segments.

    Example: "/spec/containers[0]/name" -> ["spec", "containers[0]", "name"]
    """
    trimmed = path.lstrip("/") if path else ""
    if not trimmed:
        return []
    return trimmed.split("/")


def parse_segment(segment: str) -> Optional[tuple[str, list]]:
    """
    Parse one path segment into its key name and array selectors.

    Selectors are ints for ``[0]`` and ``(key, identity)`` tuples for
    ``[key=value]``.

    Examples:
        "containers[0]"      -> ("containers", [0])
        "items[id=7]"        -> ("items", [("id", "7")])
        "[1][2]"             -> ("", [1, 2])
        "name"               -> ("name", [])
        "a~1b"               -> ("a/b", [])

    Returns:
        (name, selectors), or None when the segment is malformed
    """
    match = _SEGMENT_RE.match(segment)
    if not match:
        return None

    selectors: list = []
    for inner in _BRACKET_RE.findall(match.group(2)):
        if inner.isdigit():
            selectors.append(int(inner))
        elif "=" in inner:
            key, identity = inner.split("=", 1)
            selectors.append((unescape_segment(key), unescape_segment(identity)))
        else:
            return None
    return unescape_segment(match.group(1)), selectors


def _select_item(array: ArrayNode, selector) -> Optional[Node]:
    if isinstance(selector, int):
        if selector < len(array.items):
            return array.items[selector]
        return None

    key, identity = selector
    for item in array.items:
        if not isinstance(item, ObjectNode):
            continue
        member = item.members.get(key)
        if member is not None and member.is_scalar and format_scalar(member) == identity:
            return item
    return None


def _is_integral(value: float) -> bool:
    return math.isfinite(value) and value.is_integer() and abs(value) < _MAX_EXACT_INT
