"""Coercion-aware scalar equality for configdiff."""

from __future__ import annotations

import re
from typing import Optional

from .models import Coercions
from .tree import Node, NullNode, BoolNode, NumberNode, StringNode
from .exceptions import InvariantViolationError


# Decimal and exponent forms, plus inf/nan; no whitespace or underscores
_NUMBER_RE = re.compile(
    r'^[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)$',
    re.IGNORECASE
)


def parse_number(text: str) -> Optional[float]:
    """
    Parse a string as a number.

    Args:
        text: The string to parse

    Returns:
        The parsed float, or None if the string is not a number
    """
    if not _NUMBER_RE.match(text):
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_bool(text: str) -> Optional[bool]:
    """Parse exactly "true" or "false" (case-sensitive)."""
    if text == "true":
        return True
    if text == "false":
        return False
    return None


def equal_scalars(old: Node, new: Node, coercions: Coercions) -> bool:
    """
    Decide whether two scalar nodes are the same under coercion rules.

    Same-kind scalars compare by raw value; numbers use plain float
    equality with no tolerance.  Cross-kind pairs are equal only when the
    matching coercion is enabled.

    Args:
        old: The old scalar node
        new: The new scalar node
        coercions: Enabled coercion rules

    Returns:
        True if the values are considered equal
    """
    if not old.is_scalar or not new.is_scalar:
        raise InvariantViolationError(
            f"Scalar comparison of {old.kind.value} and {new.kind.value}",
            new.path or old.path
        )

    if type(old) is type(new):
        if isinstance(old, NullNode):
            return True
        return old.value == new.value

    if coercions.numeric_strings:
        matched = _string_and(old, new, NumberNode)
        if matched is not None:
            text, number = matched
            parsed = parse_number(text.value)
            return parsed is not None and parsed == number.value

    if coercions.bool_strings:
        matched = _string_and(old, new, BoolNode)
        if matched is not None:
            text, flag = matched
            parsed = parse_bool(text.value)
            return parsed is not None and parsed == flag.value

    return False


def _string_and(old: Node, new: Node, other_type: type):
    """Return (string node, other node) when the pair is String/other_type."""
    if isinstance(old, StringNode) and isinstance(new, other_type):
        return old, new
    if isinstance(new, StringNode) and isinstance(old, other_type):
        return new, old
    return None
