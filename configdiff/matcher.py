"""Path ignore matching for configdiff."""

from __future__ import annotations

from typing import Iterable

WILDCARD_SUFFIX = "/*"


def is_ignored(path: str, patterns: Iterable[str]) -> bool:
    """
    Check if a canonical path is excluded by any ignore pattern.

    A pattern matches when it equals the path, or when it ends in ``/*``
    and the path lies beneath the pattern's prefix.

    Examples:
        is_ignored("/status", ["/status"])          -> True
        is_ignored("/status/x", ["/status/*"])      -> True
        is_ignored("/statusx", ["/status/*"])       -> False

    Args:
        path: The canonical path to check
        patterns: Ignore patterns

    Returns:
        True if the path is ignored
    """
    for pattern in patterns:
        if path == pattern:
            return True
        if pattern.endswith(WILDCARD_SUFFIX):
            prefix = pattern[:-len(WILDCARD_SUFFIX)]
            if path.startswith(prefix + "/"):
                return True
    return False


class PathMatcher:
    """
    Precompiled ignore patterns.

    Exact patterns are looked up in a set; wildcard patterns are checked
    against their prefixes.
    """

    def __init__(self, patterns: Iterable[str]):
        self.patterns = tuple(patterns)
        self._exact = set(self.patterns)
        self._prefixes = tuple(
            p[:-len(WILDCARD_SUFFIX)] + "/"
            for p in self.patterns
            if p.endswith(WILDCARD_SUFFIX)
        )

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def matches(self, path: str) -> bool:
        if path in self._exact:
            return True
        return path.startswith(self._prefixes) if self._prefixes else False
