"""Main comparison engine for configdiff."""

from __future__ import annotations

import logging
import time
from typing import Optional, Union

from .models import Change, DiffResult, Options
from .differ import Differ
from .patch import assemble, sort_changes
from .parse import parse
from .report import generate_detailed
from .tree import Node

logger = logging.getLogger(__name__)


class DiffEngine:
    """
    Comparison engine that runs the pipeline:

    1. Tree comparison: walk both trees and collect changes
    2. Ordering: sort by canonical path when stable order is requested
    3. Patch assembly: convert changes into apply-style operations
    4. Report: render changes as text
    """

    def __init__(self, options: Optional[Options] = None):
        """
        Initialize the engine.

        Args:
            options: Comparison options (uses defaults if not provided)
        """
        self.options = options or Options()

    def compare(self, old: Node, new: Node) -> list[Change]:
        """Compare two trees and return the ordered change list."""
        return self._compare(old, new)[0]

    def diff(self, old: Node, new: Node) -> DiffResult:
        """
        Compare two trees and build the full result.

        Args:
            old: The old/baseline tree
            new: The new tree

        Returns:
            DiffResult with changes, patch, report and warnings

        Raises:
            InvariantViolationError: If either tree breaks an engine invariant;
                no partial result is produced
        """
        changes, differ = self._compare(old, new)
        return DiffResult(
            changes=changes,
            patch=assemble(changes),
            report=generate_detailed(changes),
            warnings=list(differ.warnings)
        )

    def _compare(self, old: Node, new: Node) -> tuple[list[Change], Differ]:
        start_time = time.perf_counter()

        differ = Differ(self.options)
        changes = differ.diff(old, new)
        if self.options.stable_order:
            changes = sort_changes(changes)

        logger.debug(
            "Compared %d node pairs, %d changes, %d warnings in %.1fms",
            differ.nodes_compared,
            len(changes),
            len(differ.warnings),
            (time.perf_counter() - start_time) * 1000
        )
        return changes, differ


def compare(old: Node, new: Node, options: Optional[Options] = None) -> list[Change]:
    """
    Convenience function to compare two trees.

    Args:
        old: The old/baseline tree
        new: The new tree
        options: Optional comparison options

    Returns:
        Ordered list of changes
    """
    return DiffEngine(options).compare(old, new)


def diff_trees(old: Node, new: Node, options: Optional[Options] = None) -> DiffResult:
    return DiffEngine(options).diff(old, new)


def diff_bytes(
    old: Union[str, bytes],
    old_format: str,
    new: Union[str, bytes],
    new_format: str,
    options: Optional[Options] = None
) -> DiffResult:
    """
    Parse two documents and compare them.

    Formats may differ, e.g. a YAML file against its JSON rendering.

    Raises:
        ParseError: If either document cannot be parsed
    """
    old_tree = parse(old, old_format)
    new_tree = parse(new, new_format)
    return diff_trees(old_tree, new_tree, options)


def diff_yaml(old: Union[str, bytes], new: Union[str, bytes], options: Optional[Options] = None) -> DiffResult:
    return diff_bytes(old, "yaml", new, "yaml", options)


def diff_json(old: Union[str, bytes], new: Union[str, bytes], options: Optional[Options] = None) -> DiffResult:
    return diff_bytes(old, "json", new, "json", options)
