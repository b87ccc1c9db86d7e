"""Human-readable change reports for configdiff."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable, Optional

from .models import Change, ChangeType
from .tree import Node, NullNode, BoolNode, NumberNode, StringNode, ObjectNode, ArrayNode

NO_CHANGES = "No changes detected.\n"

_SYMBOLS = {
    ChangeType.ADD: "+",
    ChangeType.REMOVE: "-",
    ChangeType.MODIFY: "~",
    ChangeType.MOVE: "↔",
}


@dataclass
class ReportOptions:
    """
    Report rendering options.

    Attributes:
        compact: Drop the blank separator lines
        show_values: Include before/after values
        max_value_length: Truncate rendered values longer than this (0 = no limit)
    """
    compact: bool = False
    show_values: bool = True
    max_value_length: int = 80


@dataclass
class Summary:
    """Change counts by type."""
    total: int = 0
    added: int = 0
    removed: int = 0
    modified: int = 0
    moved: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "added": self.added,
            "removed": self.removed,
            "modified": self.modified,
            "moved": self.moved,
        }


def summarize_changes(changes: Iterable[Change]) -> Summary:
    summary = Summary()
    for change in changes:
        summary.total += 1
        if change.type == ChangeType.ADD:
            summary.added += 1
        elif change.type == ChangeType.REMOVE:
            summary.removed += 1
        elif change.type == ChangeType.MODIFY:
            summary.modified += 1
        elif change.type == ChangeType.MOVE:
            summary.moved += 1
    return summary


def format_summary(summary: Summary) -> str:
    parts = []
    if summary.added:
        parts.append(f"+{summary.added} added")
    if summary.removed:
        parts.append(f"-{summary.removed} removed")
    if summary.modified:
        parts.append(f"~{summary.modified} modified")
    if summary.moved:
        parts.append(f"↔{summary.moved} moved")
    return f"Summary: {', '.join(parts)} ({summary.total} total)\n"


def generate(changes: list[Change], options: Optional[ReportOptions] = None) -> str:
    """
    Render changes as a text report.

    Args:
        changes: Changes to render, in the order they should appear
        options: Rendering options (defaults if not provided)

    Returns:
        The report text
    """
    options = options or ReportOptions()
    if not changes:
        return NO_CHANGES

    lines = [format_summary(summarize_changes(changes))]
    if not options.compact:
        lines.append("\n")

    lines.append("Changes:\n")
    for i, change in enumerate(changes):
        lines.append(format_change(change, options))
        if not options.compact and i < len(changes) - 1:
            lines.append("\n")

    return "".join(lines)


def generate_compact(changes: list[Change]) -> str:
    return generate(changes, ReportOptions(compact=True, show_values=False))


def generate_detailed(changes: list[Change]) -> str:
    return generate(changes, ReportOptions(compact=False, show_values=True))


def format_change(change: Change, options: ReportOptions) -> str:
    """Format a single change as one report line."""
    symbol = _SYMBOLS.get(change.type, "?")
    if change.type == ChangeType.MOVE:
        line = f"  {symbol} {change.from_path} → {change.path}"
    else:
        line = f"  {symbol} {change.path}"

    if options.show_values:
        limit = options.max_value_length
        if change.type == ChangeType.ADD:
            line += f" = {format_value(change.new_value, limit)}"
        elif change.type == ChangeType.REMOVE:
            line += f" (was: {format_value(change.old_value, limit)})"
        elif change.type == ChangeType.MODIFY:
            line += (
                f": {format_value(change.old_value, limit)}"
                f" → {format_value(change.new_value, limit)}"
            )

    return line + "\n"


def format_value(node: Optional[Node], max_length: int = 0) -> str:
    """
    Convert a node to a short display string.

    Examples:
        NumberNode(3.0)          -> 3
        StringNode("web")        -> "web"
        ObjectNode({...})        -> {...} (2 keys)
    """
    if node is None:
        return "<nil>"

    if isinstance(node, NullNode):
        text = "null"
    elif isinstance(node, BoolNode):
        text = "true" if node.value else "false"
    elif isinstance(node, NumberNode):
        value = node.to_value()
        text = str(value) if isinstance(value, int) else f"{value:g}"
    elif isinstance(node, StringNode):
        text = json.dumps(node.value, ensure_ascii=False)
    elif isinstance(node, ObjectNode):
        text = f"{{...}} ({len(node.members)} keys)"
    elif isinstance(node, ArrayNode):
        text = f"[...] ({len(node.items)} items)"
    else:
        text = f"<{node.kind.value}>"

    if max_length > 0 and len(text) > max_length:
        text = text[:max(max_length - 3, 0)] + "..."
    return text
