"""
configdiff - Semantic diff for YAML, JSON and HCL configuration files

Compares two configuration documents as trees rather than text, so key
order and formatting are ignored. Produces an ordered change list, an
RFC 6902 style patch and a human-readable report, with support for
ignore paths, keyed (set-mode) array matching and type coercions.
"""

from .engine import (
    DiffEngine,
    compare,
    diff_trees,
    diff_bytes,
    diff_yaml,
    diff_json,
)
from .models import (
    Options,
    Coercions,
    Change,
    ChangeType,
    Operation,
    OperationType,
    Patch,
    DiffResult,
    WarningEntry,
)
from .tree import (
    Node,
    NodeKind,
    NullNode,
    BoolNode,
    NumberNode,
    StringNode,
    ObjectNode,
    ArrayNode,
    from_value,
)
from .differ import Differ, reconcile
from .comparators import equal_scalars
from .matcher import is_ignored, PathMatcher
from .patch import assemble, apply_patch, sort_changes
from .parse import Format, parse, detect_format
from .report import ReportOptions, generate, generate_compact, generate_detailed
from .exceptions import (
    ConfigDiffError,
    InvariantViolationError,
    ParseError,
    ConfigError,
    OptionsError,
    PatchError,
)

__version__ = "0.1.0"
__all__ = [
    # Engine
    "DiffEngine",
    "compare",
    "diff_trees",
    "diff_bytes",
    "diff_yaml",
    "diff_json",
    "Options",
    "Coercions",
    # Results
    "Change",
    "ChangeType",
    "Operation",
    "OperationType",
    "Patch",
    "DiffResult",
    "WarningEntry",
    # Tree
    "Node",
    "NodeKind",
    "NullNode",
    "BoolNode",
    "NumberNode",
    "StringNode",
    "ObjectNode",
    "ArrayNode",
    "from_value",
    # Building blocks
    "Differ",
    "reconcile",
    "equal_scalars",
    "is_ignored",
    "PathMatcher",
    "assemble",
    "apply_patch",
    "sort_changes",
    "Format",
    "parse",
    "detect_format",
    "ReportOptions",
    "generate",
    "generate_compact",
    "generate_detailed",
    # Errors
    "ConfigDiffError",
    "InvariantViolationError",
    "ParseError",
    "ConfigError",
    "OptionsError",
    "PatchError",
]
