"""Command line interface for configdiff."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from . import __version__
from .config import FileConfig, load_config, load_config_file
from .engine import diff_bytes
from .models import Coercions, DiffResult, Options
from .parse import detect_format
from .report import ReportOptions, generate
from .exceptions import ConfigDiffError, OptionsError, ParseError

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("report", "compact", "json", "patch")
INPUT_FORMATS = ("auto", "yaml", "json", "hcl")
CONFIG_EXTENSIONS = {
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".hcl": "hcl",
    ".tf": "hcl",
}
DEFAULT_MAX_VALUE_LENGTH = 80

EXIT_OK = 0
EXIT_CHANGES = 1
EXIT_ERROR = 2


@dataclass
class CLIOptions:
    """All command line flag values.  None means the flag was not given."""
    old_file: str = ""
    new_file: str = ""
    format: str = "auto"
    old_format: str = ""
    new_format: str = ""
    ignore_paths: list[str] = field(default_factory=list)
    array_keys: list[str] = field(default_factory=list)
    numeric_strings: bool = False
    bool_strings: bool = False
    stable_order: Optional[bool] = None
    output_format: str = ""
    max_value_length: Optional[int] = None
    quiet: bool = False
    exit_code: bool = False
    recursive: bool = False

    def apply_config_defaults(self, cfg: FileConfig) -> 'CLIOptions':
        """
        Merge configuration file defaults into these options.

        Ignore paths and array keys from both sources are combined; every
        other flag given on the command line wins over the file.

        Returns:
            New, merged options
        """
        ignore_paths = list(dict.fromkeys(cfg.ignore_paths + self.ignore_paths))
        array_keys = [f"{path}={key}" for path, key in cfg.array_keys.items()]
        array_keys.extend(self.array_keys)

        return replace(
            self,
            ignore_paths=ignore_paths,
            array_keys=array_keys,
            numeric_strings=self.numeric_strings or cfg.numeric_strings,
            bool_strings=self.bool_strings or cfg.bool_strings,
            stable_order=self.stable_order if self.stable_order is not None else cfg.stable_order,
            output_format=self.output_format or cfg.output_format,
            max_value_length=(
                self.max_value_length if self.max_value_length is not None
                else cfg.max_value_length or None
            ),
        )

    def validate(self):
        """
        Validate flag values.

        Raises:
            OptionsError: On an unknown format or a negative length
        """
        output_format = self.output_format or "report"
        if output_format not in OUTPUT_FORMATS:
            raise OptionsError(
                f"invalid output format {output_format!r}, must be one of: "
                f"{', '.join(OUTPUT_FORMATS)}",
                "output"
            )

        for option, value in (
            ("format", self.format),
            ("old-format", self.old_format),
            ("new-format", self.new_format),
        ):
            if value and value not in INPUT_FORMATS:
                raise OptionsError(
                    f"invalid {option} {value!r}, must be one of: {', '.join(INPUT_FORMATS)}",
                    option
                )

        if self.max_value_length is not None and self.max_value_length < 0:
            raise OptionsError("max-value-length must not be negative", "max-value-length")

        if self.old_file == "-" and self.new_file == "-":
            raise OptionsError("old-file and new-file cannot both be stdin (\"-\")")

    def to_options(self) -> Options:
        """
        Convert to engine options.

        Array keys use the ``path=key`` form; a leading ``/`` is added to
        the path when missing.
        """
        array_set_keys = {}
        for spec in self.array_keys:
            path, sep, key = spec.partition("=")
            if not sep or not path or not key:
                raise OptionsError(
                    f"invalid array-key format {spec!r}, expected path=key", "array-key"
                )
            if not path.startswith("/"):
                path = "/" + path
            array_set_keys[path] = key

        return Options(
            ignore_paths=tuple(self.ignore_paths),
            array_set_keys=array_set_keys,
            coercions=Coercions(
                numeric_strings=self.numeric_strings,
                bool_strings=self.bool_strings
            ),
            stable_order=True if self.stable_order is None else self.stable_order
        )

    def get_old_format(self) -> str:
        return self.old_format or self.format

    def get_new_format(self) -> str:
        return self.new_format or self.format


@dataclass
class InputSource:
    """A configuration input read from a file or stdin."""
    path: str
    data: str
    format: str


def read_input(path: str, format_hint: str = "auto") -> InputSource:
    """
    Read configuration data from a file, or from stdin when path is "-".

    The format is taken from the hint, then the file extension, then the
    content.
    """
    try:
        data = sys.stdin.read() if path == "-" else Path(path).read_text()
    except OSError as e:
        raise ParseError(f"failed to read {path!r}: {e.strerror or e}")

    fmt = format_hint
    if not fmt or fmt == "auto":
        fmt = CONFIG_EXTENSIONS.get(Path(path).suffix.lower(), "") if path != "-" else ""
        if not fmt:
            try:
                fmt = detect_format(data).value
            except ParseError:
                raise ParseError(
                    f"unable to detect format for {path!r}; specify it with --format"
                )

    return InputSource(path=path, data=data, format=fmt)


def format_output(result: DiffResult, output_format: str, max_value_length: int) -> str:
    if output_format == "compact":
        return generate(result.changes, ReportOptions(compact=True, show_values=False))
    if output_format == "json":
        return json.dumps([c.to_dict() for c in result.changes], indent=2, ensure_ascii=False)
    if output_format == "patch":
        return result.patch.to_json(indent=2)
    return generate(result.changes, ReportOptions(max_value_length=max_value_length))


def compare_files(opts: CLIOptions, old_file: str, new_file: str) -> tuple[bool, str]:
    """
    Compare two files.

    Returns:
        (has_changes, rendered output)
    """
    old_input = read_input(old_file, opts.get_old_format())
    new_input = read_input(new_file, opts.get_new_format())

    result = diff_bytes(
        old_input.data, old_input.format,
        new_input.data, new_input.format,
        opts.to_options()
    )

    max_length = (
        opts.max_value_length if opts.max_value_length is not None
        else DEFAULT_MAX_VALUE_LENGTH
    )
    output = format_output(result, opts.output_format or "report", max_length)
    return result.has_changes, output


def collect_config_files(directory: Path) -> set[str]:
    """Relative paths of all config files under a directory."""
    return {
        path.relative_to(directory).as_posix()
        for path in directory.rglob("*")
        if path.is_file() and path.suffix.lower() in CONFIG_EXTENSIONS
    }


def compare_directories(opts: CLIOptions, old_dir: Path, new_dir: Path) -> bool:
    """
    Compare all config files in two directory trees.

    Files that fail to parse are reported and skipped.

    Returns:
        True if any file differs, was added or was removed
    """
    old_files = collect_config_files(old_dir)
    new_files = collect_config_files(new_dir)

    has_changes = False
    compared = added = removed = 0

    for rel_path in sorted(old_files | new_files):
        if rel_path in old_files and rel_path in new_files:
            try:
                file_changed, output = compare_files(
                    opts, str(old_dir / rel_path), str(new_dir / rel_path)
                )
            except ConfigDiffError as e:
                logger.error("%s: %s", rel_path, e)
                continue
            compared += 1
            has_changes = has_changes or file_changed
            if not opts.quiet:
                print(f"\n=== {rel_path} ===")
                print(output)
        elif rel_path in new_files:
            added += 1
            has_changes = True
            if not opts.quiet:
                print(f"\n+++ {rel_path} (added)")
        else:
            removed += 1
            has_changes = True
            if not opts.quiet:
                print(f"\n--- {rel_path} (removed)")

    if not opts.quiet:
        print(f"\nSummary: {compared} files compared, {added} added, {removed} removed")

    return has_changes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="configdiff",
        description="Semantic diff for YAML/JSON/HCL configuration files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  configdiff old.yaml new.yaml
  kubectl get deploy myapp -o yaml | configdiff old.yaml -
  configdiff old.yaml new.yaml -i /metadata/generation -i '/status/*'
  configdiff old.yaml new.yaml --array-key /spec/containers=name
  configdiff old.yaml new.yaml -o patch
  configdiff -r old/ new/ --exit-code
        """
    )

    parser.add_argument("old_file", help="Old file or directory (\"-\" for stdin)")
    parser.add_argument("new_file", help="New file or directory (\"-\" for stdin)")

    parser.add_argument("-f", "--format", default="auto", help="Input format (yaml, json, hcl, auto)")
    parser.add_argument("--old-format", default="", help="Old file format override")
    parser.add_argument("--new-format", default="", help="New file format override")

    parser.add_argument("-i", "--ignore", dest="ignore_paths", action="append", default=[],
                        help="Path to ignore, '/*' suffix for a subtree (repeatable)")
    parser.add_argument("--array-key", dest="array_keys", action="append", default=[],
                        help="Compare array as set by key field (format: path=key)")
    parser.add_argument("--numeric-strings", action="store_true",
                        help="Treat numeric strings as equal to numbers")
    parser.add_argument("--bool-strings", action="store_true",
                        help="Treat \"true\"/\"false\" strings as equal to booleans")
    parser.add_argument("--stable-order", action=argparse.BooleanOptionalAction, default=None,
                        help="Sort output by path (default: on)")

    parser.add_argument("-o", "--output", dest="output_format", default="",
                        help="Output format (report, compact, json, patch)")
    parser.add_argument("--max-value-length", type=int, default=None,
                        help="Truncate values longer than N chars (0 = no limit)")
    parser.add_argument("-q", "--quiet", action="store_true", help="No output")
    parser.add_argument("--exit-code", action="store_true",
                        help="Exit with status 1 if differences are found")
    parser.add_argument("-r", "--recursive", action="store_true",
                        help="Compare directories recursively")
    parser.add_argument("--config", help="Configuration file (default: .configdiffrc lookup)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr
    )

    opts = CLIOptions(
        old_file=args.old_file,
        new_file=args.new_file,
        format=args.format,
        old_format=args.old_format,
        new_format=args.new_format,
        ignore_paths=args.ignore_paths,
        array_keys=args.array_keys,
        numeric_strings=args.numeric_strings,
        bool_strings=args.bool_strings,
        stable_order=args.stable_order,
        output_format=args.output_format,
        max_value_length=args.max_value_length,
        quiet=args.quiet,
        exit_code=args.exit_code,
        recursive=args.recursive,
    )

    try:
        cfg = load_config_file(args.config) if args.config else load_config()
        opts = opts.apply_config_defaults(cfg)
        opts.validate()
        has_changes = run(opts)
    except ConfigDiffError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if opts.exit_code and has_changes:
        return EXIT_CHANGES
    return EXIT_OK


def run(opts: CLIOptions) -> bool:
    """Run the comparison described by the options; True if anything changed."""
    old_path, new_path = Path(opts.old_file), Path(opts.new_file)
    old_is_dir = opts.old_file != "-" and old_path.is_dir()
    new_is_dir = opts.new_file != "-" and new_path.is_dir()

    if old_is_dir and new_is_dir:
        if not opts.recursive:
            raise OptionsError("comparing directories requires --recursive", "recursive")
        return compare_directories(opts, old_path, new_path)
    if old_is_dir or new_is_dir:
        raise OptionsError(
            f"cannot compare a directory with a file: {opts.old_file!r}, {opts.new_file!r}"
        )

    has_changes, output = compare_files(opts, opts.old_file, opts.new_file)
    if not opts.quiet:
        print(output.rstrip("\n"))
    return has_changes


if __name__ == "__main__":
    sys.exit(main())
