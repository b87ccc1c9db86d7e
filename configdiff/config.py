"""Configuration file loading for configdiff."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".configdiffrc", ".configdiff.yaml")


@dataclass
class FileConfig:
    """Defaults read from a configuration file."""
    ignore_paths: list[str] = field(default_factory=list)
    array_keys: dict[str, str] = field(default_factory=dict)
    numeric_strings: bool = False
    bool_strings: bool = False
    stable_order: Optional[bool] = None
    output_format: str = ""
    max_value_length: int = 0
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, source: Optional[str] = None) -> 'FileConfig':
        """
        Build a config from parsed YAML.

        Raises:
            ConfigError: If a known key has the wrong type
        """
        if not isinstance(data, dict):
            raise ConfigError("top level must be a mapping", source)

        ignore_paths = data.get('ignore_paths') or []
        array_keys = data.get('array_keys') or {}
        if not isinstance(ignore_paths, list):
            raise ConfigError("'ignore_paths' must be a list", source)
        if not isinstance(array_keys, dict):
            raise ConfigError("'array_keys' must be a mapping of path to key field", source)

        return cls(
            ignore_paths=[str(p) for p in ignore_paths],
            array_keys={str(k): str(v) for k, v in array_keys.items()},
            numeric_strings=_get_bool(data, 'numeric_strings', source),
            bool_strings=_get_bool(data, 'bool_strings', source),
            stable_order=(
                _get_bool(data, 'stable_order', source)
                if data.get('stable_order') is not None else None
            ),
            output_format=str(data.get('output_format') or ""),
            max_value_length=_get_int(data, 'max_value_length', source),
            source=source
        )


def default_locations(cwd: Optional[Path] = None, home: Optional[Path] = None) -> list[Path]:
    """Config file locations in lookup order: working directory, then home."""
    cwd = cwd or Path.cwd()
    locations = [cwd / name for name in CONFIG_FILENAMES]

    if home is None:
        try:
            home = Path.home()
        except RuntimeError:
            home = None
    if home is not None:
        locations.extend(home / name for name in CONFIG_FILENAMES)

    return locations


def load_config_file(path: str | Path) -> FileConfig:
    """
    Load configuration from a specific file.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigError(f"cannot read file: {e.strerror or e}", str(path))

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", str(path))

    return FileConfig.from_dict(data or {}, source=str(path))


def load_config(locations: Optional[list[Path]] = None) -> FileConfig:
    """
    Load the first usable configuration file.

    Args:
        locations: Files to try in order (standard locations if not provided)

    Returns:
        The first config that loads, or an empty config if none does
    """
    for path in locations if locations is not None else default_locations():
        if not path.is_file():
            continue
        try:
            cfg = load_config_file(path)
        except ConfigError as e:
            logger.warning("Skipping config file: %s", e)
            continue
        logger.debug("Loaded config from %s", path)
        return cfg

    return FileConfig()


def _get_bool(data: dict, key: str, source: Optional[str]) -> bool:
    value: Any = data.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false", source)
    return value


def _get_int(data: dict, key: str, source: Optional[str]) -> int:
    value: Any = data.get(key, 0)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"'{key}' must be a non-negative integer", source)
    return value
