"""Parsers that turn configuration text into document trees."""

from __future__ import annotations

import json
from enum import Enum
from typing import Union

import hcl2
import yaml
from lark.exceptions import LarkError

from .tree import Node, from_value
from .exceptions import ParseError


class Format(Enum):
    YAML = "yaml"
    JSON = "json"
    HCL = "hcl"


def parse(data: Union[str, bytes], fmt: Union[Format, str]) -> Node:
    """
    Parse configuration data in the given format.

    Args:
        data: Raw document text
        fmt: "yaml", "json" or "hcl"

    Returns:
        The root node, with canonical paths assigned
    """
    try:
        fmt = Format(fmt)
    except ValueError:
        raise ParseError(f"Unsupported format: {fmt}", str(fmt))

    if fmt == Format.YAML:
        return parse_yaml(data)
    if fmt == Format.HCL:
        return parse_hcl(data)
    return parse_json(data)


def parse_yaml(data: Union[str, bytes]) -> Node:
    try:
        value = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML: {e}", Format.YAML.value)
    return _to_tree(value, Format.YAML)


def parse_json(data: Union[str, bytes]) -> Node:
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    if not data.strip():
        return _to_tree(None, Format.JSON)
    try:
        value = json.loads(data)
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Failed to parse JSON: {e.msg} (line {e.lineno}, column {e.colno})",
            Format.JSON.value
        )
    return _to_tree(value, Format.JSON)


def parse_hcl(data: Union[str, bytes]) -> Node:
    """
    Parse HCL (e.g. Terraform variables) into a tree.

    Attributes become object members; blocks keep the nesting python-hcl2
    gives them, a list of objects per block type.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    if not data.endswith("\n"):
        data += "\n"
    try:
        value = hcl2.loads(data)
    except LarkError as e:
        raise ParseError(f"Failed to parse HCL: {e}", Format.HCL.value)
    return _to_tree(value, Format.HCL)


def detect_format(data: Union[str, bytes]) -> Format:
    """
    Detect the format of a document from its content.

    JSON is tried first since it is the stricter format.  HCL is never
    detected from content; it is chosen by file extension or explicitly.
    """
    text = data.decode("utf-8") if isinstance(data, bytes) else data
    stripped = text.lstrip()
    if not stripped:
        raise ParseError("Unable to detect format of empty input")

    if stripped[0] in "{[":
        try:
            json.loads(text)
            return Format.JSON
        except json.JSONDecodeError:
            pass

    try:
        yaml.safe_load(text)
    except yaml.YAMLError:
        raise ParseError("Unable to detect format")
    return Format.YAML


def _to_tree(value, fmt: Format) -> Node:
    try:
        node = from_value(value)
    except ParseError as e:
        raise ParseError(e.message, fmt.value)
    node.set_paths("/")
    return node
