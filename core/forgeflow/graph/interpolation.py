"""Placeholder interpolation: ``{{path.to.value}}`` expansion against run variables."""

from __future__ import annotations

import json
import logging
import re
import warnings
from collections.abc import Mapping
from typing import Any

from forgeflow.graph.errors import InterpolationMiss

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a path that does not resolve (distinct from a stored None)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

# A value that is exactly one placeholder keeps the raw typed value
_WHOLE_RE = re.compile(r"\{\{([^}]+)\}\}")
# Placeholders embedded in surrounding text are stringified
_EMBEDDED_RE = re.compile(r"\{\{([^}]+)\}\}")
# One path segment with trailing indices: items[0] or grid[1][2]
_INDEXED_SEGMENT_RE = re.compile(r"^(\w+)((?:\[\d+\])+)$")
_INDEX_RE = re.compile(r"\[(\d+)\]")


def _step(current: Any, key: str) -> Any:
    """Access one member of ``current``; MISSING when it cannot be reached."""
    if current is None or current is MISSING:
        return MISSING
    if isinstance(current, Mapping):
        return current[key] if key in current else MISSING
    if isinstance(current, (list, tuple, str)):
        if key == "length":
            return len(current)
        if key.isdigit() and isinstance(current, (list, tuple)):
            return _index(current, int(key))
    return MISSING


def _index(current: Any, idx: int) -> Any:
    if isinstance(current, (list, tuple)) and idx < len(current):
        return current[idx]
    return MISSING


def resolve_path(path: str, variables: Mapping[str, Any]) -> Any:
    """
    Resolve a dotted path like ``output.items[0].name`` against ``variables``.

    Supports member access, numeric segments on lists, ``length`` on lists and
    strings, and chained bracket indices on a single segment (``grid[1][2]``).

    Returns:
        The resolved value, or MISSING when any step is absent, None, or out of
        range. Never raises.
    """
    current: Any = variables
    for part in path.strip().split("."):
        part = part.strip()
        indexed = _INDEXED_SEGMENT_RE.match(part)
        if indexed:
            current = _step(current, indexed.group(1))
            for idx in _INDEX_RE.findall(indexed.group(2)):
                current = _index(current, int(idx))
                if current is MISSING:
                    return MISSING
        else:
            current = _step(current, part)
        if current is MISSING:
            return MISSING
    return current


def _report_miss(placeholder: str) -> None:
    message = f"Unresolved placeholder left as-is: {placeholder}"
    logger.debug(message)
    warnings.warn(message, InterpolationMiss, stacklevel=4)


def stringify(value: Any) -> str:
    """
    Text form of a value embedded in a larger string.

    Booleans and None use JSON spelling (``true``/``false``/``null``) so that
    interpolated conditions read naturally; containers become indented JSON.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    return str(value)


def interpolate_string(template: str, variables: Mapping[str, Any]) -> Any:
    """
    Interpolate one string.

    A string that is exactly ``{{path}}`` resolves to the raw value (list,
    dict, number...). Otherwise every placeholder is replaced by its string
    form. Unresolvable placeholders are left as written.
    """
    whole = _WHOLE_RE.fullmatch(template)
    if whole:
        value = resolve_path(whole.group(1), variables)
        if value is MISSING:
            _report_miss(template)
            return template
        return value

    def replacer(match: re.Match) -> str:
        value = resolve_path(match.group(1), variables)
        if value is MISSING:
            _report_miss(match.group(0))
            return match.group(0)
        return stringify(value)

    return _EMBEDDED_RE.sub(replacer, template)


def interpolate_value(value: Any, variables: Mapping[str, Any]) -> Any:
    """Recursively interpolate strings inside dicts and lists; other values pass through."""
    if isinstance(value, str):
        return interpolate_string(value, variables)
    if isinstance(value, dict):
        return interpolate_config(value, variables)
    if isinstance(value, list):
        return [interpolate_value(item, variables) for item in value]
    return value


def interpolate_config(config: Mapping[str, Any], variables: Mapping[str, Any]) -> dict[str, Any]:
    """Return a resolved copy of a node config. The input is never mutated."""
    return {key: interpolate_value(value, variables) for key, value in config.items()}


def has_placeholders(text: str) -> bool:
    return bool(_EMBEDDED_RE.search(text))
