"""Lenient conversions for values typed into node forms."""

import math
import re
from typing import Any

_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_int(value: Any) -> int | None:
    """
    Leading integer of a value: ``"250ms"`` -> 250, ``12.9`` -> 12.

    Returns:
        The integer, or None if the value does not start with one
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _INT_PREFIX_RE.match(value)
        if match:
            return int(match.group(1))
    return None


def parse_float(value: Any) -> float | None:
    """Leading number of a value: ``"3.5kg"`` -> 3.5. None if there is none."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _FLOAT_PREFIX_RE.match(value)
        if match:
            return float(match.group(1))
    return None


def as_number(value: float) -> int | float:
    """Collapse integral floats to int so 3.0 is reported as 3."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def as_bool(value: Any) -> bool:
    """Form checkbox value: true, "true", "1", "yes" and "on" are True."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)
