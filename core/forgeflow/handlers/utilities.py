"""Utility handlers: string, array and field manipulation, merging, generators."""

from __future__ import annotations

import copy
import json
import random
import re
import string
import uuid
from functools import cmp_to_key
from typing import TYPE_CHECKING, Any

from forgeflow.graph.interpolation import MISSING, resolve_path, stringify
from forgeflow.graph.node import NodeType
from forgeflow.handlers.coerce import parse_int
from forgeflow.handlers.types import HandlerContext, LogLevel

if TYPE_CHECKING:
    from forgeflow.handlers.registry import HandlerRegistry

_ALPHANUMERIC = string.ascii_letters + string.digits


def _unescape(text: str) -> str:
    """Form fields carry ``\\n``/``\\t`` literally."""
    return text.replace("\\n", "\n").replace("\\t", "\t")


def _preview(value: Any, limit: int = 50) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)[:limit]
    return str(value)[:limit]


def _maybe_json(value: Any) -> Any:
    """Parse a string as JSON, keeping it as a string when it is not JSON."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _field(item: Any, path: str | None) -> Any:
    if not path:
        return item
    value = resolve_path(path, item) if isinstance(item, dict) else MISSING
    return None if value is MISSING else value


def _dedupe_key(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    return value


def _flatten(items: list[Any]) -> list[Any]:
    flat: list[Any] = []
    for item in items:
        if isinstance(item, list):
            flat.extend(_flatten(item))
        else:
            flat.append(item)
    return flat


def _compare(a: Any, b: Any) -> int:
    # None sorts after every value
    if a is None:
        return 0 if b is None else 1
    if b is None:
        return -1
    if isinstance(a, str):
        a = a.lower()
    if isinstance(b, str):
        b = b.lower()
    try:
        return (a > b) - (a < b)
    except TypeError:
        return (str(a) > str(b)) - (str(a) < str(b))


def transform_string(text: str, mode: str, data: dict[str, Any]) -> str | list[str]:
    """Apply one ``util_string`` mode to ``text``."""
    if mode == "lower":
        return text.lower()
    if mode == "upper":
        return text.upper()
    if mode == "title":
        return re.sub(r"\b\w", lambda m: m.group(0).upper(), text)
    if mode == "camel":
        result = re.sub(
            r"[-_\s]+(.)?", lambda m: m.group(1).upper() if m.group(1) else "", text.lower()
        )
        return result[:1].lower() + result[1:]
    if mode == "snake":
        result = re.sub(r"([A-Z])", r"_\1", text).lower()
        result = re.sub(r"[-\s]+", "_", result)
        return re.sub(r"_+", "_", re.sub(r"^_", "", result))
    if mode == "kebab":
        result = re.sub(r"([A-Z])", r"-\1", text).lower()
        result = re.sub(r"[_\s]+", "-", result)
        return re.sub(r"-+", "-", re.sub(r"^-", "", result))
    if mode == "trim":
        return text.strip()
    if mode in ("padStart", "padEnd"):
        width = parse_int(data.get("length")) or 10
        fill = (str(data.get("char") or " "))[:1]
        return text.rjust(width, fill) if mode == "padStart" else text.ljust(width, fill)
    if mode == "split":
        return text.split(_unescape(str(data.get("delimiter") or ",")))
    if mode == "replace":
        pattern = str(data.get("delimiter") or "")
        return re.sub(pattern, lambda _: str(data.get("replacement") or ""), text)
    if mode == "substring":
        start = parse_int(data.get("start")) or 0
        length = parse_int(data.get("length"))
        return text[start : start + length] if length else text[start:]
    return text


def transform_array(items: list[Any], mode: str, data: dict[str, Any]) -> Any:
    """Apply one ``util_array`` mode to ``items``. The input list is not mutated."""
    field = data.get("field") or None

    if mode == "length":
        return len(items)
    if mode == "push":
        return [*items, _maybe_json(data.get("item"))]
    if mode == "slice":
        start = parse_int(data.get("start")) or 0
        end = data.get("end")
        return items[start:] if end in (None, "") else items[start : parse_int(end)]
    if mode == "join":
        separator = _unescape(str(data.get("separator") or ", "))
        return separator.join(
            json.dumps(i, default=str) if isinstance(i, (dict, list)) else str(i) for i in items
        )
    if mode == "map":
        return [_field(item, field) for item in items]
    if mode == "sort":
        ordered = sorted(
            items, key=cmp_to_key(lambda a, b: _compare(_field(a, field), _field(b, field)))
        )
        return list(reversed(ordered)) if data.get("order") == "desc" else ordered
    if mode == "reverse":
        return list(reversed(items))
    if mode == "unique":
        seen: set[Any] = set()
        unique = []
        for item in items:
            key = _dedupe_key(_field(item, field))
            if key not in seen:
                seen.add(key)
                unique.append(item)
        return unique
    if mode == "flatten":
        return _flatten(items)
    if mode == "first":
        return items[0] if items else None
    if mode == "last":
        return items[-1] if items else None
    return list(items)


def set_path(obj: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Set a dotted path on ``obj``, creating intermediate objects."""
    parts = path.split(".")
    current = obj
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value
    return obj


def register_handlers(registry: HandlerRegistry) -> None:
    """Register utility handlers."""

    @registry.handler(NodeType.UTIL_STRING)
    async def util_string(ctx: HandlerContext) -> str | list[str]:
        source = ctx.data.get("text") or ctx.variables.get("output") or ""
        mode = ctx.data.get("mode") or "lower"
        ctx.log(LogLevel.INFO, f"📝 String: {mode}")

        result = transform_string(str(source), mode, ctx.data)
        preview = f"[{len(result)} items]" if isinstance(result, list) else result[:50]
        ctx.log(LogLevel.SUCCESS, f"✓ Result: {preview}")
        return result

    @registry.handler(NodeType.UTIL_ARRAY)
    async def util_array(ctx: HandlerContext) -> Any:
        source = ctx.data.get("array") or ctx.variables.get("output")
        try:
            items = json.loads(source) if isinstance(source, str) else source
        except json.JSONDecodeError:
            items = []
        if not isinstance(items, list):
            items = []

        mode = ctx.data.get("mode") or "length"
        ctx.log(LogLevel.INFO, f"📚 Array: {mode} ({len(items)} items)")

        result = transform_array(items, mode, ctx.data)
        ctx.log(LogLevel.SUCCESS, f"✓ Result: {_preview(result)}")
        return result

    @registry.handler(NodeType.UTIL_FIELD)
    async def util_field(ctx: HandlerContext) -> Any:
        mode = ctx.data.get("mode") or "get"
        path = str(ctx.data.get("path") or "")
        ctx.log(LogLevel.INFO, f"📍 Field: {mode} {path}")

        source = ctx.variables.get("output")
        if mode == "get":
            if not isinstance(source, (dict, list)) or not source:
                ctx.log(LogLevel.WARN, "⚠ No object in output")
                return None
            value = resolve_path(path, source) if isinstance(source, dict) else MISSING
            if value is MISSING:
                value = None
            ctx.log(LogLevel.SUCCESS, f"✓ Value: {_preview(value)}")
            return value

        obj = copy.deepcopy(source) if isinstance(source, dict) else {}
        set_path(obj, path, _maybe_json(ctx.data.get("value")))
        ctx.log(LogLevel.SUCCESS, "✓ Field set")
        return obj

    @registry.handler(NodeType.UTIL_MERGE)
    async def util_merge(ctx: HandlerContext) -> Any:
        mode = ctx.data.get("mode") or "array"
        inputs = ctx.data.get("inputs")
        ctx.log(LogLevel.INFO, f"🔗 Merge: {mode}")

        if not isinstance(inputs, list):
            ctx.log(LogLevel.SUCCESS, "✓ Merge prepared")
            return {"mode": mode}

        if mode == "array":
            merged: Any = []
            for item in inputs:
                merged.extend(item if isinstance(item, list) else [item])
        elif mode == "object":
            merged = {}
            for item in inputs:
                if isinstance(item, dict):
                    merged.update(item)
        elif mode == "concat":
            merged = "".join(stringify(item) for item in inputs)
        else:
            raise ValueError(f"Unknown merge mode: {mode}")
        ctx.log(LogLevel.SUCCESS, f"✓ Merged {len(inputs)} inputs")
        return merged

    @registry.handler(NodeType.UTIL_GENERATE)
    async def util_generate(ctx: HandlerContext) -> Any:
        mode = ctx.data.get("mode") or "uuid"
        ctx.log(LogLevel.INFO, f"🎲 Generate: {mode}")

        if mode == "number":
            low = parse_int(ctx.data.get("min")) or 0
            high = parse_int(ctx.data.get("max")) or 100
            result: Any = random.randint(min(low, high), max(low, high))
        elif mode == "string":
            length = parse_int(ctx.data.get("length")) or 8
            result = "".join(random.choices(_ALPHANUMERIC, k=length))
        else:
            result = str(uuid.uuid4())

        ctx.log(LogLevel.SUCCESS, f"✓ Generated: {result}")
        return result
