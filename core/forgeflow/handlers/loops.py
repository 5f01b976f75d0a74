"""
Loop handlers.

The engine has no loop-body semantics: these handlers validate the loop
settings and return a descriptor that downstream nodes (or a host) can use.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from forgeflow.graph.node import NodeType
from forgeflow.handlers.coerce import parse_int
from forgeflow.handlers.types import HandlerContext, LogLevel

if TYPE_CHECKING:
    from forgeflow.handlers.registry import HandlerRegistry

DEFAULT_MAX_ITERATIONS = 100


def register_handlers(registry: HandlerRegistry) -> None:
    """Register loop handlers."""

    @registry.handler(NodeType.LOOP_FOREACH)
    async def loop_foreach(ctx: HandlerContext) -> dict[str, Any]:
        items = ctx.data.get("array")
        if isinstance(items, str):
            try:
                items = json.loads(items)
            except json.JSONDecodeError:
                items = []
        if not isinstance(items, list):
            items = []

        item_var = ctx.data.get("itemVar") or "item"
        index_var = ctx.data.get("indexVar") or "index"
        ctx.log(LogLevel.INFO, f"🔄 For Each: {len(items)} items")
        ctx.log(LogLevel.INFO, f"   Variables: {item_var}, {index_var}")
        ctx.log(LogLevel.SUCCESS, "✓ Loop prepared")
        return {"items": items, "itemVar": item_var, "indexVar": index_var, "count": len(items)}

    @registry.handler(NodeType.LOOP_REPEAT)
    async def loop_repeat(ctx: HandlerContext) -> dict[str, Any]:
        count = parse_int(ctx.data.get("count")) or 1
        index_var = ctx.data.get("indexVar") or "i"
        ctx.log(LogLevel.INFO, f"🔢 Repeat: {count} times")
        ctx.log(LogLevel.INFO, f"   Variable: {index_var}")
        ctx.log(LogLevel.SUCCESS, "✓ Loop prepared")
        return {"count": count, "indexVar": index_var}

    @registry.handler(NodeType.LOOP_WHILE)
    async def loop_while(ctx: HandlerContext) -> dict[str, Any]:
        max_iterations = parse_int(ctx.data.get("maxIterations")) or DEFAULT_MAX_ITERATIONS
        condition = ctx.data.get("condition")
        ctx.log(LogLevel.INFO, f"🔁 While: {condition}")
        ctx.log(LogLevel.INFO, f"   Max iterations: {max_iterations}")
        ctx.log(LogLevel.SUCCESS, "✓ Loop prepared")
        return {"condition": condition, "maxIterations": max_iterations}
