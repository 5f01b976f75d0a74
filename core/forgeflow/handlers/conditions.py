"""Condition handlers: if/else and switch."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from forgeflow.graph.edge import DEFAULT_HANDLE
from forgeflow.graph.errors import ExpressionError
from forgeflow.graph.interpolation import stringify
from forgeflow.graph.node import NodeType
from forgeflow.graph.safe_eval import safe_eval
from forgeflow.handlers.types import HandlerContext, LogLevel

if TYPE_CHECKING:
    from forgeflow.handlers.registry import HandlerRegistry


def evaluate_condition(condition: Any, variables: dict[str, Any]) -> bool:
    """
    Truth value of a condition field.

    Non-string values (a whole ``{{placeholder}}`` already resolved to a bool or
    number) are used directly. Blank strings are False.

    Raises:
        ExpressionError: If a string condition cannot be evaluated
    """
    if not isinstance(condition, str):
        return bool(condition)
    if not condition.strip():
        return False
    return bool(safe_eval(condition, variables))


def register_handlers(registry: HandlerRegistry) -> None:
    """Register condition handlers."""

    @registry.handler(NodeType.CONDITION_IF)
    async def condition_if(ctx: HandlerContext) -> bool:
        condition = ctx.data.get("condition", "")
        ctx.log(LogLevel.INFO, "🔍 Evaluating condition...")
        ctx.log(LogLevel.INFO, f"   Expression: {condition}")

        try:
            result = evaluate_condition(condition, ctx.variables.snapshot())
        except ExpressionError as e:
            # A broken expression takes the false branch instead of failing the run
            ctx.log(LogLevel.ERROR, f"✗ Condition evaluation failed: {e}")
            return False

        mark, label = ("✓", "TRUE") if result else ("✗", "FALSE")
        ctx.log(LogLevel.SUCCESS, f"{mark} Condition: {label}")
        return result

    @registry.handler(NodeType.CONDITION_SWITCH)
    async def condition_switch(ctx: HandlerContext) -> str:
        value = ctx.data.get("value")
        ctx.log(LogLevel.INFO, "🔀 Evaluating switch...")
        ctx.log(LogLevel.INFO, f"   Value: {value}")

        branch = stringify(value) if value else DEFAULT_HANDLE
        ctx.log(LogLevel.SUCCESS, f"✓ Taking branch: {branch}")
        return branch
