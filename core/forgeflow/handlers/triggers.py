"""
Trigger handlers.

Triggers are the entry points of a flow. Scheduling, file watching and webhook
listening happen outside the engine; by the time a trigger node runs, its event
has already fired, so these handlers only describe it.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from forgeflow.graph.node import NodeType
from forgeflow.handlers.types import HandlerContext, LogLevel

if TYPE_CHECKING:
    from forgeflow.handlers.registry import HandlerRegistry


def _fired(**details: Any) -> dict[str, Any]:
    return {"triggered": True, **details, "timestamp": int(time.time() * 1000)}


def register_handlers(registry: HandlerRegistry) -> None:
    """Register trigger handlers."""

    @registry.handler(NodeType.TRIGGER_MANUAL)
    async def trigger_manual(ctx: HandlerContext) -> dict[str, Any]:
        ctx.log(LogLevel.INFO, "▶ Manual trigger activated")
        return _fired()

    @registry.handler(NodeType.TRIGGER_SCHEDULE)
    async def trigger_schedule(ctx: HandlerContext) -> dict[str, Any]:
        ctx.log(LogLevel.INFO, f"⏰ Schedule: {ctx.data.get('cron')}")
        ctx.log(LogLevel.SUCCESS, "✓ Trigger condition met")
        return _fired(cron=ctx.data.get("cron"))

    @registry.handler(NodeType.TRIGGER_WEBHOOK)
    async def trigger_webhook(ctx: HandlerContext) -> dict[str, Any]:
        method = ctx.data.get("method", "POST")
        ctx.log(LogLevel.INFO, f"🌐 Webhook: {method} {ctx.data.get('path')}")
        return _fired(method=method, path=ctx.data.get("path"))

    @registry.handler(NodeType.TRIGGER_FILE_WATCH)
    async def trigger_file_watch(ctx: HandlerContext) -> dict[str, Any]:
        ctx.log(LogLevel.INFO, f"👁 Watching: {ctx.data.get('path')}")
        ctx.log(LogLevel.SUCCESS, "✓ File change detected")
        return _fired(path=ctx.data.get("path"), event=ctx.data.get("events"))
