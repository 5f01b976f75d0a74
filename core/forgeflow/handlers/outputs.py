"""Output handlers: the final step of a flow."""

from __future__ import annotations

import asyncio
import inspect
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from forgeflow.graph.node import NodeType
from forgeflow.handlers.actions import Notifier
from forgeflow.handlers.coerce import parse_int
from forgeflow.handlers.types import HandlerContext, LogLevel

if TYPE_CHECKING:
    from forgeflow.handlers.registry import HandlerRegistry


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def register_handlers(registry: HandlerRegistry, notifier: Notifier | None = None) -> None:
    """Register output handlers."""

    @registry.handler(NodeType.OUTPUT_FILE)
    async def output_file(ctx: HandlerContext) -> dict[str, Any]:
        path = Path(str(ctx.data.get("path", "")))
        content = _as_text(ctx.data.get("content"))
        ctx.log(LogLevel.INFO, f"💾 Saving to: {path}")
        ctx.log(LogLevel.INFO, f"   Size: {len(content)} bytes")

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            ctx.log(LogLevel.ERROR, f"✗ Failed to save file: {e}")
            raise

        ctx.log(LogLevel.SUCCESS, "✓ File saved successfully")
        return {"success": True, "path": str(path)}

    @registry.handler(NodeType.OUTPUT_HTTP)
    async def output_http(ctx: HandlerContext) -> dict[str, Any]:
        # The webhook host reads this result and writes it back to the caller
        status = parse_int(ctx.data.get("status")) or 200
        body = ctx.data.get("body")
        ctx.log(LogLevel.INFO, f"📤 HTTP Response: {status}")
        ctx.log(LogLevel.INFO, f"   Body: {_as_text(body)[:100]}...")
        ctx.log(LogLevel.SUCCESS, "✓ Response sent")
        return {"status": status, "body": body, "sent": True}

    @registry.handler(NodeType.OUTPUT_NOTIFICATION)
    async def output_notification(ctx: HandlerContext) -> dict[str, Any]:
        title = str(ctx.data.get("title", ""))
        message = _as_text(ctx.data.get("message"))
        ctx.log(LogLevel.INFO, f'🔔 Final Notification: "{title}"')
        ctx.log(LogLevel.INFO, f"   Message: {message}")

        if notifier is not None:
            outcome = notifier(title, message)
            if inspect.isawaitable(outcome):
                await outcome

        ctx.log(LogLevel.SUCCESS, "✓ Notification sent")
        return {"notified": True}
