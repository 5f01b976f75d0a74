"""
Node handlers.

``build_default_registry()`` returns a registry with every built-in handler;
hosts layer their own handlers on top with ``register`` or ``merge``.
"""

import httpx

from forgeflow.handlers import (
    actions,
    ai,
    conditions,
    desktop,
    loops,
    outputs,
    triggers,
    utilities,
)
from forgeflow.handlers.actions import DEFAULT_HTTP_TIMEOUT, Notifier
from forgeflow.handlers.desktop import DesktopCommand
from forgeflow.handlers.registry import HandlerRegistry
from forgeflow.handlers.types import HandlerContext, LogCallback, LogLevel, NodeHandler
from forgeflow.llm.provider import LLMProvider


def build_default_registry(
    llm: LLMProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
    http_timeout: float = DEFAULT_HTTP_TIMEOUT,
    notifier: Notifier | None = None,
    url_opener: DesktopCommand | None = None,
    clipboard: DesktopCommand | None = None,
) -> HandlerRegistry:
    """
    Create a registry populated with all built-in node handlers.

    Args:
        llm: Provider for the AI nodes; they raise when it is None
        http_client: Shared client for ``action_http``
        http_timeout: Timeout for per-request HTTP clients
        notifier: Delivery function for notification nodes
        url_opener: Browser launcher for ``action_open_url``
        clipboard: Clipboard writer for ``action_clipboard_write``

    Returns:
        A new HandlerRegistry
    """
    registry = HandlerRegistry()
    triggers.register_handlers(registry)
    conditions.register_handlers(registry)
    actions.register_handlers(
        registry, http_client=http_client, http_timeout=http_timeout, notifier=notifier
    )
    desktop.register_handlers(registry, url_opener=url_opener, clipboard=clipboard)
    ai.register_handlers(registry, llm=llm)
    loops.register_handlers(registry)
    utilities.register_handlers(registry)
    outputs.register_handlers(registry, notifier=notifier)
    return registry


__all__ = [
    "HandlerContext",
    "HandlerRegistry",
    "LogCallback",
    "LogLevel",
    "NodeHandler",
    "DesktopCommand",
    "Notifier",
    "build_default_registry",
]
