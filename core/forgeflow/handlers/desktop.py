"""
Desktop handlers - clipboard and browser.

The OS work is done by ``copy_to_clipboard`` and ``open_url``, which use the
platform's own commands (pbcopy/open, xclip/xsel/xdg-open, PowerShell) and
report ``(success, message)``. Hosts without a desktop pass their own
functions to ``register_handlers``.
"""

from __future__ import annotations

import asyncio
import platform
import subprocess
import webbrowser
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from forgeflow.graph.node import NodeType
from forgeflow.handlers.types import HandlerContext, LogLevel

if TYPE_CHECKING:
    from forgeflow.handlers.registry import HandlerRegistry

DesktopCommand = Callable[[str], tuple[bool, str]]

# Linux clipboard tools in order of preference
_LINUX_CLIPBOARD_COMMANDS = (
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
)


def open_url(url: str) -> tuple[bool, str]:
    """
    Open a URL in the user's default browser.

    Uses ``open`` on macOS and ``xdg-open`` on Linux, falling back to the
    webbrowser module elsewhere or when xdg-open is missing.

    Returns:
        Tuple of (success, message)
    """
    system = platform.system()

    try:
        if system == "Darwin":
            subprocess.run(["open", url], check=True, capture_output=True)
            return True, "Opened in browser"

        if system == "Linux":
            try:
                subprocess.run(["xdg-open", url], check=True, capture_output=True)
                return True, "Opened in browser"
            except FileNotFoundError:
                if webbrowser.open(url):
                    return True, "Opened in browser"
                return False, "Could not open browser (xdg-open not found)"

        if webbrowser.open(url):
            return True, "Opened in browser"
        return False, f"Could not open browser on {system}"

    except (subprocess.CalledProcessError, OSError, webbrowser.Error) as e:
        return False, f"Failed to open browser: {e}"


def copy_to_clipboard(content: str) -> tuple[bool, str]:
    """
    Put text on the system clipboard.

    Returns:
        Tuple of (success, message)
    """
    system = platform.system()
    if system == "Darwin":
        commands: tuple[list[str], ...] = (["pbcopy"],)
    elif system == "Windows":
        commands = (["powershell", "-NoProfile", "-Command", "$input | Set-Clipboard"],)
    else:
        commands = _LINUX_CLIPBOARD_COMMANDS

    last_error = f"No clipboard command available on {system}"
    for command in commands:
        try:
            subprocess.run(command, input=content, text=True, check=True, capture_output=True)
            return True, "Copied to clipboard"
        except FileNotFoundError:
            last_error = f"{command[0]} not found"
        except subprocess.CalledProcessError as e:
            last_error = f"{command[0]} failed with exit code {e.returncode}"
    return False, f"Failed to copy: {last_error}"


def register_handlers(
    registry: HandlerRegistry,
    url_opener: DesktopCommand | None = None,
    clipboard: DesktopCommand | None = None,
) -> None:
    """
    Register clipboard and browser handlers.

    Args:
        registry: Registry to populate
        url_opener: ``url_opener(url) -> (ok, message)``; defaults to ``open_url``
        clipboard: ``clipboard(text) -> (ok, message)``; defaults to ``copy_to_clipboard``
    """
    open_in_browser = url_opener or open_url
    write_clipboard = clipboard or copy_to_clipboard

    @registry.handler(NodeType.ACTION_CLIPBOARD_WRITE)
    async def action_clipboard_write(ctx: HandlerContext) -> dict[str, Any]:
        content = ctx.data.get("content")
        text = "" if content is None else str(content)
        ctx.log(LogLevel.INFO, f"📋 Copying to clipboard: {text[:50]}...")

        ok, message = await asyncio.to_thread(write_clipboard, text)
        if not ok:
            raise RuntimeError(message)

        ctx.log(LogLevel.SUCCESS, "✓ Copied to clipboard")
        return {"copied": True}

    @registry.handler(NodeType.ACTION_OPEN_URL)
    async def action_open_url(ctx: HandlerContext) -> dict[str, Any]:
        url = ctx.data.get("url")
        if not url:
            raise ValueError("Open URL action needs a URL")
        ctx.log(LogLevel.INFO, f"🌐 Opening URL: {url}")

        ok, message = await asyncio.to_thread(open_in_browser, str(url))
        if not ok:
            raise RuntimeError(message)

        ctx.log(LogLevel.SUCCESS, "✓ URL opened")
        return {"opened": True, "url": str(url)}
