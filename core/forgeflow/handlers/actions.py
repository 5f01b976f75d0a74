"""
Action handlers - side effects and data processing.

Covers HTTP requests, delays, file operations, shell commands, notifications,
variables, JSON, templates, regular expressions, arithmetic and logging.
Every handler raises on failure; the executor records the message and stops
the run.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import math
import re
import shlex
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx

from forgeflow.graph.node import NodeType
from forgeflow.handlers.coerce import as_bool, as_number, parse_float, parse_int
from forgeflow.handlers.types import HandlerContext, LogLevel

if TYPE_CHECKING:
    from forgeflow.handlers.registry import HandlerRegistry


DEFAULT_DELAY_MS = 1000
DEFAULT_HTTP_TIMEOUT = 30.0

Notifier = Callable[[str, str], Any]

_JS_GROUP_RE = re.compile(r"\$(\d+|&|\$)")


def _parse_headers(ctx: HandlerContext, headers: Any) -> dict[str, str]:
    if not headers:
        return {}
    if isinstance(headers, dict):
        return {str(k): str(v) for k, v in headers.items()}
    try:
        parsed = json.loads(headers)
    except (TypeError, json.JSONDecodeError) as e:
        ctx.log(LogLevel.WARN, f"⚠ Failed to parse headers: {e}")
        return {}
    if not isinstance(parsed, dict):
        ctx.log(LogLevel.WARN, "⚠ Headers must be a JSON object")
        return {}
    return {str(k): str(v) for k, v in parsed.items()}


def _js_replacement(replacement: str) -> str:
    """Translate ``$1``/``$&``/``$$`` replacement syntax to ``re.sub`` syntax."""

    def translate(match: re.Match) -> str:
        token = match.group(1)
        if token == "$":
            return "$"
        if token == "&":
            return r"\g<0>"
        return rf"\g<{token}>"

    return _JS_GROUP_RE.sub(translate, replacement.replace("\\", "\\\\"))


def _regex_flags(flags: Any) -> int:
    result = 0
    for flag in str(flags or ""):
        if flag == "i":
            result |= re.IGNORECASE
        elif flag == "m":
            result |= re.MULTILINE
        elif flag == "s":
            result |= re.DOTALL
    return result


def _math(operation: str, a: float, b: float | None) -> float:
    if operation in ("add", "subtract", "multiply", "divide", "modulo", "power") and b is None:
        raise ValueError(f"Operation '{operation}' needs a second number")

    if operation == "add":
        return a + b
    if operation == "subtract":
        return a - b
    if operation == "multiply":
        return a * b
    if operation == "divide":
        if b == 0:
            raise ZeroDivisionError("Division by zero")
        return a / b
    if operation == "modulo":
        if b == 0:
            raise ZeroDivisionError("Modulo by zero")
        return math.fmod(a, b)
    if operation == "power":
        return math.pow(a, b)
    if operation == "round":
        return math.floor(a + 0.5)
    if operation == "floor":
        return math.floor(a)
    if operation == "ceil":
        return math.ceil(a)
    if operation == "abs":
        return abs(a)
    return a


def register_handlers(
    registry: HandlerRegistry,
    http_client: httpx.AsyncClient | None = None,
    http_timeout: float = DEFAULT_HTTP_TIMEOUT,
    notifier: Notifier | None = None,
) -> None:
    """
    Register action handlers.

    Args:
        registry: Registry to populate
        http_client: Shared client for ``action_http``; a short-lived client
            is opened per request when omitted
        http_timeout: Request timeout in seconds for per-request clients
        notifier: ``notifier(title, message)`` delivering notifications; when
            omitted notifications are only logged
    """

    @registry.handler(NodeType.ACTION_HTTP)
    async def action_http(ctx: HandlerContext) -> Any:
        method = str(ctx.data.get("method") or "GET").upper()
        url = ctx.data.get("url")
        if not url:
            raise ValueError("HTTP request needs a URL")

        ctx.log(LogLevel.INFO, f"🌐 HTTP {method} → {url}")
        headers = _parse_headers(ctx, ctx.data.get("headers"))

        body = ctx.data.get("body")
        request_kwargs: dict[str, Any] = {"headers": headers}
        if method != "GET" and body not in (None, ""):
            if isinstance(body, (dict, list)):
                request_kwargs["json"] = body
            else:
                request_kwargs["content"] = str(body)

        try:
            if http_client is not None:
                response = await http_client.request(method, url, **request_kwargs)
            else:
                async with httpx.AsyncClient(timeout=http_timeout) as client:
                    response = await client.request(method, url, **request_kwargs)
        except httpx.HTTPError as e:
            ctx.log(LogLevel.ERROR, f"✗ Request failed: {e}")
            raise

        status_line = f"{response.status_code} {response.reason_phrase}"
        if response.is_error:
            ctx.log(LogLevel.WARN, f"⚠ Status: {status_line}")
        else:
            ctx.log(LogLevel.SUCCESS, f"✓ Status: {status_line}")

        try:
            data = response.json()
        except ValueError:
            return response.text
        ctx.log(LogLevel.INFO, f"   📦 Response: {json.dumps(data, default=str)[:100]}...")
        return data

    @registry.handler(NodeType.ACTION_DELAY)
    async def action_delay(ctx: HandlerContext) -> dict[str, Any]:
        duration = parse_int(ctx.data.get("duration")) or DEFAULT_DELAY_MS
        ctx.log(LogLevel.INFO, f"⏳ Waiting {duration}ms...")

        completed = await ctx.cancel_token.sleep(duration / 1000)
        if not completed:
            ctx.log(LogLevel.WARN, "⚠ Delay interrupted")
            return {"delayed": duration, "interrupted": True}

        ctx.log(LogLevel.SUCCESS, "✓ Delay completed")
        return {"delayed": duration}

    @registry.handler(NodeType.ACTION_FILE_READ)
    async def action_file_read(ctx: HandlerContext) -> str:
        path = Path(str(ctx.data.get("path", "")))
        encoding = ctx.data.get("encoding") or "utf-8"
        ctx.log(LogLevel.INFO, f"📖 Reading file: {path}")

        content = await asyncio.to_thread(path.read_text, encoding=encoding)
        ctx.log(LogLevel.SUCCESS, f"✓ Read {len(content)} bytes")
        return content

    @registry.handler(NodeType.ACTION_FILE_WRITE)
    async def action_file_write(ctx: HandlerContext) -> dict[str, Any]:
        path = Path(str(ctx.data.get("path", "")))
        content = ctx.data.get("content")
        if content is None:
            content = ""
        elif not isinstance(content, str):
            content = json.dumps(content, indent=2, ensure_ascii=False, default=str)
        append = as_bool(ctx.data.get("append"))
        ctx.log(LogLevel.INFO, f"💾 Writing to: {path}")
        ctx.log(LogLevel.INFO, f"   Size: {len(content)} bytes")

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a" if append else "w", encoding="utf-8") as f:
                f.write(content)

        await asyncio.to_thread(write)
        ctx.log(LogLevel.SUCCESS, "✓ File written successfully")
        return {"success": True, "path": str(path)}

    @registry.handler(NodeType.ACTION_FILE_DELETE)
    async def action_file_delete(ctx: HandlerContext) -> dict[str, Any]:
        path = Path(str(ctx.data.get("path", "")))
        ctx.log(LogLevel.INFO, f"🗑 Deleting: {path}")
        await asyncio.to_thread(path.unlink)
        ctx.log(LogLevel.SUCCESS, "✓ File deleted")
        return {"success": True, "path": str(path)}

    @registry.handler(NodeType.ACTION_FILE_COPY)
    async def action_file_copy(ctx: HandlerContext) -> dict[str, Any]:
        source = Path(str(ctx.data.get("source", "")))
        destination = Path(str(ctx.data.get("destination", "")))
        ctx.log(LogLevel.INFO, f"📋 Copying: {source} → {destination}")

        def copy() -> None:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)

        await asyncio.to_thread(copy)
        ctx.log(LogLevel.SUCCESS, "✓ File copied")
        return {"success": True, "source": str(source), "destination": str(destination)}

    @registry.handler(NodeType.ACTION_FILE_MOVE)
    async def action_file_move(ctx: HandlerContext) -> dict[str, Any]:
        source = Path(str(ctx.data.get("source", "")))
        destination = Path(str(ctx.data.get("destination", "")))
        ctx.log(LogLevel.INFO, f"📦 Moving: {source} → {destination}")

        def move() -> None:
            if not source.exists():
                raise FileNotFoundError(f"No such file: '{source}'")
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(source, destination)

        await asyncio.to_thread(move)
        ctx.log(LogLevel.SUCCESS, "✓ File moved")
        return {"success": True, "source": str(source), "destination": str(destination)}

    @registry.handler(NodeType.ACTION_SHELL)
    async def action_shell(ctx: HandlerContext) -> dict[str, Any]:
        command = ctx.data.get("command")
        if not command:
            raise ValueError("Shell action needs a command")
        args = ctx.data.get("args") or []
        if isinstance(args, str):
            args = shlex.split(args)
        work_dir = ctx.data.get("workDir") or None
        timeout = parse_float(ctx.data.get("timeout"))

        ctx.log(LogLevel.INFO, f"💻 Command: {command} {' '.join(map(str, args))}".rstrip())
        if work_dir:
            ctx.log(LogLevel.INFO, f"   📁 Working dir: {work_dir}")

        proc = await asyncio.create_subprocess_exec(
            str(command),
            *map(str, args),
            cwd=work_dir,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            raise TimeoutError(f"Command timed out after {timeout}s") from None

        exit_code = proc.returncode
        if exit_code == 0:
            ctx.log(LogLevel.SUCCESS, "✓ Exit code: 0")
        else:
            ctx.log(LogLevel.WARN, f"⚠ Exit code: {exit_code}")

        return {
            "stdout": stdout.decode(errors="replace"),
            "stderr": stderr.decode(errors="replace"),
            "exitCode": exit_code,
            "success": exit_code == 0,
        }

    @registry.handler(NodeType.ACTION_NOTIFICATION)
    async def action_notification(ctx: HandlerContext) -> dict[str, Any]:
        title = str(ctx.data.get("title", ""))
        message = str(ctx.data.get("message", ""))
        ctx.log(LogLevel.INFO, f'🔔 Notification: "{title}"')
        ctx.log(LogLevel.INFO, f"   Message: {message}")

        if notifier is not None:
            outcome = notifier(title, message)
            if inspect.isawaitable(outcome):
                await outcome

        ctx.log(LogLevel.SUCCESS, "✓ Notification sent")
        return {"notified": True}

    @registry.handler(NodeType.ACTION_SET_VARIABLE)
    async def action_set_variable(ctx: HandlerContext) -> dict[str, Any]:
        name = ctx.data.get("name")
        if not name:
            raise ValueError("Variable name is required")
        value = ctx.data.get("value")
        ctx.log(LogLevel.INFO, f"📝 Setting variable: {name} = {str(value)[:50]}")

        ctx.variables[str(name)] = value
        ctx.log(LogLevel.SUCCESS, "✓ Variable set")
        return {"name": name, "value": value}

    @registry.handler(NodeType.ACTION_JSON_PARSE)
    async def action_json_parse(ctx: HandlerContext) -> Any:
        raw = ctx.data.get("json")
        ctx.log(LogLevel.INFO, "🔍 Parsing JSON...")
        if not isinstance(raw, str):
            # Already structured (whole-placeholder interpolation)
            return raw

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            ctx.log(LogLevel.ERROR, f"✗ Invalid JSON: {e}")
            raise
        ctx.log(LogLevel.SUCCESS, "✓ JSON parsed successfully")
        return parsed

    @registry.handler(NodeType.ACTION_JSON_STRINGIFY)
    async def action_json_stringify(ctx: HandlerContext) -> str:
        obj = ctx.data.get("object")
        ctx.log(LogLevel.INFO, "📝 Stringifying object...")
        if isinstance(obj, str):
            obj = json.loads(obj)

        result = json.dumps(obj, indent=2, ensure_ascii=False, default=str)
        ctx.log(LogLevel.SUCCESS, f"✓ Object stringified ({len(result)} chars)")
        return result

    @registry.handler(NodeType.ACTION_TEMPLATE)
    async def action_template(ctx: HandlerContext) -> str:
        # Placeholders were resolved before dispatch
        template = ctx.data.get("template")
        result = "" if template is None else str(template)
        ctx.log(LogLevel.SUCCESS, f"✓ Template rendered ({len(result)} chars)")
        return result

    @registry.handler(NodeType.ACTION_REGEX)
    async def action_regex(ctx: HandlerContext) -> Any:
        text = str(ctx.data.get("text", ""))
        pattern = str(ctx.data.get("pattern", ""))
        mode = ctx.data.get("mode", "match")
        ctx.log(LogLevel.INFO, f"🔎 Regex {mode}: /{pattern}/")

        try:
            regex = re.compile(pattern, _regex_flags(ctx.data.get("flags")))
        except re.error as e:
            ctx.log(LogLevel.ERROR, f"✗ Regex error: {e}")
            raise

        if mode == "match":
            matches = [m.group(0) for m in regex.finditer(text)]
            ctx.log(LogLevel.SUCCESS, f"✓ Found {len(matches)} matches")
            return matches[0] if matches else None
        if mode == "matchAll":
            matches = [m.group(0) for m in regex.finditer(text)]
            ctx.log(LogLevel.SUCCESS, f"✓ Found {len(matches)} matches")
            return matches
        if mode == "replace":
            result = regex.sub(_js_replacement(str(ctx.data.get("replacement") or "")), text)
            ctx.log(LogLevel.SUCCESS, f"✓ Replaced text ({len(result)} chars)")
            return result
        if mode == "test":
            result = regex.search(text) is not None
            ctx.log(LogLevel.SUCCESS, f"✓ Test result: {result}")
            return result
        return None

    @registry.handler(NodeType.ACTION_MATH)
    async def action_math(ctx: HandlerContext) -> int | float:
        operation = ctx.data.get("operation", "add")
        ctx.log(LogLevel.INFO, f"🔢 Math: {operation}")

        a = parse_float(ctx.data.get("a"))
        if a is None:
            raise ValueError(f"Not a number: {ctx.data.get('a')!r}")
        b = parse_float(ctx.data.get("b"))

        result = as_number(_math(operation, a, b))
        ctx.log(LogLevel.SUCCESS, f"✓ Result: {result}")
        return result

    @registry.handler(NodeType.ACTION_LOG)
    async def action_log(ctx: HandlerContext) -> dict[str, Any]:
        message = ctx.data.get("message", "")
        level = ctx.data.get("level", "info")

        if level == "warn":
            ctx.log(LogLevel.WARN, f"⚠ {message}")
        elif level == "error":
            ctx.log(LogLevel.ERROR, f"❌ {message}")
        else:
            ctx.log(LogLevel.INFO, f"ℹ {message}")

        return {"logged": True, "message": message, "level": level}
