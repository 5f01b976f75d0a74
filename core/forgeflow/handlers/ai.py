"""
AI handlers - text generation, summarization, classification and extraction.

All four delegate to an LLMProvider and raise when none is configured.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from forgeflow.graph.node import NodeType
from forgeflow.handlers.coerce import parse_float
from forgeflow.handlers.types import HandlerContext, LogLevel
from forgeflow.llm.provider import LLMProvider, LLMResponse

if TYPE_CHECKING:
    from forgeflow.handlers.registry import HandlerRegistry

DEFAULT_TEMPERATURE = 0.7

SUMMARIZE_SYSTEM = "Summarize the user's text concisely. Reply with the summary only."
CLASSIFY_SYSTEM = (
    "Classify the user's text into exactly one of these categories: {categories}. "
    "Reply with the category name only."
)
EXTRACT_SYSTEM = (
    "Extract data from the user's text as a JSON object matching this schema:\n"
    "{schema}\nReply with the JSON object only."
)


def parse_categories(raw: Any) -> list[str]:
    """Categories arrive as a list or a comma-separated string."""
    if isinstance(raw, list):
        return [str(c).strip() for c in raw if str(c).strip()]
    if not raw:
        return []
    return [c.strip() for c in str(raw).split(",") if c.strip()]


def match_category(reply: str, categories: list[str]) -> str | None:
    """Map a free-text model reply onto one of the declared categories."""
    cleaned = reply.strip().strip(".\"'").lower()
    for category in categories:
        if category.lower() == cleaned:
            return category
    for category in categories:
        if category.lower() in cleaned:
            return category
    return None


def register_handlers(registry: HandlerRegistry, llm: LLMProvider | None = None) -> None:
    """Register AI handlers backed by ``llm``."""

    def _require_llm() -> LLMProvider:
        if llm is None:
            raise RuntimeError("No LLM provider configured for AI nodes")
        return llm

    async def _complete(ctx: HandlerContext, system: str, **kwargs: Any) -> LLMResponse:
        provider = _require_llm()
        prompt = ctx.data.get("prompt")
        if prompt is None or prompt == "":
            raise ValueError("AI node needs a prompt")
        if not isinstance(prompt, str):
            prompt = json.dumps(prompt, indent=2, ensure_ascii=False, default=str)

        try:
            response = await provider.acomplete(
                messages=[{"role": "user", "content": prompt}],
                system=system,
                model=ctx.data.get("model") or None,
                **kwargs,
            )
        except Exception as e:
            ctx.log(LogLevel.ERROR, f"✗ AI request failed: {e}")
            raise

        ctx.log(LogLevel.SUCCESS, f"✓ Generated {response.total_tokens} tokens")
        return response

    def _temperature(ctx: HandlerContext) -> float:
        value = parse_float(ctx.data.get("temperature"))
        return DEFAULT_TEMPERATURE if value is None else value

    @registry.handler(NodeType.AI_GENERATE)
    async def ai_generate(ctx: HandlerContext) -> str:
        ctx.log(LogLevel.INFO, "🤖 AI Generate Text")
        ctx.log(LogLevel.INFO, f"   Prompt: {str(ctx.data.get('prompt', ''))[:50]}...")
        ctx.log(LogLevel.INFO, f"   Temperature: {_temperature(ctx)}")

        response = await _complete(
            ctx, str(ctx.data.get("system") or ""), temperature=_temperature(ctx)
        )
        return response.content

    @registry.handler(NodeType.AI_SUMMARIZE)
    async def ai_summarize(ctx: HandlerContext) -> str:
        ctx.log(LogLevel.INFO, "🤖 AI Summarize")
        ctx.log(LogLevel.INFO, f"   Model: {ctx.data.get('model') or 'default'}")

        response = await _complete(ctx, SUMMARIZE_SYSTEM, temperature=_temperature(ctx))
        return response.content.strip()

    @registry.handler(NodeType.AI_CLASSIFY)
    async def ai_classify(ctx: HandlerContext) -> str:
        categories = parse_categories(ctx.data.get("categories"))
        ctx.log(LogLevel.INFO, "🤖 AI Classify")
        ctx.log(LogLevel.INFO, f"   Categories: {', '.join(categories)}")
        if not categories:
            raise ValueError("AI classify needs at least one category")

        response = await _complete(
            ctx, CLASSIFY_SYSTEM.format(categories=", ".join(categories)), temperature=0.0
        )
        category = match_category(response.content, categories)
        if category is None:
            ctx.log(LogLevel.WARN, f"⚠ Reply '{response.content.strip()}' matches no category")
            return "unknown"

        ctx.log(LogLevel.SUCCESS, f"✓ Classified as: {category}")
        return category

    @registry.handler(NodeType.AI_EXTRACT)
    async def ai_extract(ctx: HandlerContext) -> Any:
        schema = ctx.data.get("schema") or {}
        ctx.log(LogLevel.INFO, "🤖 AI Extract Data")
        if isinstance(schema, str):
            try:
                schema = json.loads(schema)
            except json.JSONDecodeError:
                ctx.log(LogLevel.WARN, "⚠ Invalid schema, using empty object")
                schema = {}

        response = await _complete(
            ctx,
            EXTRACT_SYSTEM.format(schema=json.dumps(schema, indent=2)),
            temperature=0.0,
            json_mode=True,
        )
        try:
            data = json.loads(response.content)
        except json.JSONDecodeError as e:
            ctx.log(LogLevel.ERROR, f"✗ Extraction failed: {e}")
            raise ValueError(f"Model did not return valid JSON: {e}") from e

        ctx.log(LogLevel.SUCCESS, "✓ Extracted data")
        return data
