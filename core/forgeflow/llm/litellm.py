"""LiteLLM-backed provider: one interface for OpenAI, Anthropic, Ollama and others."""

import logging
from typing import Any

import litellm

from forgeflow.llm.provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class LiteLLMProvider(LLMProvider):
    """
    Provider that routes completions through ``litellm.acompletion``.

    Example:
        llm = LiteLLMProvider(model="anthropic/claude-3-5-haiku-latest")
        response = await llm.acomplete([{"role": "user", "content": "Hi"}])
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        api_base: str | None = None,
        **extra_kwargs: Any,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.extra_kwargs = extra_kwargs

    async def acomplete(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 1024,
        temperature: float | None = None,
        json_mode: bool = False,
        model: str | None = None,
    ) -> LLMResponse:
        full_messages = list(messages)
        if system:
            full_messages.insert(0, {"role": "system", "content": system})

        kwargs: dict[str, Any] = {
            "model": model or self.model,
            "messages": full_messages,
            "max_tokens": max_tokens,
            **self.extra_kwargs,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if temperature is not None:
            kwargs["temperature"] = temperature
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.debug(f"LLM request: model={kwargs['model']} messages={len(full_messages)}")
        response = await litellm.acompletion(**kwargs)

        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=choice.message.content or "",
            model=getattr(response, "model", None) or kwargs["model"],
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            stop_reason=choice.finish_reason or "",
            raw_response=response,
        )
