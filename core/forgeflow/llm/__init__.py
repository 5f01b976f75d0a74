"""LLM provider abstraction."""

from forgeflow.llm.provider import LLMProvider, LLMResponse

__all__ = ["LLMProvider", "LLMResponse", "LiteLLMProvider"]


def __getattr__(name: str):
    # litellm is heavy to import; load the concrete provider on first use
    if name == "LiteLLMProvider":
        from forgeflow.llm.litellm import LiteLLMProvider

        return LiteLLMProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
