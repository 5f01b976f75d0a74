"""LLM Provider abstraction for pluggable LLM backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class LLMResponse:
    """Response from an LLM call."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    stop_reason: str = ""
    raw_response: Any = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMProvider(ABC):
    """
    Abstract LLM provider - plug in any LLM backend.

    The AI node handlers only ever talk to this interface, so tests and hosts
    can substitute a scripted provider.
    """

    @abstractmethod
    async def acomplete(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 1024,
        temperature: float | None = None,
        json_mode: bool = False,
        model: str | None = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation history [{role: "user"|"assistant", content: str}]
            system: System prompt
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature; None uses the backend default
            json_mode: If True, request a JSON object as the reply
            model: Per-call model override

        Returns:
            LLMResponse with content and metadata
        """
        pass
