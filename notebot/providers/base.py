"""Base chat-completion provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from notebot.errors import ProviderError


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)


class LLMProvider(ABC):
    """
    Abstract base class for chat-completion providers.

    The agent only needs plain text back: tool calls are embedded in the
    text as ``<invoke>`` markup and parsed on our side, so no provider-native
    function calling is used.
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model identifier (provider-specific).
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with the completion text.

        Raises:
            ProviderError: on transport, auth or quota failure.
        """

    async def complete(self, messages: list[dict[str, Any]]) -> str:
        """Return the completion text for ``messages``.

        Raises:
            ProviderError: if the call fails or the model returns nothing.
        """
        response = await self.chat(messages)
        if not response.content:
            raise ProviderError(f"Empty completion (finish_reason={response.finish_reason})")
        return response.content

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default model for this provider."""
