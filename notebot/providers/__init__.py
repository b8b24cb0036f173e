"""Chat-completion providers."""

from notebot.providers.base import LLMProvider, LLMResponse

__all__ = ["LLMProvider", "LLMResponse"]
