"""LiteLLM provider implementation for multi-provider support."""

import os
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from notebot.errors import ProviderError, ProviderTimeoutError
from notebot.providers.base import LLMProvider, LLMResponse
from notebot.providers.retry import with_retry, with_timeout


class LiteLLMProvider(LLMProvider):
    """
    Chat-completion provider using LiteLLM.

    Works with OpenAI, OpenRouter, Anthropic and any other backend LiteLLM
    understands. Failures are raised as ``ProviderError``; a call that
    exceeds ``timeout`` raises ``ProviderTimeoutError``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "openai/gpt-4o",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float | None = 60.0,
        max_retries: int = 2,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.max_retries = max_retries

        self.is_openrouter = bool(
            (api_key and api_key.startswith("sk-or-")) or (api_base and "openrouter" in api_base)
        )

        if api_key:
            if self.is_openrouter:
                os.environ["OPENROUTER_API_KEY"] = api_key
            elif "anthropic" in default_model or "claude" in default_model:
                os.environ.setdefault("ANTHROPIC_API_KEY", api_key)
            else:
                os.environ.setdefault("OPENAI_API_KEY", api_key)

        # Disable LiteLLM logging noise
        litellm.suppress_debug_info = True

    def _apply_model_prefix(self, model: str) -> str:
        """Apply the LiteLLM routing prefix to a model name."""
        if self.is_openrouter and not model.startswith("openrouter/"):
            return f"openrouter/{model}"
        return model

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """Send a chat completion request via LiteLLM."""
        kwargs: dict[str, Any] = {
            "model": self._apply_model_prefix(model or self.default_model),
            "messages": messages,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        async def _call() -> Any:
            return await with_timeout(
                acompletion(**kwargs), self.timeout, ProviderTimeoutError, "Chat completion"
            )

        try:
            response = await with_retry(_call, max_retries=self.max_retries)
        except ProviderError:
            raise
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            raise ProviderError(f"Chat completion failed: {e}") from e

        return self._parse_response(response)

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse LiteLLM response into our standard format."""
        choice = response.choices[0]

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        return self.default_model
