"""Embedding service using LiteLLM."""

import os
from typing import Any

import litellm
from loguru import logger

from notebot.errors import ProviderError, ProviderTimeoutError
from notebot.providers.retry import with_retry, with_timeout


class EmbeddingService:
    """
    Generates embeddings using LiteLLM.

    Supports embedding models served by OpenAI, OpenRouter, etc.
    """

    def __init__(
        self,
        model: str = "openai/text-embedding-3-small",
        api_key: str | None = None,
        api_base: str | None = None,
        timeout: float | None = 30.0,
        max_retries: int = 2,
    ):
        """
        Initialize the embedding service.

        Args:
            model: Embedding model to use.
            api_key: API key for the provider.
            api_base: Optional API base URL.
            timeout: Per-call timeout in seconds (None = no limit).
            max_retries: Retries on transient errors.
        """
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.timeout = timeout
        self.max_retries = max_retries

        self.is_openrouter = bool(
            (api_key and api_key.startswith("sk-or-")) or (api_base and "openrouter" in api_base)
        )

        if api_key:
            if self.is_openrouter:
                os.environ["OPENROUTER_API_KEY"] = api_key
            elif "openai" in model.lower():
                os.environ.setdefault("OPENAI_API_KEY", api_key)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for a list of texts.

        Raises:
            ProviderError: if the provider call fails.
            ProviderTimeoutError: if it does not answer within ``timeout``.
        """
        if not texts:
            return []

        model = self.model
        if self.is_openrouter and not model.startswith("openrouter/"):
            model = f"openrouter/{model}"

        kwargs: dict[str, Any] = {"model": model, "input": texts}
        if self.api_base:
            kwargs["api_base"] = self.api_base

        async def _call() -> Any:
            return await with_timeout(
                litellm.aembedding(**kwargs), self.timeout, ProviderTimeoutError, "Embedding"
            )

        try:
            response = await with_retry(_call, max_retries=self.max_retries)
        except ProviderError:
            raise
        except Exception as e:
            logger.error(f"Embedding failed: {e}")
            raise ProviderError(f"Embedding failed: {e}") from e

        return [item["embedding"] for item in response.data]

    async def embed_single(self, text: str) -> list[float]:
        """Generate the embedding for a single text."""
        embeddings = await self.embed([text])
        if not embeddings:
            raise ProviderError("Embedding provider returned no vectors")
        return embeddings[0]
