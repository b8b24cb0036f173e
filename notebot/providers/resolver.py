"""Provider credential resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from notebot.config.schema import ProviderConfig, ProvidersConfig

# Known provider API bases (applied when no explicit api_base is set)
_DEFAULT_API_BASES: dict[str, str] = {
    "openrouter": "https://openrouter.ai/api/v1",
}

# Scanned in this order when nothing names a provider
_PRIORITY = ("openrouter", "openai", "anthropic")


class ProviderResolver:
    """Maps a provider name to (api_key, api_base) from the providers section.

    The chat model and the embedding model each resolve separately. Lookup
    order: the explicit name, then the model's routing prefix
    (``anthropic/claude-...`` -> ``anthropic``), then the configured default,
    then the first provider in priority order that has a key.
    """

    def __init__(
        self,
        providers: ProvidersConfig,
        default_provider: str | None = None,
    ):
        self.providers = providers
        self.default_provider = default_provider

    @staticmethod
    def provider_for_model(model: str | None) -> str | None:
        """Provider named by a LiteLLM-style ``prefix/model`` string, if any."""
        if not model or "/" not in model:
            return None
        return model.split("/", 1)[0].lower()

    def _credentials(self, name: str) -> tuple[str, str | None] | None:
        provider: ProviderConfig | None = getattr(self.providers, name, None)
        if provider is None or not provider.api_key:
            return None
        return provider.api_key, provider.api_base or _DEFAULT_API_BASES.get(name)

    def resolve(
        self, name: str | None = None, model: str | None = None
    ) -> tuple[str | None, str | None]:
        """Return (api_key, api_base); both None when no provider has a key."""
        candidates = (name, self.provider_for_model(model), self.default_provider, *_PRIORITY)
        for target in candidates:
            if not target:
                continue
            credentials = self._credentials(target)
            if credentials:
                logger.debug(f"Resolved provider '{target}'")
                return credentials
        return None, None
