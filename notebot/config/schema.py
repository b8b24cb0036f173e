"""Configuration schema using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class _Section(BaseModel):
    """Config section accepting both snake_case and camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)


class TelegramConfig(_Section):
    """Telegram channel configuration."""

    enabled: bool = False
    token: str = ""  # Bot token from @BotFather
    allow_from: list[str] = Field(default_factory=list, alias="allowFrom")
    proxy: str | None = None


class DiscordConfig(_Section):
    """Discord channel configuration."""

    enabled: bool = False
    token: str = ""  # Bot token from Discord Developer Portal
    allow_from: list[str] = Field(default_factory=list, alias="allowFrom")
    message_max_length: int = Field(default=2000, alias="messageMaxLength")


class ChannelsConfig(_Section):
    """Configuration for chat channels."""

    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    discord: DiscordConfig = Field(default_factory=DiscordConfig)


class AgentConfig(_Section):
    """Agent loop configuration."""

    name: str = "Autonomous Copilot"
    model: str = "openai/gpt-4o"
    provider: str | None = None  # Named provider from providers section
    max_tokens: int = Field(default=4096, alias="maxTokens")
    temperature: float = 0.7
    max_turns: int = Field(default=10, alias="maxTurns")
    max_history: int = Field(default=20, alias="maxHistory")
    request_timeout: float = Field(default=60.0, alias="requestTimeout")


class ProviderConfig(_Section):
    """LLM provider credentials."""

    api_key: str = Field(default="", alias="apiKey")
    api_base: str | None = Field(default=None, alias="apiBase")


class ProvidersConfig(_Section):
    """Configuration for LLM providers."""

    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)


class EmbeddingConfig(_Section):
    """Embedding model configuration."""

    model: str = "openai/text-embedding-3-small"
    provider: str | None = None
    timeout: float = 30.0


class NotesConfig(_Section):
    """Note store configuration."""

    data_dir: str = Field(default="~/.notebot/data", alias="dataDir")
    cache_capacity: int = Field(default=100, alias="cacheCapacity")
    cache_max_age_seconds: float = Field(default=3600.0, alias="cacheMaxAgeSeconds")
    max_concurrency: int = Field(default=5, alias="maxConcurrency")
    search_limit: int = Field(default=5, alias="searchLimit")
    storage_timeout: float = Field(default=60.0, alias="storageTimeout")

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()


class AutoDriveConfig(_Section):
    """Auto Drive content store credentials."""

    api_key: str = Field(default="", alias="apiKey")
    api_base: str = Field(
        default="https://mainnet.auto-drive.autonomys.xyz/api", alias="apiBase"
    )
    chunk_size: int = Field(default=1024 * 1024, alias="chunkSize")


class LocalStorageConfig(_Section):
    """Filesystem content store (offline use)."""

    path: str = "~/.notebot/data/blobs"


class StorageConfig(_Section):
    """Content store selection."""

    backend: Literal["autodrive", "local"] = "local"
    auto_drive: AutoDriveConfig = Field(default_factory=AutoDriveConfig, alias="autoDrive")
    local: LocalStorageConfig = Field(default_factory=LocalStorageConfig)


class VectorConfig(_Section):
    """Chroma vector index configuration."""

    host: str = ""  # Empty = embedded persistent client at ``path``
    port: int = 8000
    path: str = "~/.notebot/data/chroma"
    collection_prefix: str = Field(default="", alias="collectionPrefix")  # Prepended to note namespaces

    @property
    def path_expanded(self) -> Path:
        return Path(self.path).expanduser()


class Config(BaseSettings):
    """Root configuration for notebot."""

    model_config = SettingsConfigDict(
        env_prefix="NOTEBOT_",
        env_nested_delimiter="__",
        populate_by_name=True,
    )

    agent: AgentConfig = Field(default_factory=AgentConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    notes: NotesConfig = Field(default_factory=NotesConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    vector: VectorConfig = Field(default_factory=VectorConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)

    @property
    def data_path(self) -> Path:
        """Get expanded data directory."""
        return self.notes.data_path
