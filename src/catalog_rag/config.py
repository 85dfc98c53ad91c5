"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LLMSettings(BaseSettings):
    """Chat completion configuration.

    Defaults target OpenRouter; any OpenAI-compatible endpoint works.
    """

    model_config = SettingsConfigDict(env_prefix="LLM_")

    base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="Chat completions API base URL",
    )
    api_key: SecretStr = Field(
        default=SecretStr("not-required"),
        description="API key sent as a bearer token",
    )
    models: list[str] = Field(
        default_factory=lambda: [
            "openai/gpt-4o-mini",
            "openai/gpt-4o",
            "openai/gpt-3.5-turbo",
        ],
        description="Candidate models, tried in order",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per candidate model",
    )
    base_delay: float = Field(
        default=0.8,
        ge=0.0,
        description="Backoff base delay in seconds",
    )
    timeout: float = Field(
        default=20.0,
        description="Request timeout in seconds",
    )
    max_tokens: int = Field(
        default=1024,
        description="Maximum tokens in response",
    )
    temperature: float = Field(
        default=0.2,
        description="Sampling temperature (lower = more deterministic)",
    )
    referer: str = Field(
        default="https://robocombo.co",
        description="Value of the HTTP-Referer attribution header",
    )
    app_name: str = Field(
        default="Robocombo Catalog Assistant",
        description="Value of the X-Title attribution header",
    )


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Embedding service base URL",
    )
    api_key: SecretStr = Field(
        default=SecretStr("not-required"),
        description="API key sent as a bearer token",
    )
    model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    batch_size: int = Field(
        default=32,
        ge=1,
        description="Batch size for embedding requests",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
    )
    dimensions: int = Field(
        default=1536,
        description="Store dimension assumed before the first ingestion",
    )


class FeedSettings(BaseSettings):
    """Product feed download configuration."""

    model_config = SettingsConfigDict(env_prefix="FEED_")

    timeout: float = Field(
        default=60.0,
        description="Feed download timeout in seconds",
    )
    default_limit: int = Field(
        default=50,
        ge=1,
        description="Items ingested when the request sets no limit",
    )
    max_limit: int = Field(
        default=1000,
        ge=1,
        description="Upper bound for a requested limit",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    store_name: str = Field(
        default="Robocombo.com",
        description="Shop name used in assistant prompts",
    )
    ingest_secret: SecretStr | None = Field(
        default=None,
        description="Shared secret required by the ingest endpoint",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
