"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class EmbeddingProviderName(str, Enum):
    """Supported embedding providers."""

    OPENAI = "openai"
    GEMINI = "gemini"


class EmbeddingSettings(BaseSettings):
    """Embedding provider configuration.

    The provider is chosen once per process. Switching it on an existing
    collection requires a collection reset because vector sizes differ.
    """

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_", populate_by_name=True)

    provider: EmbeddingProviderName = Field(
        default=EmbeddingProviderName.OPENAI,
        description="Embedding provider (openai or gemini)",
    )
    model: str | None = Field(
        default=None,
        description="Embedding model override (provider default when unset)",
    )
    batch_size: int = Field(
        default=100,
        ge=1,
        description="Maximum texts per embedding request",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini API base URL",
    )
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "EMBEDDING_OPENAI_API_KEY"),
        description="OpenAI API key",
    )
    gemini_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "GOOGLE_GENERATIVE_AI_API_KEY",
            "EMBEDDING_GEMINI_API_KEY",
        ),
        description="Google Generative AI API key",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    collection_name: str = Field(
        default="dtk_ai_documents",
        description="Collection holding all document chunks",
    )
    wait: bool = Field(
        default=True,
        description="Block writes until Qdrant acknowledges them",
    )
    timeout: int | None = Field(
        default=None,
        description="Client request timeout in seconds",
    )


class RetrievalSettings(BaseSettings):
    """Chunking and search parameters."""

    model_config = SettingsConfigDict(env_prefix="RETRIEVAL_")

    chunk_size: int = Field(
        default=1000,
        gt=0,
        description="Chunk window size in characters",
    )
    chunk_overlap: int = Field(
        default=200,
        ge=0,
        description="Overlap between consecutive chunks",
    )
    score_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum cosine similarity for a search hit",
    )
    default_limit: int = Field(
        default=10,
        ge=1,
        description="Default number of search results",
    )
    scroll_limit: int = Field(
        default=1000,
        ge=1,
        description="Maximum chunks fetched when reading a full document",
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

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    # Storage directories
    upload_dir: str = Field(
        default="./uploads",
        description="Directory receiving uploaded document copies",
    )
    crawl_dir: str = Field(
        default="./crawled_data",
        description="Directory receiving crawled page text",
    )

    # Nested settings
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
