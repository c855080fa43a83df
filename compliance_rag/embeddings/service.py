"""Embedding provider interface and implementations."""

import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from compliance_rag.config import EmbeddingProviderName, EmbeddingSettings, get_settings
from compliance_rag.exceptions import ConfigurationError, ErrorCode, ProviderError
from compliance_rag.logging_config import get_logger
from compliance_rag.observability.metrics import track_embedding_request

logger = get_logger(__name__)


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers.

    Converts texts into fixed-dimension vectors. One provider is active per
    process; its dimension decides the collection's vector size.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed texts, one vector per input in input order.

        Args:
            texts: Texts to embed.

        Returns:
            Vectors aligned with ``texts``.

        Raises:
            ProviderError: If the provider call fails.
        """
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short provider identifier."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Get the embedding dimensions."""
        ...

    async def close(self) -> None:
        """Release provider resources."""


class HTTPEmbeddingProvider(EmbeddingProvider):
    """Shared batching and HTTP handling for hosted embedding APIs.

    Subclasses describe the request and response shapes; this class splits
    inputs into ``batch_size`` requests and maps transport failures to
    ``ProviderError``.
    """

    DEFAULT_MODEL: str = ""
    MODEL_DIMENSIONS: dict[str, int] = {}

    def __init__(
        self,
        api_key: str,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: Provider API key.
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings or get_settings().embedding
        self._api_key = api_key
        self._client = client
        self._owns_client = client is None
        self._model = self._settings.model or self.DEFAULT_MODEL

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        try:
            return self.MODEL_DIMENSIONS[self._model]
        except KeyError:
            raise ConfigurationError(
                f"Unknown embedding dimension for model: {self._model}",
                details={"provider": self.provider_name, "model": self._model},
            ) from None

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        client = await self._get_client()
        vectors: list[list[float]] = []
        batch_size = self._settings.batch_size

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            vectors.extend(await self._embed_batch(client, batch))

        return vectors

    async def _embed_batch(
        self,
        client: httpx.AsyncClient,
        texts: list[str],
    ) -> list[list[float]]:
        """Send one embedding request and validate the answer."""
        url, headers, payload = self._build_request(texts)
        start = time.perf_counter()

        try:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            track_embedding_request(
                self._model, time.perf_counter() - start, len(texts), success=False
            )
            logger.error(
                f"Embedding request failed: {e.response.status_code}",
                extra={"provider": self.provider_name, "status": e.response.status_code},
            )
            raise ProviderError(
                f"{self.provider_name} embedding API returned {e.response.status_code}",
                details={
                    "provider": self.provider_name,
                    "status_code": e.response.status_code,
                    "error": e.response.text[:500],
                },
            ) from e
        except httpx.RequestError as e:
            track_embedding_request(
                self._model, time.perf_counter() - start, len(texts), success=False
            )
            logger.error(
                f"Embedding request error: {e}",
                extra={"provider": self.provider_name},
            )
            raise ProviderError(
                f"Failed to connect to {self.provider_name} embedding API: {e}",
                details={"provider": self.provider_name, "error": str(e)},
            ) from e

        try:
            vectors = self._parse_response(response.json())
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(
                f"Invalid response from {self.provider_name} embedding API: {e}",
                details={"provider": self.provider_name, "error": str(e)},
            ) from e

        if len(vectors) != len(texts):
            raise ProviderError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}",
                details={"provider": self.provider_name},
            )

        track_embedding_request(self._model, time.perf_counter() - start, len(texts))
        return vectors

    @abstractmethod
    def _build_request(
        self, texts: list[str]
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        """Return ``(url, headers, json_body)`` for a batch."""
        ...

    @abstractmethod
    def _parse_response(self, data: dict[str, Any]) -> list[list[float]]:
        """Extract ordered vectors from a decoded response body."""
        ...


class OpenAIEmbeddingProvider(HTTPEmbeddingProvider):
    """OpenAI ``/embeddings`` API."""

    DEFAULT_MODEL = "text-embedding-3-small"
    MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    @property
    def provider_name(self) -> str:
        return EmbeddingProviderName.OPENAI.value

    def _build_request(
        self, texts: list[str]
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        url = f"{self._settings.openai_base_url.rstrip('/')}/embeddings"
        headers = {"Authorization": f"Bearer {self._api_key}"}
        return url, headers, {"input": texts, "model": self._model}

    def _parse_response(self, data: dict[str, Any]) -> list[list[float]]:
        items = sorted(data["data"], key=lambda item: item["index"])
        return [[float(x) for x in item["embedding"]] for item in items]


class GeminiEmbeddingProvider(HTTPEmbeddingProvider):
    """Google Gemini ``batchEmbedContents`` API."""

    DEFAULT_MODEL = "text-embedding-004"
    MODEL_DIMENSIONS = {
        "text-embedding-004": 768,
        "embedding-001": 768,
    }

    @property
    def provider_name(self) -> str:
        return EmbeddingProviderName.GEMINI.value

    def _build_request(
        self, texts: list[str]
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        model_path = f"models/{self._model}"
        url = f"{self._settings.gemini_base_url.rstrip('/')}/{model_path}:batchEmbedContents"
        headers = {"x-goog-api-key": self._api_key}
        body = {
            "requests": [
                {"model": model_path, "content": {"parts": [{"text": text}]}}
                for text in texts
            ]
        }
        return url, headers, body

    def _parse_response(self, data: dict[str, Any]) -> list[list[float]]:
        return [[float(x) for x in item["values"]] for item in data["embeddings"]]


def create_embedding_provider(
    settings: EmbeddingSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> EmbeddingProvider:
    """Build the configured embedding provider.

    Args:
        settings: Embedding configuration. Uses defaults if not provided.
        client: Optional shared HTTP client.

    Returns:
        The provider selected by ``settings.provider``.

    Raises:
        ConfigurationError: If the selected provider has no API key.
    """
    settings = settings or get_settings().embedding

    if settings.provider == EmbeddingProviderName.OPENAI:
        provider_cls: type[HTTPEmbeddingProvider] = OpenAIEmbeddingProvider
        secret = settings.openai_api_key
        env_var = "OPENAI_API_KEY"
    elif settings.provider == EmbeddingProviderName.GEMINI:
        provider_cls = GeminiEmbeddingProvider
        secret = settings.gemini_api_key
        env_var = "GOOGLE_GENERATIVE_AI_API_KEY"
    else:
        raise ConfigurationError(
            f"Unsupported embedding provider: {settings.provider}",
            details={"provider": str(settings.provider)},
        )

    if secret is None or not secret.get_secret_value():
        raise ConfigurationError(
            f"{env_var} is required for the {settings.provider.value} embedding provider",
            code=ErrorCode.CONFIGURATION_ERROR,
            details={"provider": settings.provider.value, "env_var": env_var},
        )

    provider = provider_cls(secret.get_secret_value(), settings=settings, client=client)
    logger.info(
        "Embedding provider selected",
        extra={
            "provider": provider.provider_name,
            "model": provider.model_name,
            "dimensions": provider.dimensions,
        },
    )
    return provider

