"""Tests for embedding providers."""

import json

import httpx
import pytest

from compliance_rag.config import EmbeddingProviderName, EmbeddingSettings
from compliance_rag.embeddings.service import (
    GeminiEmbeddingProvider,
    OpenAIEmbeddingProvider,
    create_embedding_provider,
)
from compliance_rag.exceptions import ConfigurationError, ErrorCode, ProviderError


class RecordingTransport(httpx.AsyncBaseTransport):
    """Transport answering with a canned handler and keeping every request."""

    def __init__(self, handler) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        return self.handler(request)


def _openai_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    data = [
        {"object": "embedding", "index": i, "embedding": [float(i), float(len(text))]}
        for i, text in enumerate(body["input"])
    ]
    # API does not promise ordering; index decides
    data.reverse()
    return httpx.Response(200, json={"data": data, "model": body["model"]})


def _gemini_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    embeddings = [
        {"values": [float(len(item["content"]["parts"][0]["text"]))]}
        for item in body["requests"]
    ]
    return httpx.Response(200, json={"embeddings": embeddings})


def _settings(**overrides: object) -> EmbeddingSettings:
    return EmbeddingSettings(**overrides)  # type: ignore[arg-type]


class TestOpenAIEmbeddingProvider:
    """Tests for OpenAIEmbeddingProvider."""

    def test_defaults(self) -> None:
        """Default model is text-embedding-3-small with 1536 dimensions."""
        provider = OpenAIEmbeddingProvider("sk-test", settings=_settings())
        assert provider.provider_name == "openai"
        assert provider.model_name == "text-embedding-3-small"
        assert provider.dimensions == 1536

    def test_large_model_dimensions(self) -> None:
        """Model override changes the reported dimension."""
        provider = OpenAIEmbeddingProvider(
            "sk-test", settings=_settings(model="text-embedding-3-large")
        )
        assert provider.dimensions == 3072

    def test_unknown_model(self) -> None:
        """Unknown models have no known dimension."""
        provider = OpenAIEmbeddingProvider("sk-test", settings=_settings(model="mystery"))
        with pytest.raises(ConfigurationError):
            _ = provider.dimensions

    @pytest.mark.asyncio
    async def test_embed_request_shape(self) -> None:
        """Request carries bearer auth, model and inputs."""
        transport = RecordingTransport(_openai_handler)
        async with httpx.AsyncClient(transport=transport) as client:
            provider = OpenAIEmbeddingProvider("sk-test", settings=_settings(), client=client)
            vectors = await provider.embed(["alpha", "be"])

        [request] = transport.requests
        assert str(request.url) == "https://api.openai.com/v1/embeddings"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert json.loads(request.content) == {
            "input": ["alpha", "be"],
            "model": "text-embedding-3-small",
        }
        assert vectors == [[0.0, 5.0], [1.0, 2.0]]

    @pytest.mark.asyncio
    async def test_embed_batches(self) -> None:
        """Inputs are split into batch_size requests, order preserved."""
        transport = RecordingTransport(_openai_handler)
        texts = ["a" * n for n in range(1, 6)]
        async with httpx.AsyncClient(transport=transport) as client:
            provider = OpenAIEmbeddingProvider(
                "sk-test", settings=_settings(batch_size=2), client=client
            )
            vectors = await provider.embed(texts)

        assert len(transport.requests) == 3
        assert [v[1] for v in vectors] == [1.0, 2.0, 3.0, 4.0, 5.0]

    @pytest.mark.asyncio
    async def test_embed_empty(self) -> None:
        """Empty input makes no request."""
        transport = RecordingTransport(_openai_handler)
        async with httpx.AsyncClient(transport=transport) as client:
            provider = OpenAIEmbeddingProvider("sk-test", settings=_settings(), client=client)
            assert await provider.embed([]) == []

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        """Non-2xx responses raise ProviderError with the status code."""
        transport = RecordingTransport(
            lambda request: httpx.Response(401, json={"error": {"message": "bad key"}})
        )
        async with httpx.AsyncClient(transport=transport) as client:
            provider = OpenAIEmbeddingProvider("sk-bad", settings=_settings(), client=client)
            with pytest.raises(ProviderError) as exc_info:
                await provider.embed(["text"])

        assert exc_info.value.code == ErrorCode.PROVIDER_ERROR
        assert exc_info.value.details["status_code"] == 401
        assert "bad key" in exc_info.value.details["error"]

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        """Transport failures raise ProviderError."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=RecordingTransport(refuse)) as client:
            provider = OpenAIEmbeddingProvider("sk-test", settings=_settings(), client=client)
            with pytest.raises(ProviderError) as exc_info:
                await provider.embed(["text"])

        assert "connect" in exc_info.value.message.lower()

    @pytest.mark.asyncio
    async def test_malformed_response(self) -> None:
        """Bodies without embeddings raise ProviderError."""
        transport = RecordingTransport(lambda request: httpx.Response(200, json={"oops": []}))
        async with httpx.AsyncClient(transport=transport) as client:
            provider = OpenAIEmbeddingProvider("sk-test", settings=_settings(), client=client)
            with pytest.raises(ProviderError):
                await provider.embed(["text"])

    @pytest.mark.asyncio
    async def test_count_mismatch(self) -> None:
        """Fewer vectors than inputs raise ProviderError."""
        transport = RecordingTransport(
            lambda request: httpx.Response(
                200, json={"data": [{"index": 0, "embedding": [0.1]}]}
            )
        )
        async with httpx.AsyncClient(transport=transport) as client:
            provider = OpenAIEmbeddingProvider("sk-test", settings=_settings(), client=client)
            with pytest.raises(ProviderError, match="Expected 2 embeddings"):
                await provider.embed(["one", "two"])


class TestGeminiEmbeddingProvider:
    """Tests for GeminiEmbeddingProvider."""

    def test_defaults(self) -> None:
        """Default model is text-embedding-004 with 768 dimensions."""
        provider = GeminiEmbeddingProvider("g-test", settings=_settings())
        assert provider.provider_name == "gemini"
        assert provider.model_name == "text-embedding-004"
        assert provider.dimensions == 768

    @pytest.mark.asyncio
    async def test_embed_request_shape(self) -> None:
        """Request targets batchEmbedContents with one entry per text."""
        transport = RecordingTransport(_gemini_handler)
        async with httpx.AsyncClient(transport=transport) as client:
            provider = GeminiEmbeddingProvider("g-test", settings=_settings(), client=client)
            vectors = await provider.embed(["abc", "de"])

        [request] = transport.requests
        assert request.url.path == "/v1beta/models/text-embedding-004:batchEmbedContents"
        assert request.headers["x-goog-api-key"] == "g-test"
        body = json.loads(request.content)
        assert body["requests"][0] == {
            "model": "models/text-embedding-004",
            "content": {"parts": [{"text": "abc"}]},
        }
        assert vectors == [[3.0], [2.0]]

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        """Quota errors surface as ProviderError."""
        transport = RecordingTransport(lambda request: httpx.Response(429, text="quota"))
        async with httpx.AsyncClient(transport=transport) as client:
            provider = GeminiEmbeddingProvider("g-test", settings=_settings(), client=client)
            with pytest.raises(ProviderError) as exc_info:
                await provider.embed(["text"])

        assert exc_info.value.details["status_code"] == 429


class TestCreateEmbeddingProvider:
    """Tests for provider selection."""

    @pytest.fixture(autouse=True)
    def _clear_keys(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for var in (
            "OPENAI_API_KEY",
            "EMBEDDING_OPENAI_API_KEY",
            "GOOGLE_GENERATIVE_AI_API_KEY",
            "EMBEDDING_GEMINI_API_KEY",
            "EMBEDDING_PROVIDER",
            "EMBEDDING_MODEL",
        ):
            monkeypatch.delenv(var, raising=False)

    def test_openai_selected(self) -> None:
        """OpenAI is used when configured with a key."""
        provider = create_embedding_provider(_settings(openai_api_key="sk-test"))
        assert isinstance(provider, OpenAIEmbeddingProvider)

    def test_gemini_selected(self) -> None:
        """Gemini is used when configured with a key."""
        provider = create_embedding_provider(
            _settings(provider=EmbeddingProviderName.GEMINI, gemini_api_key="g-test")
        )
        assert isinstance(provider, GeminiEmbeddingProvider)
        assert provider.dimensions == 768

    def test_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The conventional env var supplies the key."""
        monkeypatch.setenv("GOOGLE_GENERATIVE_AI_API_KEY", "g-env")
        monkeypatch.setenv("EMBEDDING_PROVIDER", "gemini")

        provider = create_embedding_provider(EmbeddingSettings())

        assert isinstance(provider, GeminiEmbeddingProvider)

    def test_missing_openai_key(self) -> None:
        """Missing key fails with the env var name."""
        with pytest.raises(ConfigurationError) as exc_info:
            create_embedding_provider(_settings())

        assert exc_info.value.details["env_var"] == "OPENAI_API_KEY"

    def test_missing_gemini_key_does_not_fall_back(self) -> None:
        """A Gemini config without a key does not switch to OpenAI."""
        with pytest.raises(ConfigurationError) as exc_info:
            create_embedding_provider(
                _settings(provider=EmbeddingProviderName.GEMINI, openai_api_key="sk-test")
            )

        assert exc_info.value.details["env_var"] == "GOOGLE_GENERATIVE_AI_API_KEY"

    def test_empty_key_rejected(self) -> None:
        """Blank keys count as missing."""
        with pytest.raises(ConfigurationError):
            create_embedding_provider(_settings(openai_api_key=""))
