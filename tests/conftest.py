"""Pytest configuration and shared fixtures."""

import math
from collections.abc import AsyncGenerator, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from compliance_rag.api.app import app
from compliance_rag.config import RetrievalSettings
from compliance_rag.documents.models import DocumentMetadata
from compliance_rag.embeddings.service import EmbeddingProvider
from compliance_rag.retrieval.pipeline import DocumentPipeline
from compliance_rag.vectorstore.models import ScoredRecord, VectorRecord


class FakeEmbeddingProvider(EmbeddingProvider):
    """Deterministic provider: letter-frequency vectors over a-z."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self.vectorize(text) for text in texts]

    @staticmethod
    def vectorize(text: str) -> list[float]:
        counts = [0.0] * 26
        for char in text.lower():
            if "a" <= char <= "z":
                counts[ord(char) - ord("a")] += 1.0
        if not any(counts):
            counts[0] = 1.0
        return counts

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model_name(self) -> str:
        return "fake-letters"

    @property
    def dimensions(self) -> int:
        return 26


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryVectorStore:
    """Stand-in for QdrantVectorStore keeping points in a dict."""

    def __init__(self) -> None:
        self.points: dict[str, VectorRecord] = {}
        self.ensure_calls = 0

    async def ensure_collection(self) -> None:
        self.ensure_calls += 1

    async def upsert(self, records: list[VectorRecord]) -> int:
        for record in records:
            self.points[record.id] = record
        return len(records)

    async def search(
        self,
        vector: list[float],
        limit: int = 10,
        score_threshold: float = 0.0,
    ) -> list[ScoredRecord]:
        scored = [
            ScoredRecord(id=r.id, score=cosine(vector, r.vector), payload=r.payload)
            for r in self.points.values()
        ]
        scored = [s for s in scored if (s.score or 0.0) >= score_threshold]
        scored.sort(key=lambda s: s.score or 0.0, reverse=True)
        return scored[:limit]

    async def scroll_by_document_id(
        self,
        document_id: str,
        limit: int = 1000,
    ) -> tuple[list[ScoredRecord], bool]:
        matches = [
            ScoredRecord(id=r.id, payload=r.payload)
            for r in self.points.values()
            if r.payload.document_id == document_id
        ]
        return matches[:limit], len(matches) > limit

    async def delete_by_document_id(self, document_id: str) -> None:
        self.points = {
            pid: r for pid, r in self.points.items() if r.payload.document_id != document_id
        }

    async def delete_stale_chunks(self, document_id: str, keep: int) -> None:
        self.points = {
            pid: r
            for pid, r in self.points.items()
            if r.payload.document_id != document_id or r.payload.chunk_index < keep
        }


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def retrieval_settings() -> RetrievalSettings:
    return RetrievalSettings(
        chunk_size=1000,
        chunk_overlap=200,
        score_threshold=0.7,
        default_limit=10,
        scroll_limit=1000,
    )


@pytest.fixture
def pipeline(
    fake_provider: FakeEmbeddingProvider,
    memory_store: InMemoryVectorStore,
    retrieval_settings: RetrievalSettings,
) -> DocumentPipeline:
    return DocumentPipeline(
        fake_provider,
        memory_store,  # type: ignore[arg-type]
        settings=retrieval_settings,
    )


def _make_metadata(document_id: str = "doc-1", **overrides: object) -> DocumentMetadata:
    fields: dict[str, object] = {
        "document_id": document_id,
        "file_name": "policy.txt",
        "file_path": "/uploads/policy.txt",
        "file_type": "txt",
        "uploaded_at": "2024-01-01T00:00:00+00:00",
    }
    fields.update(overrides)
    return DocumentMetadata(**fields)  # type: ignore[arg-type]


@pytest.fixture
def make_metadata() -> Callable[..., DocumentMetadata]:
    """Factory for document metadata with test defaults."""
    return _make_metadata


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
