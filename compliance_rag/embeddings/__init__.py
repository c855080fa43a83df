"""Embedding provider module."""

from compliance_rag.embeddings.service import (
    EmbeddingProvider,
    GeminiEmbeddingProvider,
    HTTPEmbeddingProvider,
    OpenAIEmbeddingProvider,
    create_embedding_provider,
)

__all__ = [
    "EmbeddingProvider",
    "GeminiEmbeddingProvider",
    "HTTPEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "create_embedding_provider",
]
