"""Vector store module."""

from compliance_rag.vectorstore.models import (
    ScoredRecord,
    StoredPointPayload,
    VectorRecord,
    point_id_for,
)
from compliance_rag.vectorstore.service import QdrantVectorStore, document_filter

__all__ = [
    "QdrantVectorStore",
    "ScoredRecord",
    "StoredPointPayload",
    "VectorRecord",
    "document_filter",
    "point_id_for",
]
