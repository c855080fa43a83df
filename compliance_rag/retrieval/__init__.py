"""Document ingestion and retrieval pipeline."""

from compliance_rag.retrieval.models import (
    DocumentChunk,
    DocumentContent,
    IngestResult,
    SearchResult,
)
from compliance_rag.retrieval.pipeline import DocumentPipeline

__all__ = [
    "DocumentChunk",
    "DocumentContent",
    "DocumentPipeline",
    "IngestResult",
    "SearchResult",
]
