"""Document processing module."""

from compliance_rag.documents.chunker import (
    FixedWindowChunker,
    chunk_text,
    validate_chunk_params,
)
from compliance_rag.documents.loader import DocumentLoader, TextFileLoader
from compliance_rag.documents.models import (
    Chunk,
    DocumentMetadata,
    LoadedDocument,
    chunk_key,
)

__all__ = [
    "Chunk",
    "DocumentLoader",
    "DocumentMetadata",
    "FixedWindowChunker",
    "LoadedDocument",
    "TextFileLoader",
    "chunk_key",
    "chunk_text",
    "validate_chunk_params",
]
