"""Vector store data models."""

import uuid
from typing import Any

from pydantic import BaseModel, Field

from compliance_rag.documents.models import Chunk, DocumentMetadata, chunk_key

# Namespace for deriving Qdrant point ids from chunk keys.
POINT_ID_NAMESPACE = uuid.UUID("5b0e8f4e-3c1d-4a8e-9a57-6f2d1c0b7e21")


def point_id_for(document_id: str, index: int) -> str:
    """Deterministic point id for a document chunk.

    Qdrant accepts only integers and UUIDs as ids, so the
    ``{document_id}_chunk_{index}`` key is mapped through UUIDv5.
    """
    return str(uuid.uuid5(POINT_ID_NAMESPACE, chunk_key(document_id, index)))


class StoredPointPayload(BaseModel):
    """Payload stored with every chunk vector.

    Attributes:
        text: Chunk text.
        document_id: Owning document; used for filtering.
        chunk_key: ``{document_id}_chunk_{index}``.
        chunk_index: Position of the chunk in its document.
        total_chunks: Chunks the document produced at ingest time.
    """

    text: str = Field(description="Chunk text")
    document_id: str = Field(description="Owning document identifier")
    chunk_key: str = Field(description="Deterministic chunk key")
    file_name: str = Field(description="Human-readable file name")
    file_path: str = Field(description="Storage path or URL")
    file_type: str = Field(description="File type or category")
    chunk_index: int = Field(ge=0, description="Chunk index in document")
    total_chunks: int = Field(ge=1, description="Total chunks for the document")
    uploaded_at: str = Field(description="ISO 8601 upload timestamp")
    page_number: int | None = Field(default=None, description="Source page number")

    @classmethod
    def from_chunk(cls, chunk: Chunk, metadata: DocumentMetadata) -> "StoredPointPayload":
        """Merge a chunk with its document metadata."""
        return cls(
            text=chunk.text,
            document_id=chunk.document_id,
            chunk_key=chunk.key,
            file_name=metadata.file_name,
            file_path=metadata.file_path,
            file_type=metadata.file_type,
            chunk_index=chunk.index,
            total_chunks=chunk.total,
            uploaded_at=metadata.uploaded_at,
            page_number=metadata.page_number,
        )


class VectorRecord(BaseModel):
    """A record to store in the vector database.

    Attributes:
        id: Point identifier (UUID string).
        vector: The embedding vector.
        payload: Chunk text and document metadata.
    """

    id: str = Field(description="Point identifier")
    vector: list[float] = Field(description="Embedding vector")
    payload: StoredPointPayload = Field(description="Point payload")

    @classmethod
    def from_chunk(
        cls,
        chunk: Chunk,
        vector: list[float],
        metadata: DocumentMetadata,
    ) -> "VectorRecord":
        return cls(
            id=point_id_for(chunk.document_id, chunk.index),
            vector=vector,
            payload=StoredPointPayload.from_chunk(chunk, metadata),
        )

    def qdrant_payload(self) -> dict[str, Any]:
        """Payload as sent to Qdrant; unset page numbers are omitted."""
        return self.payload.model_dump(exclude_none=True)


class ScoredRecord(BaseModel):
    """A stored point read back from the collection.

    Attributes:
        id: Point identifier.
        score: Cosine similarity to the query; ``None`` for scrolled points.
        payload: Validated point payload.
    """

    id: str = Field(description="Point identifier")
    score: float | None = Field(default=None, description="Similarity score")
    payload: StoredPointPayload = Field(description="Point payload")
