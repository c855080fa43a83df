"""Retrieval data models."""

from pydantic import BaseModel, Field

from compliance_rag.vectorstore.models import ScoredRecord


class SearchResult(BaseModel):
    """A chunk that matched a query.

    Attributes:
        document_id: Owning document.
        chunk_text: Matched chunk text.
        chunk_index: Position of the chunk in its document.
        score: Cosine similarity to the query.
    """

    document_id: str = Field(description="Document identifier")
    file_name: str = Field(description="File name")
    file_path: str = Field(description="Storage path or URL")
    file_type: str = Field(description="File type")
    chunk_text: str = Field(description="Chunk text")
    chunk_index: int = Field(description="Chunk index in document")
    score: float = Field(ge=0.0, le=1.0, description="Similarity score")
    page_number: int | None = Field(default=None, description="Source page number")

    @classmethod
    def from_record(cls, record: ScoredRecord) -> "SearchResult":
        payload = record.payload
        return cls(
            document_id=payload.document_id,
            file_name=payload.file_name,
            file_path=payload.file_path,
            file_type=payload.file_type,
            chunk_text=payload.text,
            chunk_index=payload.chunk_index,
            # cosine scores can overshoot 1.0 by float error
            score=min(max(record.score or 0.0, 0.0), 1.0),
            page_number=payload.page_number,
        )


class IngestResult(BaseModel):
    """Outcome of ingesting one document."""

    document_id: str = Field(description="Document identifier")
    chunks_count: int = Field(description="Chunks stored")


class DocumentChunk(BaseModel):
    """One chunk of a reassembled document."""

    chunk_text: str = Field(description="Chunk text")
    chunk_index: int = Field(description="Chunk index in document")


class DocumentContent(BaseModel):
    """All stored chunks of one document in index order.

    Attributes:
        truncated: True when the document holds more chunks than were read.
    """

    document_id: str = Field(description="Document identifier")
    file_name: str = Field(description="File name")
    file_path: str = Field(description="Storage path or URL")
    file_type: str = Field(description="File type")
    chunks: list[DocumentChunk] = Field(description="Chunks sorted by index")
    total_chunks: int = Field(description="Number of chunks returned")
    truncated: bool = Field(default=False, description="More chunks exist than returned")
