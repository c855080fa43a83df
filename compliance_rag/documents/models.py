"""Document data models."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """Current time as an ISO 8601 string in UTC."""
    return datetime.now(UTC).isoformat()


class DocumentMetadata(BaseModel):
    """Provenance shared by every chunk of one document.

    Attributes:
        document_id: Unique id of the uploaded or crawled document.
        file_name: Human-readable file name or page title.
        file_path: Storage location (local path or URL).
        file_type: File type or category (``pdf``, ``txt``, ``web``...).
        uploaded_at: ISO 8601 upload/creation timestamp.
        page_number: Optional page the text came from.
    """

    document_id: str = Field(min_length=1, description="Document identifier")
    file_name: str = Field(description="Human-readable file name")
    file_path: str = Field(description="Storage path or URL")
    file_type: str = Field(description="File type or category")
    uploaded_at: str = Field(
        default_factory=utc_timestamp,
        description="ISO 8601 upload timestamp",
    )
    page_number: int | None = Field(default=None, description="Source page number")


class Chunk(BaseModel):
    """A window of a document's extracted text.

    Attributes:
        document_id: Owning document.
        index: Zero-based position within the document.
        total: Number of chunks the document produced.
        text: Chunk content, stripped of outer whitespace.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(description="Owning document identifier")
    index: int = Field(ge=0, description="Chunk index in sequence")
    total: int = Field(ge=1, description="Total chunks for the document")
    text: str = Field(min_length=1, description="Chunk text content")

    @property
    def key(self) -> str:
        """Stable ``{document_id}_chunk_{index}`` key of this chunk."""
        return chunk_key(self.document_id, self.index)


class LoadedDocument(BaseModel):
    """Text extracted from a source file, ready for ingestion."""

    content: str = Field(description="Extracted text")
    file_name: str = Field(description="File name")
    file_path: str = Field(description="Path the text was read from")
    file_type: str = Field(description="File type derived from the extension")


def chunk_key(document_id: str, index: int) -> str:
    """Build the deterministic key identifying a document chunk."""
    return f"{document_id}_chunk_{index}"
