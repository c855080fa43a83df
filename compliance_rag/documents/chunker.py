"""Fixed-window text chunking."""

from compliance_rag.config import RetrievalSettings, get_settings
from compliance_rag.documents.models import Chunk
from compliance_rag.exceptions import ConfigurationError

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


def validate_chunk_params(size: int, overlap: int) -> None:
    """Reject window parameters that cannot make forward progress.

    Raises:
        ConfigurationError: If size is not positive, overlap is negative,
            or overlap is not smaller than size.
    """
    if size <= 0:
        raise ConfigurationError(
            f"chunk size must be positive, got {size}",
            details={"chunk_size": size},
        )
    if overlap < 0:
        raise ConfigurationError(
            f"chunk overlap must not be negative, got {overlap}",
            details={"chunk_overlap": overlap},
        )
    if overlap >= size:
        raise ConfigurationError(
            "chunk overlap must be less than chunk size",
            details={"chunk_size": size, "chunk_overlap": overlap},
        )


def chunk_text(
    text: str,
    size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split text into overlapping fixed-size windows.

    The cursor starts at 0 and advances by ``size - overlap``. Each window
    is stripped and windows that end up empty are dropped.

    Args:
        text: Extracted document text.
        size: Window size in characters.
        overlap: Characters shared by consecutive windows.

    Returns:
        Ordered list of chunk strings; empty for empty input.

    Raises:
        ConfigurationError: If the window parameters are invalid.
    """
    validate_chunk_params(size, overlap)

    step = size - overlap
    chunks: list[str] = []
    for start in range(0, len(text), step):
        piece = text[start : start + size].strip()
        if piece:
            chunks.append(piece)
    return chunks


class FixedWindowChunker:
    """Chunker bound to a window size and overlap.

    Defaults come from ``RetrievalSettings``; either value can be
    overridden per call.
    """

    def __init__(self, settings: RetrievalSettings | None = None) -> None:
        self._settings = settings or get_settings().retrieval
        validate_chunk_params(self._settings.chunk_size, self._settings.chunk_overlap)

    @property
    def chunk_size(self) -> int:
        return self._settings.chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._settings.chunk_overlap

    def chunk(
        self,
        document_id: str,
        text: str,
        size: int | None = None,
        overlap: int | None = None,
    ) -> list[Chunk]:
        """Split a document's text into ``Chunk`` models.

        Args:
            document_id: Owning document id.
            text: Extracted text.
            size: Window size override.
            overlap: Overlap override.

        Returns:
            Chunks in index order, each carrying the total count.
        """
        pieces = chunk_text(
            text,
            size=self.chunk_size if size is None else size,
            overlap=self.chunk_overlap if overlap is None else overlap,
        )
        return [
            Chunk(document_id=document_id, index=i, total=len(pieces), text=piece)
            for i, piece in enumerate(pieces)
        ]
