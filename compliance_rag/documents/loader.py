"""Document loader interface and implementations."""

from abc import ABC, abstractmethod
from pathlib import Path

from compliance_rag.documents.models import LoadedDocument
from compliance_rag.exceptions import DocumentError, ErrorCode, ValidationError


class DocumentLoader(ABC):
    """Abstract base class for document loaders.

    Defines the interface for extracting text from files.
    """

    @abstractmethod
    def load(self, source: str | Path) -> LoadedDocument:
        """Load a document from a source.

        Args:
            source: Path to the document.

        Returns:
            Loaded document text with file details.

        Raises:
            DocumentError: If loading fails.
        """
        ...

    @abstractmethod
    def supports(self, source: str | Path) -> bool:
        """Check if this loader supports the given source.

        Args:
            source: Path to check.

        Returns:
            True if this loader can handle the source.
        """
        ...


class TextFileLoader(DocumentLoader):
    """Loader for text-based files.

    Covers plain text, markdown, reStructuredText and CSV exports.
    """

    SUPPORTED_EXTENSIONS = {".txt", ".text", ".md", ".markdown", ".rst", ".csv"}

    def __init__(self, encoding: str = "utf-8") -> None:
        """Initialize the text file loader.

        Args:
            encoding: Text encoding to use when reading files.
        """
        self.encoding = encoding

    def load(self, source: str | Path) -> LoadedDocument:
        """Read a text file.

        Args:
            source: Path to the text file.

        Returns:
            LoadedDocument with the file content.

        Raises:
            DocumentError: If the file is missing or cannot be read.
            ValidationError: If the extension is not supported.
        """
        path = Path(source)

        if not path.exists():
            raise DocumentError(
                f"File not found: {path}",
                code=ErrorCode.DOCUMENT_NOT_FOUND,
                details={"path": str(path)},
            )

        if not path.is_file():
            raise DocumentError(
                f"Not a file: {path}",
                details={"path": str(path)},
            )

        if not self.supports(path):
            raise ValidationError(
                f"Unsupported file type: {path.suffix or '(none)'}",
                details={
                    "path": str(path),
                    "supported": sorted(self.SUPPORTED_EXTENSIONS),
                },
            )

        try:
            content = path.read_text(encoding=self.encoding)
        except UnicodeDecodeError as e:
            raise DocumentError(
                f"Failed to decode file: {path}",
                details={"path": str(path), "encoding": self.encoding, "error": str(e)},
            ) from e
        except OSError as e:
            raise DocumentError(
                f"Failed to read file: {path}",
                details={"path": str(path), "error": str(e)},
            ) from e

        return LoadedDocument(
            content=content,
            file_name=path.name,
            file_path=str(path),
            file_type=file_type_for(path),
        )

    def supports(self, source: str | Path) -> bool:
        """Check if source has a supported extension."""
        return Path(source).suffix.lower() in self.SUPPORTED_EXTENSIONS


def file_type_for(path: str | Path) -> str:
    """File type label derived from the extension (``report.CSV`` -> ``csv``)."""
    suffix = Path(path).suffix.lower().lstrip(".")
    if suffix in ("text",):
        return "txt"
    if suffix in ("markdown",):
        return "md"
    return suffix
