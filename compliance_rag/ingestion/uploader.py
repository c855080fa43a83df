"""File upload ingestion."""

import shutil
import uuid
from pathlib import Path

from pydantic import BaseModel, Field

from compliance_rag.documents.loader import DocumentLoader, TextFileLoader
from compliance_rag.documents.models import DocumentMetadata, utc_timestamp
from compliance_rag.exceptions import DocumentError, EmptyContentError, ErrorCode
from compliance_rag.logging_config import get_logger
from compliance_rag.retrieval.pipeline import DocumentPipeline

logger = get_logger(__name__)


class UploadResult(BaseModel):
    """Outcome of uploading one file."""

    document_id: str = Field(description="Assigned document identifier")
    file_name: str = Field(description="Original file name")
    file_path: str = Field(description="Path of the stored copy")
    file_type: str = Field(description="File type")
    chunks_count: int = Field(description="Chunks stored")


class DocumentUploader:
    """Copies a file into the upload directory and ingests its text."""

    def __init__(
        self,
        pipeline: DocumentPipeline,
        upload_dir: str | Path,
        loader: DocumentLoader | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._upload_dir = Path(upload_dir)
        self._loader = loader or TextFileLoader()

    async def upload(
        self,
        file_path: str | Path,
        file_name: str | None = None,
        file_type: str | None = None,
    ) -> UploadResult:
        """Store a copy of ``file_path`` and ingest it under a new id.

        Args:
            file_path: File to upload.
            file_name: Display name (defaults to the file's own name).
            file_type: Type label (defaults to the extension).

        Returns:
            UploadResult describing the stored document.

        Raises:
            DocumentError: If the file is missing or unreadable.
            ValidationError: If the file type is not supported.
            EmptyContentError: If no text could be extracted.
        """
        source = Path(file_path)
        if not source.is_file():
            raise DocumentError(
                f"File not found: {source}",
                code=ErrorCode.DOCUMENT_NOT_FOUND,
                details={"path": str(source)},
            )

        loaded = self._loader.load(source)
        name = file_name or source.name
        kind = file_type or loaded.file_type
        if not loaded.content.strip():
            raise EmptyContentError(
                f"No readable text in {name}",
                details={"path": str(source)},
            )

        document_id = str(uuid.uuid4())
        self._upload_dir.mkdir(parents=True, exist_ok=True)
        stored_path = self._upload_dir / f"{document_id}{Path(name).suffix}"
        try:
            shutil.copyfile(source, stored_path)
        except OSError as e:
            raise DocumentError(
                f"Failed to copy {source} to upload directory",
                details={"path": str(source), "error": str(e)},
            ) from e
        logger.info(
            f"Copied {name} to {stored_path}",
            extra={"document_id": document_id},
        )

        metadata = DocumentMetadata(
            document_id=document_id,
            file_name=name,
            file_path=str(stored_path),
            file_type=kind,
            uploaded_at=utc_timestamp(),
        )
        result = await self._pipeline.ingest(
            document_id, loaded.content, metadata, replace_existing=False
        )

        return UploadResult(
            document_id=document_id,
            file_name=name,
            file_path=str(stored_path),
            file_type=kind,
            chunks_count=result.chunks_count,
        )
