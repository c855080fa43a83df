"""API routes for document ingestion and retrieval."""

import tempfile
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, status
from pydantic import BaseModel, Field, model_validator

from compliance_rag.documents.models import DocumentMetadata, utc_timestamp
from compliance_rag.ingestion.crawler import CrawlResult, WebCrawler
from compliance_rag.ingestion.uploader import DocumentUploader, UploadResult
from compliance_rag.logging_config import get_logger
from compliance_rag.retrieval.models import DocumentContent, IngestResult, SearchResult
from compliance_rag.retrieval.pipeline import DocumentPipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Documents"])


def _check_window(size: int | None, overlap: int | None) -> None:
    if size is not None and overlap is not None and overlap >= size:
        raise ValueError("chunk_overlap must be smaller than chunk_size")


class IngestRequest(BaseModel):
    """Request body for ingesting extracted document text."""

    content: str = Field(description="Extracted document text")
    file_name: str = Field(min_length=1, description="Human-readable file name")
    document_id: str | None = Field(
        default=None,
        min_length=1,
        description="Document id (generated when omitted)",
    )
    file_path: str | None = Field(default=None, description="Storage path or URL")
    file_type: str = Field(default="txt", description="File type or category")
    page_number: int | None = Field(default=None, ge=1, description="Source page")
    chunk_size: int | None = Field(default=None, gt=0, description="Window size")
    chunk_overlap: int | None = Field(default=None, ge=0, description="Window overlap")
    replace_existing: bool = Field(
        default=True,
        description="Remove chunks left over from a longer previous version",
    )

    @model_validator(mode="after")
    def check_window(self) -> "IngestRequest":
        _check_window(self.chunk_size, self.chunk_overlap)
        return self


class CrawlRequest(BaseModel):
    """Request body for crawling a web page."""

    url: str = Field(pattern=r"^https?://", description="Page URL")
    chunk_size: int | None = Field(default=None, gt=0, description="Window size")
    chunk_overlap: int | None = Field(default=None, ge=0, description="Window overlap")
    save_to_file: bool = Field(default=True, description="Keep a text copy on disk")

    @model_validator(mode="after")
    def check_window(self) -> "CrawlRequest":
        _check_window(self.chunk_size, self.chunk_overlap)
        return self


class SearchRequest(BaseModel):
    """Request body for semantic search."""

    query: str = Field(min_length=1, description="Question or keywords")
    limit: int = Field(default=5, ge=1, le=100, description="Maximum results")
    score_threshold: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Minimum similarity (service default when omitted)",
    )


class SearchResponse(BaseModel):
    """Semantic search results."""

    results: list[SearchResult] = Field(description="Matches, best first")
    total_results: int = Field(description="Number of matches")
    file_paths: list[str] = Field(description="Distinct files the matches come from")


class DeleteResponse(BaseModel):
    """Confirmation of a document deletion."""

    document_id: str
    deleted: bool = True


def get_pipeline(request: Request) -> DocumentPipeline:
    """Pipeline built during application startup."""
    pipeline: DocumentPipeline | None = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        logger.warning("Document pipeline not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Document pipeline not configured",
                "message": "Set the embedding provider API key and Qdrant URL",
            },
        )
    return pipeline


def get_crawler(request: Request) -> WebCrawler:
    """Web crawler built during application startup."""
    crawler: WebCrawler | None = getattr(request.app.state, "crawler", None)
    if crawler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "Web crawler not configured"},
        )
    return crawler


def get_uploader(request: Request) -> DocumentUploader:
    """File uploader built during application startup."""
    uploader: DocumentUploader | None = getattr(request.app.state, "uploader", None)
    if uploader is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "Document uploader not configured"},
        )
    return uploader


@router.post("/documents", response_model=IngestResult, status_code=status.HTTP_201_CREATED)
async def ingest_document(
    body: IngestRequest,
    pipeline: DocumentPipeline = Depends(get_pipeline),
) -> IngestResult:
    """Chunk, embed and store a document's extracted text."""
    metadata = ingest_request_to_metadata(body)
    return await pipeline.ingest(
        metadata.document_id,
        body.content,
        metadata,
        chunk_size=body.chunk_size,
        chunk_overlap=body.chunk_overlap,
        replace_existing=body.replace_existing,
    )


@router.post(
    "/documents/upload",
    response_model=UploadResult,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    file: UploadFile,
    uploader: DocumentUploader = Depends(get_uploader),
) -> UploadResult:
    """Store an uploaded text file and index its content."""
    file_name = file.filename or "upload.txt"
    with tempfile.TemporaryDirectory() as tmp_dir:
        staged = Path(tmp_dir) / f"upload{Path(file_name).suffix}"
        staged.write_bytes(await file.read())
        return await uploader.upload(staged, file_name=file_name)


@router.post("/documents/crawl", response_model=CrawlResult, status_code=status.HTTP_201_CREATED)
async def crawl_document(
    body: CrawlRequest,
    crawler: WebCrawler = Depends(get_crawler),
) -> CrawlResult:
    """Crawl a web page into the document collection."""
    return await crawler.crawl(
        body.url,
        chunk_size=body.chunk_size,
        chunk_overlap=body.chunk_overlap,
        save_to_file=body.save_to_file,
    )


@router.post("/search", response_model=SearchResponse)
async def search_documents(
    body: SearchRequest,
    pipeline: DocumentPipeline = Depends(get_pipeline),
) -> SearchResponse:
    """Semantic search over stored chunks."""
    results = await pipeline.retrieve(
        body.query,
        limit=body.limit,
        score_threshold=body.score_threshold,
    )
    return search_results_to_response(results)


@router.get("/documents/{document_id}", response_model=DocumentContent)
async def get_document(
    document_id: str,
    pipeline: DocumentPipeline = Depends(get_pipeline),
) -> DocumentContent:
    """Return every stored chunk of a document in order."""
    return await pipeline.get_document(document_id)


@router.delete("/documents/{document_id}", response_model=DeleteResponse)
async def delete_document(
    document_id: str,
    pipeline: DocumentPipeline = Depends(get_pipeline),
) -> DeleteResponse:
    """Remove a document's chunks."""
    await pipeline.delete_document(document_id)
    return DeleteResponse(document_id=document_id)


def ingest_request_to_metadata(body: IngestRequest) -> DocumentMetadata:
    """Convert an API IngestRequest to document metadata."""
    return DocumentMetadata(
        document_id=body.document_id or str(uuid.uuid4()),
        file_name=body.file_name,
        file_path=body.file_path or body.file_name,
        file_type=body.file_type,
        uploaded_at=utc_timestamp(),
        page_number=body.page_number,
    )


def search_results_to_response(results: list[SearchResult]) -> SearchResponse:
    """Wrap search results with the distinct files they reference."""
    file_paths = list(dict.fromkeys(result.file_path for result in results))
    return SearchResponse(
        results=results,
        total_results=len(results),
        file_paths=file_paths,
    )
