"""Web page ingestion using httpx and trafilatura.

Fetches a page, extracts its readable text, optionally keeps a copy on
disk, and feeds the text through the document pipeline.
"""

import json
import re
import uuid
from pathlib import Path

import httpx
import trafilatura
from pydantic import BaseModel, Field

from compliance_rag.documents.models import DocumentMetadata, utc_timestamp
from compliance_rag.exceptions import DocumentError, EmptyContentError
from compliance_rag.logging_config import get_logger
from compliance_rag.retrieval.pipeline import DocumentPipeline

logger = get_logger(__name__)

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; compliance-rag/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


class CrawlResult(BaseModel):
    """Outcome of crawling and indexing one URL."""

    document_id: str = Field(description="Assigned document identifier")
    url: str = Field(description="Crawled URL")
    title: str = Field(description="Page title (URL when absent)")
    content_length: int = Field(description="Extracted text length in characters")
    chunks_count: int = Field(description="Chunks stored")
    file_path: str | None = Field(default=None, description="Saved text file, if any")


class PageContent(BaseModel):
    """Readable text extracted from a web page."""

    title: str
    text: str


class WebCrawler:
    """Crawl a URL into the document collection."""

    def __init__(
        self,
        pipeline: DocumentPipeline,
        crawl_dir: str | Path,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._crawl_dir = Path(crawl_dir)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, url: str) -> PageContent:
        """Download ``url`` and extract its main text and title.

        Raises:
            DocumentError: If the page cannot be fetched.
            EmptyContentError: If no readable text was found.
        """
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DocumentError(
                f"HTTP {e.response.status_code} for {url}",
                details={"url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise DocumentError(
                f"Failed to fetch {url}: {e}",
                details={"url": url, "error": str(e)},
            ) from e

        html = response.text
        text = trafilatura.extract(html, include_comments=False, include_tables=True)
        if not text or not text.strip():
            raise EmptyContentError(
                f"No readable content found at {url}",
                details={"url": url},
            )

        return PageContent(title=_extract_title(html) or url, text=text)

    async def crawl(
        self,
        url: str,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
        save_to_file: bool = True,
    ) -> CrawlResult:
        """Fetch ``url``, optionally save its text, and ingest it.

        Args:
            url: Page to crawl.
            chunk_size: Window size override.
            chunk_overlap: Overlap override.
            save_to_file: Keep a ``.txt`` copy under the crawl directory.

        Returns:
            CrawlResult describing the stored document.
        """
        page = await self.fetch(url)
        document_id = str(uuid.uuid4())
        logger.info(
            f"Crawled {len(page.text)} characters from {url}",
            extra={"document_id": document_id, "title": page.title},
        )

        saved_path: Path | None = None
        if save_to_file:
            self._crawl_dir.mkdir(parents=True, exist_ok=True)
            slug = _UNSAFE_FILENAME_CHARS.sub("_", page.title)[:50]
            saved_path = self._crawl_dir / f"{document_id}_{slug}.txt"
            saved_path.write_text(page.text, encoding="utf-8")

        metadata = DocumentMetadata(
            document_id=document_id,
            file_name=page.title,
            file_path=str(saved_path) if saved_path else url,
            file_type="web",
            uploaded_at=utc_timestamp(),
        )
        result = await self._pipeline.ingest(
            document_id,
            page.text,
            metadata,
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            replace_existing=False,
        )

        return CrawlResult(
            document_id=document_id,
            url=url,
            title=page.title,
            content_length=len(page.text),
            chunks_count=result.chunks_count,
            file_path=str(saved_path) if saved_path else None,
        )


def _extract_title(html: str) -> str:
    """Page title from trafilatura's metadata, empty when unavailable."""
    metadata = trafilatura.extract(
        html,
        include_comments=False,
        output_format="json",
        with_metadata=True,
    )
    if not metadata:
        return ""
    try:
        return (json.loads(metadata).get("title") or "").strip()
    except json.JSONDecodeError:
        logger.debug("Page metadata was not valid JSON")
        return ""
