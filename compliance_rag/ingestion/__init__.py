"""Source ingestion: file uploads and web crawling."""

from compliance_rag.ingestion.crawler import CrawlResult, PageContent, WebCrawler
from compliance_rag.ingestion.uploader import DocumentUploader, UploadResult

__all__ = [
    "CrawlResult",
    "DocumentUploader",
    "PageContent",
    "UploadResult",
    "WebCrawler",
]
