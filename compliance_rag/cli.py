"""Command-line entry point.

Usage:
    compliance-rag serve
    compliance-rag ingest policies/access-control.md policies/backup.txt
    compliance-rag crawl https://example.com/pci-dss-overview
    compliance-rag search "who reviews privileged accounts" --limit 3
    compliance-rag reset --yes

Exit code is 1 when a command fails with a library error.
"""

import argparse
import asyncio
import json
import sys
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn

from compliance_rag.config import Settings, get_settings
from compliance_rag.embeddings.service import create_embedding_provider
from compliance_rag.exceptions import ComplianceRAGError
from compliance_rag.ingestion.crawler import WebCrawler
from compliance_rag.ingestion.uploader import DocumentUploader
from compliance_rag.logging_config import get_logger, setup_logging
from compliance_rag.retrieval.pipeline import DocumentPipeline
from compliance_rag.vectorstore.service import QdrantVectorStore

logger = get_logger(__name__)


@asynccontextmanager
async def open_pipeline(
    settings: Settings,
) -> AsyncGenerator[tuple[DocumentPipeline, QdrantVectorStore], None]:
    """Build the pipeline and its store, closing both clients on exit."""
    provider = create_embedding_provider(settings.embedding)
    store = QdrantVectorStore(dimensions=provider.dimensions, settings=settings.qdrant)
    try:
        yield DocumentPipeline(provider, store, settings=settings.retrieval), store
    finally:
        await store.close()
        await provider.close()


async def ingest_files(settings: Settings, paths: Sequence[Path]) -> list[dict]:
    """Upload and index local text files."""
    results = []
    async with open_pipeline(settings) as (pipeline, _):
        uploader = DocumentUploader(pipeline, settings.upload_dir)
        for path in paths:
            result = await uploader.upload(path)
            logger.info(
                f"Indexed {result.file_name}",
                extra={"document_id": result.document_id, "chunks": result.chunks_count},
            )
            results.append(result.model_dump())
    return results


async def crawl_urls(settings: Settings, urls: Sequence[str], save_to_file: bool) -> list[dict]:
    """Crawl each URL and index its main text."""
    results = []
    async with open_pipeline(settings) as (pipeline, _):
        crawler = WebCrawler(pipeline, settings.crawl_dir)
        try:
            for url in urls:
                result = await crawler.crawl(url, save_to_file=save_to_file)
                results.append(result.model_dump())
        finally:
            await crawler.close()
    return results


async def search(
    settings: Settings,
    query: str,
    limit: int | None,
    score_threshold: float | None,
) -> list[dict]:
    """Run one semantic search and return the results as dicts."""
    async with open_pipeline(settings) as (pipeline, _):
        results = await pipeline.retrieve(query, limit=limit, score_threshold=score_threshold)
    return [result.model_dump() for result in results]


async def reset_collection(settings: Settings) -> None:
    """Drop and recreate the collection for the configured provider."""
    async with open_pipeline(settings) as (_, store):
        await store.reset_collection()
    logger.warning(
        "Collection reset",
        extra={"collection": settings.qdrant.collection_name},
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compliance-rag",
        description="Compliance document ingestion and retrieval",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (API_HOST when omitted)")
    serve.add_argument("--port", type=int, default=None, help="Port (API_PORT when omitted)")

    ingest = commands.add_parser("ingest", help="Index local text files")
    ingest.add_argument("paths", nargs="+", type=Path, help="Files to upload")

    crawl = commands.add_parser("crawl", help="Index web pages")
    crawl.add_argument("urls", nargs="+", help="Pages to crawl")
    crawl.add_argument(
        "--no-save",
        action="store_true",
        help="Do not keep a text copy of crawled pages",
    )

    query = commands.add_parser("search", help="Semantic search")
    query.add_argument("query", help="Question or keywords")
    query.add_argument("--limit", type=int, default=None, help="Maximum results")
    query.add_argument(
        "--score-threshold",
        type=float,
        default=None,
        help="Minimum similarity (0-1)",
    )

    reset = commands.add_parser("reset", help="Drop and recreate the collection")
    reset.add_argument("--yes", action="store_true", help="Confirm deleting all vectors")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    if args.command == "serve":
        uvicorn.run(
            "compliance_rag.api.app:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            log_level=settings.log_level.lower(),
        )
        return 0

    setup_logging(level=settings.log_level)

    if args.command == "reset" and not args.yes:
        print("Refusing to reset without --yes", file=sys.stderr)
        return 2

    try:
        if args.command == "ingest":
            output = asyncio.run(ingest_files(settings, args.paths))
        elif args.command == "crawl":
            output = asyncio.run(crawl_urls(settings, args.urls, not args.no_save))
        elif args.command == "search":
            output = asyncio.run(
                search(settings, args.query, args.limit, args.score_threshold)
            )
        else:
            asyncio.run(reset_collection(settings))
            output = {"collection": settings.qdrant.collection_name, "reset": True}
    except ComplianceRAGError as e:
        logger.error(f"{args.command} failed: {e.message}", extra=e.details)
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
