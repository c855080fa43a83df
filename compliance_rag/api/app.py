"""FastAPI application entry point.

Configures the application with logging, exception handling, metrics,
health checks and the document routes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from compliance_rag import __version__
from compliance_rag.api.routes import router
from compliance_rag.config import Settings, get_settings
from compliance_rag.embeddings.service import create_embedding_provider
from compliance_rag.exceptions import ComplianceRAGError, ConfigurationError, ErrorCode
from compliance_rag.ingestion.crawler import WebCrawler
from compliance_rag.ingestion.uploader import DocumentUploader
from compliance_rag.logging_config import get_logger, setup_logging
from compliance_rag.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from compliance_rag.retrieval.pipeline import DocumentPipeline
from compliance_rag.vectorstore.service import QdrantVectorStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the embedding provider, vector store and pipeline once and
    closes their clients on shutdown.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting compliance retrieval service",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
        },
    )

    try:
        provider = create_embedding_provider(settings.embedding)
    except ConfigurationError as e:
        logger.error(f"Document pipeline disabled: {e.message}", extra=e.details)
        provider = None

    if provider is None:
        yield
        return

    store = QdrantVectorStore(dimensions=provider.dimensions, settings=settings.qdrant)
    pipeline = DocumentPipeline(provider, store, settings=settings.retrieval)
    crawler = WebCrawler(pipeline, settings.crawl_dir)
    app.state.pipeline = pipeline
    app.state.crawler = crawler
    app.state.uploader = DocumentUploader(pipeline, settings.upload_dir)

    try:
        yield
    finally:
        logger.info("Shutting down compliance retrieval service")
        await crawler.close()
        await store.close()
        await provider.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Compliance Document Retrieval",
        description="Chunking, embedding and semantic search for compliance documents",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(MetricsMiddleware)
    app.add_exception_handler(ComplianceRAGError, compliance_exception_handler)

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Metrics"])
    app.include_router(router)

    return app


async def compliance_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Convert ComplianceRAGError exceptions to structured JSON responses."""
    if not isinstance(exc, ComplianceRAGError):
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": str(exc),
                    "details": {},
                }
            },
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=status_code_for(exc.code),
        content=exc.to_dict(),
    )


_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.DOCUMENT_PARSE_ERROR: 400,
    ErrorCode.DOCUMENT_NOT_FOUND: 404,
    ErrorCode.EMPTY_CONTENT: 422,
    ErrorCode.PROVIDER_ERROR: 502,
    ErrorCode.COLLECTION_NOT_FOUND: 503,
    ErrorCode.STORE_ERROR: 503,
}


def status_code_for(code: ErrorCode) -> int:
    """Map an error code to an HTTP status code (500 when unmapped)."""
    return _STATUS_CODES.get(code, 500)


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Readiness probe.

    Reports whether the document pipeline was configured at startup.
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    checks: dict[str, str] = {
        "config": "ok",
        "pipeline": "ok" if pipeline is not None else "not_configured",
    }

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


app = create_app()
