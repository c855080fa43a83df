"""Document ingestion and retrieval orchestrator."""

from compliance_rag.config import RetrievalSettings, get_settings
from compliance_rag.documents.chunker import FixedWindowChunker
from compliance_rag.documents.models import DocumentMetadata
from compliance_rag.embeddings.service import EmbeddingProvider
from compliance_rag.exceptions import (
    DocumentNotFoundError,
    EmptyContentError,
    ValidationError,
)
from compliance_rag.logging_config import get_logger
from compliance_rag.observability.metrics import track_ingestion, track_retrieval_request
from compliance_rag.retrieval.models import (
    DocumentChunk,
    DocumentContent,
    IngestResult,
    SearchResult,
)
from compliance_rag.vectorstore.models import VectorRecord
from compliance_rag.vectorstore.service import QdrantVectorStore

logger = get_logger(__name__)


class DocumentPipeline:
    """Coordinates chunking, embedding and the vector store.

    Holds no data between calls; every operation goes straight to the
    embedding provider and the store. Concurrent ingests of the same
    document are not serialised here.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_store: QdrantVectorStore,
        settings: RetrievalSettings | None = None,
        chunker: FixedWindowChunker | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            embedding_provider: Provider producing query and chunk vectors.
            vector_store: Store owning the document collection.
            settings: Chunking and search defaults.
            chunker: Chunker override; built from ``settings`` otherwise.
        """
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._settings = settings or get_settings().retrieval
        self._chunker = chunker or FixedWindowChunker(self._settings)

    @property
    def settings(self) -> RetrievalSettings:
        return self._settings

    async def ingest(
        self,
        document_id: str,
        text: str,
        metadata: DocumentMetadata,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
        replace_existing: bool = True,
    ) -> IngestResult:
        """Chunk, embed and store a document's extracted text.

        Args:
            document_id: Id keying every stored chunk; must match
                ``metadata.document_id``.
            text: Extracted document text.
            metadata: Provenance of the document.
            chunk_size: Window size override.
            chunk_overlap: Overlap override.
            replace_existing: After writing, delete chunks of the same
                document beyond the new chunk count, so a shorter re-ingest
                leaves no stale chunks behind. Chunks below that count are
                overwritten in place, so a failed write keeps the previous
                version readable.

        Returns:
            IngestResult with the number of chunks stored.

        Raises:
            ValidationError: If ``document_id`` differs from the metadata.
            EmptyContentError: If the text is empty after trimming.
            ConfigurationError: If the chunk parameters are invalid.
            ProviderError: If embedding fails.
            StoreError: If the store write fails.
        """
        if metadata.document_id != document_id:
            raise ValidationError(
                f"Metadata belongs to document {metadata.document_id}, not {document_id}",
                details={"document_id": document_id, "metadata_document_id": metadata.document_id},
            )
        if not text.strip():
            raise EmptyContentError(
                f"No text to ingest for document {document_id}",
                details={"document_id": document_id, "file_name": metadata.file_name},
            )

        chunks = self._chunker.chunk(document_id, text, size=chunk_size, overlap=chunk_overlap)
        logger.info(
            f"Chunked document {metadata.file_name}",
            extra={"document_id": document_id, "chunks": len(chunks)},
        )

        vectors = await self._embedding_provider.embed([chunk.text for chunk in chunks])

        await self._vector_store.ensure_collection()

        records = [
            VectorRecord.from_chunk(chunk, vector, metadata)
            for chunk, vector in zip(chunks, vectors, strict=True)
        ]
        stored = await self._vector_store.upsert(records)
        if replace_existing:
            await self._vector_store.delete_stale_chunks(document_id, keep=stored)

        track_ingestion(metadata.file_type, stored)
        logger.info(
            f"Stored {stored} chunks for document {metadata.file_name}",
            extra={"document_id": document_id, "file_type": metadata.file_type},
        )
        return IngestResult(document_id=document_id, chunks_count=stored)

    async def retrieve(
        self,
        query: str,
        limit: int | None = None,
        score_threshold: float | None = None,
    ) -> list[SearchResult]:
        """Find the chunks most similar to a query.

        Args:
            query: Natural-language query.
            limit: Maximum results (settings default when omitted).
            score_threshold: Minimum similarity (settings default, 0.7,
                when omitted).

        Returns:
            Results ordered best first, every score at or above the
            threshold. An empty list means nothing was relevant enough.
        """
        limit = self._settings.default_limit if limit is None else limit
        threshold = (
            self._settings.score_threshold if score_threshold is None else score_threshold
        )
        if limit < 1:
            raise ValidationError("limit must be at least 1", details={"limit": limit})
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError(
                "score_threshold must be between 0 and 1",
                details={"score_threshold": threshold},
            )

        if not query.strip():
            return []

        [query_vector] = await self._embedding_provider.embed([query])

        await self._vector_store.ensure_collection()
        records = await self._vector_store.search(
            vector=query_vector,
            limit=limit,
            score_threshold=threshold,
        )

        results = [
            SearchResult.from_record(record)
            for record in records
            if record.score is not None and record.score >= threshold
        ]

        track_retrieval_request(len(results), results[0].score if results else 0.0)
        logger.debug(
            f"Retrieved {len(results)} results for query",
            extra={
                "query_length": len(query),
                "limit": limit,
                "score_threshold": threshold,
            },
        )
        return results

    async def get_document(
        self,
        document_id: str,
        limit: int | None = None,
    ) -> DocumentContent:
        """Read back every stored chunk of a document in index order.

        Args:
            document_id: Document to read.
            limit: Maximum chunks to fetch (settings ``scroll_limit`` when
                omitted). ``truncated`` is set when more exist.

        Raises:
            DocumentNotFoundError: If the document has no stored chunks.
        """
        limit = self._settings.scroll_limit if limit is None else limit

        await self._vector_store.ensure_collection()
        records, has_more = await self._vector_store.scroll_by_document_id(
            document_id, limit=limit
        )

        if not records:
            raise DocumentNotFoundError(
                f"Document not found: {document_id}",
                details={"document_id": document_id},
            )

        records.sort(key=lambda record: record.payload.chunk_index)
        first = records[0].payload

        if has_more:
            logger.warning(
                f"Document {document_id} has more than {limit} chunks; result truncated",
                extra={"document_id": document_id, "limit": limit},
            )

        return DocumentContent(
            document_id=document_id,
            file_name=first.file_name,
            file_path=first.file_path,
            file_type=first.file_type,
            chunks=[
                DocumentChunk(
                    chunk_text=record.payload.text,
                    chunk_index=record.payload.chunk_index,
                )
                for record in records
            ],
            total_chunks=len(records),
            truncated=has_more,
        )

    async def delete_document(self, document_id: str) -> None:
        """Remove a document's chunks. Deleting an unknown id succeeds."""
        await self._vector_store.ensure_collection()
        await self._vector_store.delete_by_document_id(document_id)
        logger.info(f"Deleted document {document_id}", extra={"document_id": document_id})
