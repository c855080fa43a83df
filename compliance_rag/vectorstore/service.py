"""Qdrant-backed storage for document chunk vectors."""

import time
from collections.abc import Sequence
from typing import Any

import pydantic
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    Range,
    VectorParams,
)

from compliance_rag.config import QdrantSettings, get_settings
from compliance_rag.exceptions import (
    ConfigurationError,
    ErrorCode,
    StoreError,
    StoreUnavailable,
)
from compliance_rag.logging_config import get_logger
from compliance_rag.observability.metrics import track_vectorstore_operation
from compliance_rag.vectorstore.models import ScoredRecord, StoredPointPayload, VectorRecord

logger = get_logger(__name__)

DOCUMENT_ID_FIELD = "document_id"
CHUNK_INDEX_FIELD = "chunk_index"


def document_filter(document_id: str) -> Filter:
    """Filter matching every point of one document."""
    return Filter(
        must=[FieldCondition(key=DOCUMENT_ID_FIELD, match=MatchValue(value=document_id))]
    )


def stale_chunk_filter(document_id: str, keep: int) -> Filter:
    """Filter matching a document's points at or beyond chunk index ``keep``."""
    return Filter(
        must=[
            FieldCondition(key=DOCUMENT_ID_FIELD, match=MatchValue(value=document_id)),
            FieldCondition(key=CHUNK_INDEX_FIELD, range=Range(gte=keep)),
        ]
    )


class QdrantVectorStore:
    """Adapter owning one Qdrant collection and its points.

    The collection is created lazily by ``ensure_collection`` with the
    embedding provider's dimension and cosine distance.
    """

    def __init__(
        self,
        dimensions: int,
        settings: QdrantSettings | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            dimensions: Vector size of the active embedding provider.
            settings: Qdrant configuration.
            client: Existing client (for testing or sharing).
        """
        self._dimensions = dimensions
        self._settings = settings or get_settings().qdrant
        self._client = client
        self._owns_client = client is None
        self._collection_ready = False

    @property
    def collection_name(self) -> str:
        return self._settings.collection_name

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
                timeout=self._settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def ensure_collection(self) -> None:
        """Create the collection if it does not exist yet.

        Safe to call repeatedly and concurrently. A failed creation is
        accepted when the collection exists afterwards (another caller won
        the race).

        Raises:
            ConfigurationError: If the existing collection's vector size
                differs from the provider dimension.
            StoreError: If the backend cannot be reached.
        """
        if self._collection_ready:
            return

        client = self._get_client()
        name = self.collection_name

        try:
            response = await client.get_collections()
        except Exception as e:
            raise self._wrap_error("list_collections", e) from e

        existing = {collection.name for collection in response.collections}
        if name in existing:
            await self._check_dimensions(client)
        else:
            await self._create_collection(client)

        self._collection_ready = True

    async def _create_collection(self, client: AsyncQdrantClient) -> None:
        name = self.collection_name
        try:
            await client.create_collection(
                collection_name=name,
                vectors_config=VectorParams(
                    size=self._dimensions,
                    distance=Distance.COSINE,
                ),
            )
        except Exception as e:
            try:
                exists = await client.collection_exists(name)
            except Exception:
                exists = False
            if not exists:
                raise self._wrap_error("create_collection", e) from e
            logger.info(
                f"Collection {name} created concurrently, reusing it",
                extra={"collection": name},
            )
            await self._check_dimensions(client)
            return

        try:
            await client.create_payload_index(
                collection_name=name,
                field_name=DOCUMENT_ID_FIELD,
                field_schema=PayloadSchemaType.KEYWORD,
                wait=True,
            )
        except Exception as e:
            raise self._wrap_error("create_payload_index", e) from e

        logger.info(
            f"Created collection: {name}",
            extra={"collection": name, "dimensions": self._dimensions},
        )

    async def _check_dimensions(self, client: AsyncQdrantClient) -> None:
        name = self.collection_name
        try:
            info = await client.get_collection(name)
        except Exception as e:
            raise self._wrap_error("get_collection", e) from e

        vectors = info.config.params.vectors
        if isinstance(vectors, VectorParams) and vectors.size != self._dimensions:
            raise ConfigurationError(
                f"Collection {name} stores {vectors.size}-dimensional vectors but "
                f"the embedding provider produces {self._dimensions}; "
                "reset the collection after switching providers",
                code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                details={
                    "collection": name,
                    "collection_dimensions": vectors.size,
                    "provider_dimensions": self._dimensions,
                },
            )

    async def reset_collection(self) -> None:
        """Drop the collection and create it again with current dimensions."""
        client = self._get_client()
        name = self.collection_name
        try:
            if await client.collection_exists(name):
                await client.delete_collection(collection_name=name)
                logger.warning(f"Deleted collection: {name}", extra={"collection": name})
        except Exception as e:
            raise self._wrap_error("delete_collection", e) from e

        self._collection_ready = False
        await self.ensure_collection()

    async def upsert(self, records: Sequence[VectorRecord]) -> int:
        """Insert or overwrite points.

        Args:
            records: Records to write; ids that already exist are replaced.

        Returns:
            Number of records written.
        """
        if not records:
            return 0

        client = self._get_client()
        points = [
            PointStruct(
                id=record.id,
                vector=record.vector,
                payload=record.qdrant_payload(),
            )
            for record in records
        ]

        start = time.perf_counter()
        try:
            await client.upsert(
                collection_name=self.collection_name,
                points=points,
                wait=self._settings.wait,
            )
        except Exception as e:
            track_vectorstore_operation("upsert", time.perf_counter() - start, success=False)
            raise self._wrap_error("upsert", e) from e

        track_vectorstore_operation("upsert", time.perf_counter() - start)
        logger.debug(
            f"Upserted {len(points)} points",
            extra={"collection": self.collection_name},
        )
        return len(points)

    async def search(
        self,
        vector: list[float],
        limit: int = 10,
        score_threshold: float = 0.0,
    ) -> list[ScoredRecord]:
        """Nearest-neighbour search with a minimum score.

        Args:
            vector: Query vector.
            limit: Maximum results to return.
            score_threshold: Minimum cosine similarity.

        Returns:
            At most ``limit`` records, best first, all scoring at least
            ``score_threshold``.
        """
        client = self._get_client()

        start = time.perf_counter()
        try:
            response = await client.query_points(
                collection_name=self.collection_name,
                query=vector,
                limit=limit,
                score_threshold=score_threshold,
                with_payload=True,
            )
        except Exception as e:
            track_vectorstore_operation("search", time.perf_counter() - start, success=False)
            raise self._wrap_error("search", e) from e
        track_vectorstore_operation("search", time.perf_counter() - start)

        records = [
            self._to_record(point.id, point.score, point.payload)
            for point in response.points
            if point.score is not None and point.score >= score_threshold
        ]
        records.sort(key=lambda record: record.score or 0.0, reverse=True)
        return records[:limit]

    async def scroll_by_document_id(
        self,
        document_id: str,
        limit: int = 1000,
    ) -> tuple[list[ScoredRecord], bool]:
        """Read the stored points of one document without scoring.

        Args:
            document_id: Document to read.
            limit: Maximum points to fetch in this call.

        Returns:
            ``(records, has_more)``; ``has_more`` is true when the document
            holds more points than ``limit``.
        """
        client = self._get_client()

        start = time.perf_counter()
        try:
            points, next_offset = await client.scroll(
                collection_name=self.collection_name,
                scroll_filter=document_filter(document_id),
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            track_vectorstore_operation("scroll", time.perf_counter() - start, success=False)
            raise self._wrap_error("scroll", e) from e
        track_vectorstore_operation("scroll", time.perf_counter() - start)

        records = [self._to_record(point.id, None, point.payload) for point in points]
        return records, next_offset is not None

    async def delete_by_document_id(self, document_id: str) -> None:
        """Remove every point of one document. Unknown ids are a no-op."""
        await self._delete(document_filter(document_id))
        logger.debug(
            f"Deleted points for document {document_id}",
            extra={"collection": self.collection_name, "document_id": document_id},
        )

    async def delete_stale_chunks(self, document_id: str, keep: int) -> None:
        """Remove a document's points whose chunk index is ``keep`` or higher.

        Called after a re-ingest has overwritten chunks ``0..keep-1`` so a
        shorter new version leaves nothing from the old one behind.
        """
        await self._delete(stale_chunk_filter(document_id, keep))
        logger.debug(
            f"Deleted chunks from index {keep} for document {document_id}",
            extra={"collection": self.collection_name, "document_id": document_id},
        )

    async def _delete(self, points_filter: Filter) -> None:
        client = self._get_client()

        start = time.perf_counter()
        try:
            await client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(filter=points_filter),
                wait=self._settings.wait,
            )
        except Exception as e:
            track_vectorstore_operation("delete", time.perf_counter() - start, success=False)
            raise self._wrap_error("delete", e) from e

        track_vectorstore_operation("delete", time.perf_counter() - start)

    def _to_record(
        self,
        point_id: Any,
        score: float | None,
        payload: dict[str, Any] | None,
    ) -> ScoredRecord:
        """Validate a raw point into a ``ScoredRecord``."""
        try:
            return ScoredRecord(
                id=str(point_id),
                score=score,
                payload=StoredPointPayload.model_validate(payload or {}),
            )
        except pydantic.ValidationError as e:
            raise StoreError(
                f"Stored point {point_id} has an invalid payload",
                code=ErrorCode.INVALID_PAYLOAD,
                details={
                    "collection": self.collection_name,
                    "point_id": str(point_id),
                    "error": str(e),
                },
            ) from e

    def _wrap_error(self, operation: str, error: Exception) -> StoreError:
        """Translate a backend failure into the store error hierarchy."""
        if isinstance(error, StoreError):
            return error

        details = {
            "collection": self.collection_name,
            "operation": operation,
            "error": str(error),
        }
        if isinstance(error, UnexpectedResponse) and error.status_code == 404:
            return StoreUnavailable(
                f"Collection not found: {self.collection_name}",
                details=details,
            )
        logger.error(f"Vector store {operation} failed: {error}", extra=details)
        return StoreError(f"Failed to {operation.replace('_', ' ')}: {error}", details=details)
