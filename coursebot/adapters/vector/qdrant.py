from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import httpx
from pydantic import ValidationError
from qdrant_client import QdrantClient
from qdrant_client.http import models as qm
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from coursebot.core.config import Settings, settings as default_settings
from coursebot.core.errors import DimensionMismatch, IndexRejected, IndexUnavailable
from coursebot.core.models import Chunk, IndexStats, SearchResult
from coursebot.adapters.vector.base import VectorStore

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (ResponseHandlingException, httpx.HTTPError, ConnectionError)


def _filters_to_qdrant_filter(filters: Optional[Dict[str, Any]]) -> Optional[qm.Filter]:
    """Convert {key: value} filters into an AND of Qdrant conditions.

    Scalar values match by equality; list/tuple/set values match any-of.
    """
    if not filters:
        return None
    must = []
    for k, v in filters.items():
        if v is None:
            continue
        if isinstance(v, (list, tuple, set, frozenset)):
            must.append(qm.FieldCondition(key=k, match=qm.MatchAny(any=list(v))))
        else:
            must.append(qm.FieldCondition(key=k, match=qm.MatchValue(value=v)))
    return qm.Filter(must=must) if must else None


@contextmanager
def _index_errors(operation: str, collection: str):
    try:
        yield
    except UnexpectedResponse as e:
        if e.status_code is not None and 400 <= e.status_code < 500:
            logger.error("Qdrant rejected %s on '%s': %s", operation, collection, e)
            raise IndexRejected(
                f"Vector index rejected {operation}",
                {"collection": collection, "status_code": e.status_code, "cause": str(e)},
            ) from e
        logger.error("Qdrant %s failed on '%s': %s", operation, collection, e)
        raise IndexUnavailable(
            f"Vector index unavailable during {operation}",
            {"collection": collection, "cause": str(e)},
        ) from e
    except ValueError as e:
        # the in-process client validates locally and raises ValueError
        logger.error("Qdrant rejected %s on '%s': %s", operation, collection, e)
        raise IndexRejected(
            f"Vector index rejected {operation}",
            {"collection": collection, "cause": str(e)},
        ) from e
    except _TRANSPORT_ERRORS as e:
        logger.error("Qdrant %s failed on '%s': %s", operation, collection, e)
        raise IndexUnavailable(
            f"Vector index unavailable during {operation}",
            {"collection": collection, "cause": str(e)},
        ) from e


class QdrantVectorStore(VectorStore):
    """Owns the single course-documents collection: lifecycle, point writes and scans.

    The client handle is created once and shared; qdrant-client is safe to use
    from concurrent requests.
    """

    def __init__(
        self,
        client: QdrantClient,
        collection: str,
        dimension: int,
        *,
        recreate_on_dim_mismatch: bool = True,
        upsert_batch: int = 256,
        scroll_page: int = 1000,
        scroll_max_pages: int = 500,
    ):
        self.client = client
        self.collection = collection
        self.dimension = dimension
        self.recreate_on_dim_mismatch = recreate_on_dim_mismatch
        self.upsert_batch = upsert_batch
        self.scroll_page = scroll_page
        self.scroll_max_pages = scroll_max_pages

    @classmethod
    def from_settings(cls, dimension: int, settings: Settings = default_settings) -> "QdrantVectorStore":
        client = QdrantClient(
            url=settings.VECTOR_DB_URL,
            api_key=settings.VECTOR_DB_API_KEY,
            timeout=settings.VECTOR_TIMEOUT_S,
        )
        return cls(
            client,
            settings.VECTOR_COLLECTION,
            dimension,
            recreate_on_dim_mismatch=settings.VECTOR_RECREATE_ON_DIM_MISMATCH,
            upsert_batch=settings.VECTOR_UPSERT_BATCH,
            scroll_page=settings.VECTOR_SCROLL_PAGE,
            scroll_max_pages=settings.VECTOR_SCROLL_MAX_PAGES,
        )

    # -- collection lifecycle -------------------------------------------------

    def collection_dimension(self) -> Optional[int]:
        """Return the existing collection's vector size, or None if it doesn't exist."""
        with _index_errors("get_collection", self.collection):
            if not self.client.collection_exists(self.collection):
                return None
            info = self.client.get_collection(self.collection)
        vectors = info.config.params.vectors

        # Possible shapes:
        # 1) VectorParams(size=768, distance=Cosine)
        # 2) {"default": VectorParams(...)} (named vectors)
        if isinstance(vectors, qm.VectorParams):
            return int(vectors.size)
        if isinstance(vectors, dict) and vectors:
            named = vectors.get("default") or next(iter(vectors.values()))
            return int(named.size)
        return None

    def _create(self, dimension: int) -> None:
        with _index_errors("create_collection", self.collection):
            self.client.create_collection(
                collection_name=self.collection,
                vectors_config=qm.VectorParams(size=dimension, distance=qm.Distance.COSINE),
            )
        logger.info("Created collection '%s' (dim=%d, cosine)", self.collection, dimension)

    def ensure_collection(self, dimension: Optional[int] = None, recreate: Optional[bool] = None) -> bool:
        """Ensure the collection exists AND has the expected vector dimension.

        Returns True when the collection was created or rebuilt. A dimension
        change is not migratable: when recreating (recreate_on_dim_mismatch
        unless `recreate` says otherwise) the collection is dropped and
        recreated, which deletes every chunk of every course. Otherwise
        DimensionMismatch is raised and nothing is touched.
        """
        dim = int(dimension or self.dimension)
        if recreate is None:
            recreate = self.recreate_on_dim_mismatch
        existing_dim = self.collection_dimension()
        if existing_dim is None:
            self._create(dim)
            self.dimension = dim
            return True
        if existing_dim == dim:
            self.dimension = dim
            return False
        if not recreate:
            raise DimensionMismatch(self.collection, existing_dim, dim)

        logger.error(
            "Collection '%s' has dim=%d, embeddings produce dim=%d: dropping and recreating. "
            "All previously ingested chunks are lost and documents must be re-ingested.",
            self.collection, existing_dim, dim,
        )
        with _index_errors("delete_collection", self.collection):
            self.client.delete_collection(collection_name=self.collection)
        self._create(dim)
        self.dimension = dim
        return True

    def open_collection(self) -> int:
        """Create the collection if it is missing, otherwise adopt its live dimension.

        Never drops anything, so it is safe on the write path.
        """
        existing_dim = self.collection_dimension()
        if existing_dim is None:
            self._create(self.dimension)
            return self.dimension
        if existing_dim != self.dimension:
            logger.warning(
                "Collection '%s' has dim=%d but this store expected dim=%d; using the collection's",
                self.collection, existing_dim, self.dimension,
            )
            self.dimension = existing_dim
        return existing_dim

    def delete_collection(self) -> bool:
        with _index_errors("delete_collection", self.collection):
            if not self.client.collection_exists(self.collection):
                return False
            self.client.delete_collection(collection_name=self.collection)
        logger.warning("Deleted collection '%s'", self.collection)
        return True

    def stats(self) -> IndexStats:
        with _index_errors("get_collection", self.collection):
            if not self.client.collection_exists(self.collection):
                return IndexStats(collection=self.collection, point_count=0, status="missing")
            info = self.client.get_collection(self.collection)
            point_count = info.points_count
            if point_count is None:
                point_count = self.client.count(self.collection, exact=True).count

        vectors = info.config.params.vectors
        if isinstance(vectors, dict) and vectors:
            vectors = vectors.get("default") or next(iter(vectors.values()))
        status = info.status.value if hasattr(info.status, "value") else str(info.status)
        return IndexStats(
            collection=self.collection,
            point_count=int(point_count or 0),
            dimension=getattr(vectors, "size", None),
            distance=str(getattr(vectors.distance, "value", vectors.distance)) if vectors is not None else None,
            status=status,
        )

    # -- points ---------------------------------------------------------------

    def upsert(self, chunks: List[Chunk]) -> int:
        """Write chunks as points keyed by chunk_id. Existing ids are overwritten."""
        points = []
        for c in chunks:
            if c.embedding is None:
                raise ValueError(f"chunk {c.chunk_id} has no embedding")
            points.append(qm.PointStruct(id=c.chunk_id, vector=c.embedding, payload=c.payload()))

        for i in range(0, len(points), self.upsert_batch):
            batch = points[i:i + self.upsert_batch]
            with _index_errors("upsert", self.collection):
                self.client.upsert(collection_name=self.collection, points=batch, wait=True)
        return len(points)

    def _scroll_records(self, filters: Optional[Dict[str, Any]], with_payload: Any = True) -> Iterator[Any]:
        qfilter = _filters_to_qdrant_filter(filters)
        offset = None
        pages = 0
        while True:
            pages += 1
            with _index_errors("scroll", self.collection):
                records, offset = self.client.scroll(
                    collection_name=self.collection,
                    scroll_filter=qfilter,
                    limit=self.scroll_page,
                    offset=offset,
                    with_payload=with_payload,
                    with_vectors=False,
                )
            yield from records
            if offset is None:
                return
            if pages >= self.scroll_max_pages:
                logger.warning(
                    "Scroll over '%s' stopped after %d pages (filters=%s); results are incomplete",
                    self.collection, pages, filters,
                )
                return

    def scroll(self, filters: Optional[Dict[str, Any]] = None) -> Iterator[Chunk]:
        for record in self._scroll_records(filters):
            chunk = self._payload_to_chunk(record.id, record.payload)
            if chunk is not None:
                yield chunk

    def exists(self) -> bool:
        with _index_errors("collection_exists", self.collection):
            return self.client.collection_exists(self.collection)

    def document_ids(self, course_id: str) -> set[str]:
        ids = set()
        if not self.exists():
            return ids
        for record in self._scroll_records({"course_id": course_id}, with_payload=["document_id"]):
            doc_id = (record.payload or {}).get("document_id")
            if doc_id:
                ids.add(str(doc_id))
        return ids

    def delete_by_document(self, document_id: str, course_id: Optional[str] = None) -> int:
        """Delete all points that belong to a document. Returns 0 when there are none."""
        if not self.exists():
            return 0
        filters: Dict[str, Any] = {"document_id": document_id}
        if course_id:
            filters["course_id"] = course_id
        point_ids = [r.id for r in self._scroll_records(filters, with_payload=False)]
        if not point_ids:
            logger.debug("No chunks found for document %s", document_id)
            return 0
        with _index_errors("delete", self.collection):
            self.client.delete(
                collection_name=self.collection,
                points_selector=qm.PointIdsList(points=point_ids),
                wait=True,
            )
        logger.info("Deleted %d chunks for document %s", len(point_ids), document_id)
        return len(point_ids)

    def search(self, vector: List[float], filters: Optional[Dict[str, Any]], limit: int) -> List[SearchResult]:
        if not self.exists():
            logger.warning("Collection '%s' does not exist yet; nothing to search", self.collection)
            return []
        with _index_errors("search", self.collection):
            res = self.client.query_points(
                collection_name=self.collection,
                query=vector,
                query_filter=_filters_to_qdrant_filter(filters),
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        out = []
        for hit in res.points:
            chunk = self._payload_to_chunk(hit.id, hit.payload)
            if chunk is None:
                continue
            out.append(SearchResult(
                chunk_id=chunk.chunk_id,
                score=float(hit.score or 0.0),
                document_id=chunk.document_id,
                file_name=chunk.file_name,
                unit_name=chunk.unit_name,
                chunk_text=chunk.text,
                chunk_index=chunk.chunk_index,
            ))
        return out

    @staticmethod
    def _payload_to_chunk(point_id: Any, payload: Optional[Dict[str, Any]]) -> Optional[Chunk]:
        """Validate a stored payload into a Chunk.

        Ingestion uses chunk_id as the point id, so when the payload lacks it
        we derive it from the point id.
        """
        data = dict(payload or {})
        data.setdefault("chunk_id", str(point_id))
        try:
            return Chunk.model_validate(data)
        except ValidationError as e:
            logger.warning("Skipping point %s with malformed payload: %s", point_id, e.errors()[:3])
            return None
