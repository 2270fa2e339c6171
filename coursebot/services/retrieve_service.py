import logging

from coursebot.core.errors import CourseNotFound, IndexUnavailable, RetrievalUnavailable, UnitNotAvailable
from coursebot.core.models import Retrieval, RetrievalScope, SearchResult
from coursebot.adapters.embed.base import Embedder
from coursebot.adapters.metadata.base import MetadataStore
from coursebot.adapters.vector.base import VectorStore
from coursebot.services.citation_service import format_citations

logger = logging.getLogger(__name__)


class Retriever:
    def __init__(self, vector: VectorStore, embedder: Embedder, metadata: MetadataStore, top_k: int = 12):
        self.vector = vector
        self.embedder = embedder
        self.metadata = metadata
        self.top_k = top_k

    def resolve_scope(self, course_id: str, unit_name: str) -> RetrievalScope:
        """Units whose chunks a question asked from `unit_name` may draw on.

        Additive courses get the ordered prefix of published units up to and
        including `unit_name`; otherwise only `unit_name` itself.
        """
        course = self.metadata.get_course_units(course_id)
        if course is None:
            raise CourseNotFound(course_id)
        published = course.published_unit_names()
        if unit_name not in published:
            raise UnitNotAvailable(course_id, unit_name)
        if course.additive_retrieval:
            idx = published.index(unit_name)
            return RetrievalScope(course_id=course_id, mode="additive", unit_names=published[: idx + 1])
        return RetrievalScope(course_id=course_id, mode="single", unit_names=[unit_name])

    def search(self, query: str, scope: RetrievalScope, limit: int | None = None) -> list[SearchResult]:
        try:
            qvec = self.embedder.embed(query)
        except Exception as e:
            raise RetrievalUnavailable(
                "Could not embed the query", {"course_id": scope.course_id, "cause": str(e)}
            ) from e
        if len(qvec) != self.vector.dimension:
            logger.warning(
                "Query embedding size (%d) does not match the collection dimension (%d)",
                len(qvec), self.vector.dimension,
            )

        filters = {"course_id": scope.course_id, "unit_name": list(scope.unit_names)}
        try:
            results = self.vector.search(qvec, filters, limit or self.top_k)
        except IndexUnavailable as e:
            raise RetrievalUnavailable("Vector index unavailable", e.details) from e

        logger.debug(
            "Retrieved %d chunks for course %s (%s: %s); units hit: %s",
            len(results), scope.course_id, scope.mode, scope.unit_names,
            sorted({r.unit_name for r in results}),
        )
        return results

    def retrieve(self, query: str, course_id: str, unit_name: str) -> Retrieval:
        scope = self.resolve_scope(course_id, unit_name)
        results = self.search(query, scope)
        return Retrieval(results=results, citations=format_citations(results), scope=scope)
