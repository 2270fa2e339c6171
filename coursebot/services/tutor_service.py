import logging

from coursebot.core.config import Settings, settings as default_settings
from coursebot.core.models import (
    ChatResult,
    ChatTurn,
    DeleteResult,
    DocumentRecord,
    IndexStats,
    IngestResult,
    ReconcileResult,
)
from coursebot.adapters.embed.base import Embedder
from coursebot.adapters.llm.base import LLM
from coursebot.adapters.metadata.base import MetadataStore
from coursebot.adapters.metadata.sqlite import SQLiteMetadataStore
from coursebot.adapters.vector.qdrant import QdrantVectorStore
from coursebot.services.chat_service import ChatOrchestrator
from coursebot.services.llm_factory import get_embedder, get_llm
from coursebot.services.pipeline_service import IngestionPipeline
from coursebot.services.reconcile_service import Reconciler
from coursebot.services.retrieve_service import Retriever

logger = logging.getLogger(__name__)


class TutorService:
    """What the HTTP layer sees of the ingestion, indexing and retrieval core.

    Built once per process; the vector store, embedder and LLM handles are
    shared by all requests.
    """

    def __init__(
        self,
        vector: QdrantVectorStore,
        embedder: Embedder,
        llm: LLM,
        metadata: MetadataStore,
        settings: Settings = default_settings,
    ):
        self.vector = vector
        self.embedder = embedder
        self.llm = llm
        self.metadata = metadata
        self.pipeline = IngestionPipeline(vector, embedder, settings)
        self.retriever = Retriever(vector, embedder, metadata, top_k=settings.RETRIEVAL_TOP_K)
        self.reconciler = Reconciler(vector, metadata)
        self.orchestrator = ChatOrchestrator(self.retriever, llm, settings)

    def probe_embedding_dimension(self) -> int:
        """Output size of the embedding model, measured with a test embedding when possible."""
        try:
            probe = self.embedder.embed("test")
        except Exception as e:
            logger.warning(
                "Embedding test failed (%s); using configured dimension %d", e, self.embedder.dimension
            )
            return self.embedder.dimension
        if not probe:
            logger.warning("Embedding test returned an empty vector; using configured dimension %d", self.embedder.dimension)
            return self.embedder.dimension
        if len(probe) != self.embedder.dimension:
            logger.warning(
                "Embedding model %s returned %d dimensions, configured %d; trusting the model",
                self.embedder.model, len(probe), self.embedder.dimension,
            )
        return len(probe)

    def initialize(self) -> IndexStats:
        """Validate the collection against the embedding model. May rebuild it (see ensure_collection)."""
        dim = self.probe_embedding_dimension()
        self.vector.ensure_collection(dim)
        stats = self.vector.stats()
        logger.info(
            "Vector index '%s' ready: dim=%s, points=%d, status=%s",
            stats.collection, stats.dimension, stats.point_count, stats.status,
        )
        return stats

    def ingest_document(self, document: DocumentRecord, raw_text: str) -> IngestResult:
        return self.pipeline.ingest(document, raw_text)

    def delete_document(self, document_id: str) -> DeleteResult:
        count = self.vector.delete_by_document(document_id)
        return DeleteResult(document_id=document_id, deleted_count=count)

    async def chat(
        self,
        query: str,
        course_id: str,
        unit_name: str,
        history: list[ChatTurn] | None = None,
        mode: str = "tutor",
        allow_general_knowledge: bool | None = None,
    ) -> ChatResult:
        return await self.orchestrator.chat(
            query, course_id, unit_name,
            history=history, mode=mode, allow_general_knowledge=allow_general_knowledge,
        )

    def reconcile_course(self, course_id: str) -> ReconcileResult:
        return self.reconciler.reconcile(course_id)

    def get_index_stats(self) -> IndexStats:
        return self.vector.stats()

    def rebuild_index(self, dimension: int | None = None) -> IndexStats:
        """Drop and recreate the collection. Every course's chunks are lost."""
        dim = dimension or self.probe_embedding_dimension()
        logger.warning("Explicit index rebuild requested (dim=%d)", dim)
        self.vector.delete_collection()
        self.vector.ensure_collection(dim)
        return self.vector.stats()

    def delete_index(self) -> bool:
        return self.vector.delete_collection()


def build_tutor_service(settings: Settings = default_settings) -> TutorService:
    embedder = get_embedder(settings)
    metadata = SQLiteMetadataStore(settings.DB_PATH)
    metadata.init_db()
    vector = QdrantVectorStore.from_settings(embedder.dimension, settings)
    return TutorService(vector, embedder, get_llm(settings), metadata, settings)
