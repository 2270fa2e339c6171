import logging
import uuid

from coursebot.core.config import Settings, settings as default_settings
from coursebot.core.errors import CoursebotError, EmbeddingFailed
from coursebot.core.models import Chunk, DocumentRecord, IngestResult
from coursebot.adapters.embed.base import Embedder
from coursebot.adapters.vector.base import VectorStore
from coursebot.services.chunk_service import chunk_text, sanitize_text

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """sanitize -> chunk -> embed -> upsert, for one document at a time.

    A document's chunk set is all-or-nothing: nothing is written until every
    chunk has an embedding, and a failed write removes what was written.
    """

    def __init__(self, vector: VectorStore, embedder: Embedder, settings: Settings = default_settings):
        self.vector = vector
        self.embedder = embedder
        self.chunk_size = settings.CHUNK_SIZE
        self.overlap = settings.CHUNK_OVERLAP
        self.min_chunk_size = settings.CHUNK_MIN
        self.max_iterations = settings.CHUNK_MAX_ITERATIONS

    def _embed(self, pieces: list[str], document_id: str) -> list[list[float]]:
        vectors = []
        mismatched = 0
        for i, piece in enumerate(pieces):
            try:
                vec = self.embedder.embed(piece)
            except EmbeddingFailed as e:
                e.details.update({"document_id": document_id, "chunk_index": i})
                raise
            except Exception as e:
                raise EmbeddingFailed(
                    f"Failed to generate embedding for chunk {i + 1} of {len(pieces)}",
                    {"document_id": document_id, "chunk_index": i, "cause": str(e)},
                ) from e
            if not vec:
                raise EmbeddingFailed(
                    f"Empty embedding returned for chunk {i + 1} of {len(pieces)}",
                    {"document_id": document_id, "chunk_index": i},
                )
            if len(vec) != self.vector.dimension:
                mismatched += 1
            vectors.append(vec)
        if mismatched:
            logger.warning(
                "Document %s: %d/%d embeddings have a size different from the index dimension %d; "
                "reconcile the embedding model and the collection",
                document_id, mismatched, len(pieces), self.vector.dimension,
            )
        return vectors

    def ingest(self, document: DocumentRecord, raw_text: str, replace_existing: bool = True) -> IngestResult:
        text = sanitize_text(raw_text)
        pieces = chunk_text(
            text,
            chunk_size=self.chunk_size,
            overlap=self.overlap,
            min_chunk_size=self.min_chunk_size,
            max_iterations=self.max_iterations,
        )
        logger.info("Document %s (%s): %d chunks", document.document_id, document.file_name, len(pieces))

        # Create the collection if missing but never rebuild it here: a rebuild
        # drops every course's chunks and is an explicit admin operation.
        self.vector.open_collection()

        # An update is delete + re-ingest, so a failure below leaves no chunks
        # for the document rather than a mix of old and new.
        if replace_existing:
            removed = self.vector.delete_by_document(document.document_id)
            if removed:
                logger.info("Removed %d previous chunks of document %s", removed, document.document_id)

        vectors = self._embed(pieces, document.document_id)

        total = len(pieces)
        chunks = [
            Chunk(
                chunk_id=str(uuid.uuid4()),
                document_id=document.document_id,
                course_id=document.course_id,
                unit_name=document.unit_name,
                file_name=document.file_name,
                mime_type=document.mime_type,
                document_type=document.document_type,
                chunk_index=i,
                total_chunks=total,
                text=piece,
                embedding=vec,
            )
            for i, (piece, vec) in enumerate(zip(pieces, vectors))
        ]

        try:
            stored = self.vector.upsert(chunks)
        except CoursebotError:
            self._rollback(document.document_id)
            raise
        logger.info("Stored %d chunks for document %s", stored, document.document_id)
        return IngestResult(document_id=document.document_id, chunks_processed=total, chunks_stored=stored)

    def _rollback(self, document_id: str) -> None:
        try:
            removed = self.vector.delete_by_document(document_id)
            logger.warning("Rolled back %d partially written chunks of document %s", removed, document_id)
        except CoursebotError as e:
            logger.error(
                "Could not roll back partial ingestion of document %s (%s); "
                "the next reconciliation or re-ingestion will clean it up",
                document_id, e,
            )
