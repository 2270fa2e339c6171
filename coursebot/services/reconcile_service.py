import logging

from coursebot.core.errors import CoursebotError
from coursebot.core.models import ReconcileResult
from coursebot.adapters.metadata.base import MetadataStore
from coursebot.adapters.vector.base import VectorStore

logger = logging.getLogger(__name__)


class Reconciler:
    """Deletes vector chunks whose document no longer exists in the metadata store.

    Advisory cleanup, run on demand or on a schedule. A document that was just
    created in the metadata store but is still being ingested can look orphaned
    for a moment; it is only ever deleted if it is missing from the metadata
    store, so a racing ingestion loses nothing it should keep.
    """

    def __init__(self, vector: VectorStore, metadata: MetadataStore):
        self.vector = vector
        self.metadata = metadata

    def find_orphans(self, course_id: str) -> tuple[set[str], set[str], list[str]]:
        valid_ids = {str(d) for d in self.metadata.get_document_ids_for_course(course_id)}
        index_ids = self.vector.document_ids(course_id)
        orphans = sorted(index_ids - valid_ids)
        return valid_ids, index_ids, orphans

    def reconcile(self, course_id: str) -> ReconcileResult:
        logger.info("Starting vector cleanup for course %s", course_id)
        valid_ids, index_ids, orphans = self.find_orphans(course_id)
        logger.info(
            "Course %s: %d documents in metadata store, %d in vector index, %d orphaned",
            course_id, len(valid_ids), len(index_ids), len(orphans),
        )

        deleted_chunks = 0
        deleted_docs: list[str] = []
        failed_docs: list[str] = []
        for orphan_id in orphans:
            try:
                count = self.vector.delete_by_document(orphan_id, course_id=course_id)
            except CoursebotError as e:
                logger.error("Failed to delete chunks of orphaned document %s: %s", orphan_id, e)
                failed_docs.append(orphan_id)
                continue
            deleted_chunks += count
            deleted_docs.append(orphan_id)

        logger.info(
            "Cleanup for course %s completed: removed %d orphaned documents (%d chunks), %d failed",
            course_id, len(deleted_docs), deleted_chunks, len(failed_docs),
        )
        return ReconcileResult(
            course_id=course_id,
            valid_docs=len(valid_ids),
            index_docs=len(index_ids),
            orphaned_docs=len(orphans),
            deleted_chunks=deleted_chunks,
            deleted_doc_ids=deleted_docs,
            failed_doc_ids=failed_docs,
        )
