import logging
from unittest.mock import MagicMock

import pytest

from coursebot.core.errors import EmbeddingFailed, IndexRejected, IndexUnavailable, InvalidInput
from coursebot.adapters.vector.qdrant import QdrantVectorStore
from coursebot.services.pipeline_service import IngestionPipeline

from conftest import DIM, FakeEmbedder, lecture_text, make_document


@pytest.fixture
def pipeline(vector_store, embedder, test_settings):
    return IngestionPipeline(vector_store, embedder, test_settings)


def stored_chunks(vector_store, document_id):
    return sorted(vector_store.scroll({"document_id": document_id}), key=lambda c: c.chunk_index)


def test_ingest_stores_every_chunk(pipeline, vector_store):
    doc = make_document("doc-1", "U1")
    result = pipeline.ingest(doc, lecture_text("photosynthesis"))

    assert result.document_id == "doc-1"
    assert result.chunks_processed > 1
    assert result.chunks_stored == result.chunks_processed

    chunks = stored_chunks(vector_store, "doc-1")
    assert len(chunks) == result.chunks_processed
    assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
    assert {c.total_chunks for c in chunks} == {len(chunks)}
    assert len({c.chunk_id for c in chunks}) == len(chunks)
    for c in chunks:
        assert (c.course_id, c.unit_name, c.file_name) == ("C1", "U1", "doc-1.txt")
        assert c.document_type == "lecture-notes"
        assert len(c.text) <= 200


def test_reingest_replaces_previous_chunks(pipeline, vector_store):
    doc = make_document("doc-1", "U1")
    pipeline.ingest(doc, lecture_text("cells", sentences=20))
    second = pipeline.ingest(doc, lecture_text("mitosis", sentences=6))

    chunks = stored_chunks(vector_store, "doc-1")
    assert len(chunks) == second.chunks_stored
    assert all("mitosis" in c.text for c in chunks)


def test_embedding_failure_leaves_no_chunks(vector_store, test_settings):
    doc = make_document("doc-1", "U1")
    IngestionPipeline(vector_store, FakeEmbedder(), test_settings).ingest(doc, lecture_text("cells"))
    assert stored_chunks(vector_store, "doc-1")

    failing = IngestionPipeline(vector_store, FakeEmbedder(fail_on_call=3), test_settings)
    with pytest.raises(EmbeddingFailed) as exc:
        failing.ingest(doc, lecture_text("mitosis"))

    assert exc.value.details["chunk_index"] == 2
    assert exc.value.details["document_id"] == "doc-1"
    assert stored_chunks(vector_store, "doc-1") == []


def test_empty_embedding_is_a_failure(vector_store, test_settings):
    embedder = FakeEmbedder()
    embedder.embed = MagicMock(return_value=[])
    pipeline = IngestionPipeline(vector_store, embedder, test_settings)

    with pytest.raises(EmbeddingFailed):
        pipeline.ingest(make_document("doc-1", "U1"), lecture_text("cells"))
    assert stored_chunks(vector_store, "doc-1") == []


def test_invalid_text_writes_nothing(vector_store, embedder, test_settings):
    vector = MagicMock(wraps=vector_store)
    pipeline = IngestionPipeline(vector, embedder, test_settings)

    with pytest.raises(InvalidInput):
        pipeline.ingest(make_document("doc-1", "U1"), "   \n  ")

    assert embedder.calls == []
    vector.upsert.assert_not_called()
    vector.delete_by_document.assert_not_called()


def test_dimension_mismatch_is_logged_once(test_settings, caplog):
    vector = MagicMock()
    vector.dimension = 16
    vector.delete_by_document.return_value = 0
    vector.upsert.side_effect = lambda chunks: len(chunks)
    pipeline = IngestionPipeline(vector, FakeEmbedder(dimension=8), test_settings)

    with caplog.at_level(logging.WARNING, logger="coursebot.services.pipeline_service"):
        result = pipeline.ingest(make_document("doc-1", "U1"), lecture_text("cells"))

    warnings = [r for r in caplog.records if "index dimension 16" in r.getMessage()]
    assert len(warnings) == 1
    assert result.chunks_stored == result.chunks_processed
    [chunks] = vector.upsert.call_args.args
    assert all(len(c.embedding) == 8 for c in chunks)


def test_failed_write_is_rolled_back(test_settings):
    vector = MagicMock()
    vector.dimension = 8
    vector.delete_by_document.return_value = 0
    vector.upsert.side_effect = IndexUnavailable("Vector index unavailable during upsert")
    pipeline = IngestionPipeline(vector, FakeEmbedder(), test_settings)

    with pytest.raises(IndexUnavailable):
        pipeline.ingest(make_document("doc-1", "U1"), lecture_text("cells"))

    # once to replace the previous version, once to roll back
    assert vector.delete_by_document.call_count == 2
    vector.open_collection.assert_called_once()
    vector.ensure_collection.assert_not_called()


def test_rollback_failure_still_reports_original_error(test_settings, caplog):
    vector = MagicMock()
    vector.dimension = 8
    vector.delete_by_document.side_effect = [0, IndexUnavailable("still down")]
    vector.upsert.side_effect = IndexUnavailable("Vector index unavailable during upsert")
    pipeline = IngestionPipeline(vector, FakeEmbedder(), test_settings)

    with caplog.at_level(logging.ERROR, logger="coursebot.services.pipeline_service"):
        with pytest.raises(IndexUnavailable, match="during upsert"):
            pipeline.ingest(make_document("doc-1", "U1"), lecture_text("cells"))

    assert "Could not roll back" in caplog.text


def test_rejected_write_is_rolled_back_and_not_retryable(test_settings):
    vector = MagicMock()
    vector.dimension = 8
    vector.delete_by_document.return_value = 0
    vector.upsert.side_effect = IndexRejected("Vector index rejected upsert")
    pipeline = IngestionPipeline(vector, FakeEmbedder(), test_settings)

    with pytest.raises(IndexRejected) as exc:
        pipeline.ingest(make_document("doc-1", "U1"), lecture_text("cells"))

    assert exc.value.retryable is False
    assert vector.delete_by_document.call_count == 2


@pytest.fixture
def shared_collection(qdrant_client, test_settings):
    """A live collection at DIM already holding another course's chunks."""
    live = QdrantVectorStore(qdrant_client, "shared", DIM)
    IngestionPipeline(live, FakeEmbedder(), test_settings).ingest(
        make_document("other-course-doc", "U1", course_id="C2"), lecture_text("cells")
    )
    return live


def test_stale_store_dimension_never_rebuilds_on_ingest(qdrant_client, shared_collection, test_settings):
    before = shared_collection.stats().point_count
    stale = QdrantVectorStore(qdrant_client, "shared", 6)

    result = IngestionPipeline(stale, FakeEmbedder(), test_settings).ingest(
        make_document("doc-1", "U1"), lecture_text("atoms")
    )

    assert stale.dimension == DIM
    assert shared_collection.collection_dimension() == DIM
    assert shared_collection.document_ids("C2") == {"other-course-doc"}
    assert shared_collection.stats().point_count == before + result.chunks_stored


def test_wrong_size_embeddings_are_rejected_without_touching_other_courses(
    qdrant_client, shared_collection, test_settings
):
    before = shared_collection.stats().point_count
    store = QdrantVectorStore(qdrant_client, "shared", DIM)
    pipeline = IngestionPipeline(store, FakeEmbedder(dimension=6), test_settings)

    with pytest.raises(IndexRejected) as exc:
        pipeline.ingest(make_document("doc-1", "U1"), lecture_text("atoms"))

    assert exc.value.retryable is False
    assert shared_collection.collection_dimension() == DIM
    assert shared_collection.document_ids("C1") == set()
    assert shared_collection.stats().point_count == before
