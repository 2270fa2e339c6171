import io

import httpx
import pytest
from docx import Document as Docx

from coursebot.core.config import Settings
from coursebot.core.errors import EmbeddingFailed, InvalidInput
from coursebot.core.models import DocumentRecord
from coursebot.adapters.embed.base import dimension_for_model
from coursebot.adapters.embed.ollama import OllamaEmbedder
from coursebot.services.ingest_service import extract_text, mime_type_for
from coursebot.services.llm_factory import get_embedder


def ollama_embedder(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return OllamaEmbedder(Settings(OLLAMA_BASE_URL="http://ollama:11434/", OLLAMA_EMBED_MODEL="nomic-embed-text"), client=client)


def test_ollama_embed_uses_batch_endpoint():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={"embeddings": [[0.1, 0.2, 0.3]]})

    embedder = ollama_embedder(handler)
    assert embedder.embed("hello") == [0.1, 0.2, 0.3]
    assert seen == ["/api/embed"]
    assert embedder.dimension == 768


def test_ollama_embed_falls_back_to_legacy_endpoint():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path == "/api/embed":
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json={"embedding": [0.5, 0.5]})

    embedder = ollama_embedder(handler)
    assert embedder.embed("one") == [0.5, 0.5]
    assert embedder.embed("two") == [0.5, 0.5]
    # the newer endpoint is only tried once
    assert seen == ["/api/embed", "/api/embeddings", "/api/embeddings"]


def test_ollama_embed_rejects_malformed_response():
    embedder = ollama_embedder(lambda request: httpx.Response(200, json={"embeddings": []}))
    with pytest.raises(EmbeddingFailed):
        embedder.embed("hello")


def test_ollama_embed_raises_on_server_error():
    embedder = ollama_embedder(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(httpx.HTTPStatusError):
        embedder.embed("hello")


def test_known_model_dimensions():
    assert dimension_for_model("text-embedding-3-small", 768) == 1536
    assert dimension_for_model("some-local-model", 1024) == 1024


def test_openai_embedder_requires_key():
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        get_embedder(Settings(EMBED_BACKEND="openai", OPENAI_API_KEY=None))


def test_extract_plain_text():
    assert extract_text("notes.txt", "Café notes".encode("utf-8")) == "Café notes"
    assert mime_type_for("Lecture.PDF") == "application/pdf"


def test_extract_docx_paragraphs():
    doc = Docx()
    doc.add_paragraph("First paragraph.")
    doc.add_paragraph("   ")
    doc.add_paragraph("Second paragraph.")
    buf = io.BytesIO()
    doc.save(buf)

    assert extract_text("week1.docx", buf.getvalue()) == "First paragraph.\nSecond paragraph."


def test_unsupported_file_type():
    with pytest.raises(InvalidInput, match="Unsupported file type"):
        extract_text("slides.pptx", b"...")


def test_metadata_store_units_keep_order(metadata):
    course = metadata.get_course_units("C1")
    assert [u.name for u in course.units] == ["U1", "U2", "U3"]
    assert course.published_unit_names() == ["U1", "U2"]
    assert course.additive_retrieval is False
    assert metadata.get_course_units("missing") is None


def test_metadata_store_documents(metadata):
    doc = DocumentRecord(document_id="d-1", course_id="C1", unit_name="U1", file_name="a.txt")
    metadata.save_document(doc)
    metadata.save_document(DocumentRecord(document_id="d-2", course_id="C2", unit_name="U1", file_name="b.txt"))

    assert metadata.get_document("d-1") == doc
    assert metadata.list_documents("C1") == [doc]
    assert metadata.get_document_ids_for_course("C1") == ["d-1"]
    assert metadata.delete_document("d-1") is True
    assert metadata.delete_document("d-1") is False
    assert metadata.get_document("d-1") is None
