"""
Shared fixtures: in-process Qdrant, a temporary SQLite metadata store and
deterministic stand-ins for the embedding and text-generation services.
"""

import hashlib

import pytest
from qdrant_client import QdrantClient

from coursebot.core.config import Settings
from coursebot.core.models import CourseUnits, DocumentRecord, Generation, UnitInfo
from coursebot.adapters.embed.base import Embedder
from coursebot.adapters.llm.base import LLM
from coursebot.adapters.metadata.sqlite import SQLiteMetadataStore
from coursebot.adapters.vector.qdrant import QdrantVectorStore

DIM = 8


class FakeEmbedder(Embedder):
    """Hash-based vectors; optionally fails on the n-th call (1-based)."""

    def __init__(self, dimension: int = DIM, fail_on_call: int | None = None):
        self.model = "fake-embed"
        self.dimension = dimension
        self.fail_on_call = fail_on_call
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise RuntimeError("embedding backend exploded")
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [1.0 + digest[i % len(digest)] / 255.0 for i in range(self.dimension)]


class ScriptedLLM(LLM):
    """Returns the scripted generations in order, repeating the last one."""

    def __init__(self, generations: list[Generation]):
        self.model = "scripted-llm"
        self.generations = generations
        self.prompts: list[str] = []
        self.system_prompts: list[str | None] = []
        self.temperatures: list[float] = []

    async def generate(self, prompt: str, *, temperature: float, system_prompt: str | None = None) -> Generation:
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        self.temperatures.append(temperature)
        idx = min(len(self.prompts), len(self.generations)) - 1
        return self.generations[idx]


def lecture_text(topic: str, sentences: int = 12) -> str:
    return " ".join(
        f"Fact {i} about {topic} is worth remembering." for i in range(sentences)
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        CHUNK_SIZE=200,
        CHUNK_OVERLAP=40,
        CHUNK_MIN=50,
        RETRIEVAL_TOP_K=12,
        GENERATION_TIMEOUT_S=1.0,
        VECTOR_COLLECTION="test_chunks",
        CHAT_GENERAL_KNOWLEDGE_FALLBACK=False,
    )


@pytest.fixture
def qdrant_client() -> QdrantClient:
    return QdrantClient(":memory:")


@pytest.fixture
def vector_store(qdrant_client: QdrantClient) -> QdrantVectorStore:
    store = QdrantVectorStore(qdrant_client, "test_chunks", DIM, scroll_page=50)
    store.ensure_collection()
    return store


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def metadata(tmp_path) -> SQLiteMetadataStore:
    store = SQLiteMetadataStore(str(tmp_path / "metadata.sqlite3"))
    store.init_db()
    store.save_course(
        CourseUnits(
            course_id="C1",
            units=[
                UnitInfo(name="U1", is_published=True),
                UnitInfo(name="U2", is_published=True),
                UnitInfo(name="U3", is_published=False),
            ],
            additive_retrieval=False,
        )
    )
    return store


def make_document(document_id: str, unit_name: str, course_id: str = "C1") -> DocumentRecord:
    return DocumentRecord(
        document_id=document_id,
        course_id=course_id,
        unit_name=unit_name,
        file_name=f"{document_id}.txt",
        mime_type="text/plain",
        document_type="lecture-notes",
    )
