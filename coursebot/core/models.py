from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Literal


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRecord(BaseModel):
    """A course document as the metadata store knows it. Read-only to the core."""
    document_id: str
    course_id: str
    unit_name: str
    file_name: str
    mime_type: str = "text/plain"
    document_type: str = "unknown"


class Chunk(BaseModel):
    chunk_id: str
    document_id: str
    course_id: str
    unit_name: str
    file_name: str | None = None
    mime_type: str | None = None
    document_type: str | None = None
    chunk_index: int
    total_chunks: int
    text: str
    # Only populated on the write path; never read back from the index.
    embedding: list[float] | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    def payload(self) -> dict:
        data = self.model_dump(mode="json", exclude={"embedding"})
        data["chunk_length"] = len(self.text)
        return data


class UnitInfo(BaseModel):
    name: str
    is_published: bool = False


class CourseUnits(BaseModel):
    course_id: str
    units: list[UnitInfo] = Field(default_factory=list)
    additive_retrieval: bool = False

    def published_unit_names(self) -> list[str]:
        return [u.name for u in self.units if u.is_published]


class RetrievalScope(BaseModel):
    course_id: str
    mode: Literal["single", "additive"]
    unit_names: list[str]


class SearchResult(BaseModel):
    chunk_id: str
    score: float
    document_id: str
    file_name: str | None = None
    unit_name: str
    chunk_text: str
    chunk_index: int | None = None


class Citation(BaseModel):
    unit_name: str
    file_name: str | None = None
    score: float


class Retrieval(BaseModel):
    results: list[SearchResult]
    citations: list[Citation]
    scope: RetrievalScope


class IngestResult(BaseModel):
    document_id: str
    chunks_processed: int
    chunks_stored: int


class DeleteResult(BaseModel):
    document_id: str
    deleted_count: int


class ReconcileResult(BaseModel):
    course_id: str
    valid_docs: int
    index_docs: int
    orphaned_docs: int
    deleted_chunks: int
    deleted_doc_ids: list[str] = Field(default_factory=list)
    failed_doc_ids: list[str] = Field(default_factory=list)


class IndexStats(BaseModel):
    collection: str
    point_count: int
    dimension: int | None = None
    distance: str | None = None
    status: str


class Generation(BaseModel):
    content: str
    finish_reason: str | None = None
    model: str | None = None


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatResult(BaseModel):
    text: str
    citations: list[Citation]
    retrieval_scope: RetrievalScope
    continuations: int = 0
    degraded: bool = False
    model: str | None = None
