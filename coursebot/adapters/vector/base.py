from abc import ABC, abstractmethod
from typing import Any, Iterator

from coursebot.core.models import Chunk, IndexStats, SearchResult

class VectorStore(ABC):
    dimension: int

    @abstractmethod
    def ensure_collection(self, dimension: int | None = None, recreate: bool | None = None) -> bool: ...
    @abstractmethod
    def open_collection(self) -> int: ...
    @abstractmethod
    def upsert(self, chunks: list[Chunk]) -> int: ...
    @abstractmethod
    def delete_by_document(self, document_id: str, course_id: str | None = None) -> int: ...
    @abstractmethod
    def search(self, vector: list[float], filters: dict[str, Any] | None, limit: int) -> list[SearchResult]: ...
    @abstractmethod
    def scroll(self, filters: dict[str, Any] | None = None) -> Iterator[Chunk]: ...
    @abstractmethod
    def stats(self) -> IndexStats: ...

    def document_ids(self, course_id: str) -> set[str]:
        return {c.document_id for c in self.scroll({"course_id": course_id})}
