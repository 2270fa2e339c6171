from abc import ABC, abstractmethod

from coursebot.core.models import CourseUnits

class MetadataStore(ABC):
    """System of record for courses and documents. The core only reads it."""

    @abstractmethod
    def get_document_ids_for_course(self, course_id: str) -> list[str]: ...
    @abstractmethod
    def get_course_units(self, course_id: str) -> CourseUnits | None: ...
