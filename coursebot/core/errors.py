"""Error taxonomy for the ingestion, indexing and retrieval core.

Every error carries a human-readable message plus a `details` dict, an HTTP
status for the API layer and a `retryable` hint for callers.
"""

from typing import Any


class CoursebotError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class InvalidInput(CoursebotError):
    """Empty or malformed document text. Nothing is written."""
    status_code = 400


class EmbeddingFailed(CoursebotError):
    """The embedding client failed; the whole document's ingestion is aborted."""
    status_code = 502


class IndexUnavailable(CoursebotError):
    """Transport or response failure talking to the vector index."""
    status_code = 503
    retryable = True


class IndexRejected(CoursebotError):
    """The vector index refused a request as invalid (wrong vector size, bad filter). Retrying won't help."""
    status_code = 422


class RetrievalUnavailable(CoursebotError):
    status_code = 503
    retryable = True


class UnitNotAvailable(CoursebotError):
    """The requested unit is unknown or unpublished. A user error."""
    status_code = 400

    def __init__(self, course_id: str, unit_name: str) -> None:
        super().__init__(
            "Selected unit is not published or does not exist",
            {"course_id": course_id, "unit_name": unit_name},
        )


class CourseNotFound(CoursebotError):
    status_code = 404

    def __init__(self, course_id: str) -> None:
        super().__init__(f"Course not found: {course_id}", {"course_id": course_id})


class GenerationTimeout(CoursebotError):
    status_code = 504
    retryable = True


class GenerationFailed(CoursebotError):
    status_code = 502


class DimensionMismatch(CoursebotError):
    status_code = 409

    def __init__(self, collection: str, existing: int, expected: int) -> None:
        super().__init__(
            f"Collection '{collection}' has dim={existing} but expected dim={expected}. "
            "Set VECTOR_RECREATE_ON_DIM_MISMATCH=true or rebuild the index explicitly.",
            {"collection": collection, "existing": existing, "expected": expected},
        )
        self.existing = existing
        self.expected = expected
