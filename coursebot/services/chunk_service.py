import logging
import re

from coursebot.core.errors import InvalidInput

logger = logging.getLogger(__name__)

# C0/C1 control characters except tab and newline
CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")
# same character repeated 10+ times (OCR junk, separator lines)
REPEAT_RE = re.compile(r"(.)\1{10,}")
SENTENCE_END = ".!?"
# share of the window searched backwards for a sentence boundary
BOUNDARY_WINDOW = 0.2


def sanitize_text(raw: str) -> str:
    if not isinstance(raw, str):
        raise InvalidInput("Document content must be a string", {"type": type(raw).__name__})
    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    text = CONTROL_RE.sub("", text)
    if REPEAT_RE.search(text):
        logger.warning("Document content contains long runs of a repeated character; collapsing them")
        text = REPEAT_RE.sub(r"\1\1\1", text)
    return text


def _sentence_cut(text: str, start: int, end: int, min_end: int) -> int | None:
    """Position just after the last sentence end in the trailing part of text[start:end]."""
    floor = max(end - int((end - start) * BOUNDARY_WINDOW), min_end)
    for i in range(end - 1, floor - 2, -1):
        if text[i] in SENTENCE_END and (i + 1 == len(text) or text[i + 1].isspace()):
            return i + 1
    return None


def chunk_text(
    text: str,
    chunk_size: int = 1000,
    overlap: int = 200,
    min_chunk_size: int = 100,
    max_iterations: int = 10000,
) -> list[str]:
    """Split text into overlapping segments, preferring sentence boundaries.

    Chunks are raw slices of `text`: dropping each chunk's overlap with its
    predecessor and concatenating gives back `text` exactly. Every chunk is at
    most `chunk_size` long and, except possibly the last, at least
    `min_chunk_size`.
    """
    if chunk_size <= 0 or overlap < 0 or overlap >= chunk_size or not 0 < min_chunk_size <= chunk_size:
        raise InvalidInput(
            "Invalid chunking parameters",
            {"chunk_size": chunk_size, "overlap": overlap, "min_chunk_size": min_chunk_size},
        )
    if not text or not text.strip():
        raise InvalidInput("Document content is empty or contains only whitespace")
    if len(text.strip()) < min_chunk_size:
        raise InvalidInput(
            "Document content is too short to process meaningfully",
            {"length": len(text.strip()), "min_chunk_size": min_chunk_size},
        )

    chunks: list[str] = []
    n = len(text)
    start = 0
    for _ in range(max_iterations):
        end = min(start + chunk_size, n)
        if end < n:
            cut = _sentence_cut(text, start, end, start + min_chunk_size)
            if cut is not None:
                end = cut
        chunks.append(text[start:end])
        if end >= n:
            return chunks
        start = max(end - overlap, start + 1)

    raise InvalidInput(
        "Chunking did not converge",
        {"max_iterations": max_iterations, "length": n, "chunks": len(chunks)},
    )
