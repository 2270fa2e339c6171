from __future__ import annotations

from coursebot.core.models import Citation, SearchResult


def format_citations(results: list[SearchResult]) -> list[Citation]:
    """One citation per (unit, file), keeping the best score, in first-seen order.

    Only the citation list is de-duplicated; prompt construction keeps every
    retrieved chunk.
    """
    cites: dict[tuple[str, str | None], Citation] = {}
    for r in results:
        key = (r.unit_name, r.file_name)
        existing = cites.get(key)
        if existing is None:
            cites[key] = Citation(unit_name=r.unit_name, file_name=r.file_name, score=r.score)
        elif r.score > existing.score:
            existing.score = r.score
    return list(cites.values())


def build_context(results: list[SearchResult]) -> str:
    blocks = []
    for r in results:
        blocks.append(f"From {r.unit_name} ({r.file_name or 'unknown file'}):\n{r.chunk_text}")
    return "\n\n---\n\n".join(blocks)
