from abc import ABC, abstractmethod

# Output sizes of the embedding models we have deployed against.
KNOWN_EMBED_DIMS = {
    "nomic-embed-text": 768,
    "text-embedding-3-small": 1536,
    "text-embedding-ada-002": 1536,
}


def dimension_for_model(model: str, default: int) -> int:
    return KNOWN_EMBED_DIMS.get(model, default)


class Embedder(ABC):
    model: str
    dimension: int

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single text into one vector."""
        ...
