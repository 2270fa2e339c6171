"""Ollama embeddings.

Ollama has changed embedding endpoints across versions:
- Newer: POST /api/embed  {"model": "...", "input": "..."}
- Older: POST /api/embeddings {"model": "...", "prompt": "..."}

We prefer /api/embed and fall back to /api/embeddings once the newer endpoint
answers 404.
"""

from __future__ import annotations

import httpx

from coursebot.core.config import Settings, settings as default_settings
from coursebot.core.errors import EmbeddingFailed
from coursebot.adapters.embed.base import Embedder, dimension_for_model


class OllamaEmbedder(Embedder):
    def __init__(self, settings: Settings = default_settings, client: httpx.Client | None = None):
        self.base = settings.OLLAMA_BASE_URL.rstrip("/")
        self.model = settings.OLLAMA_EMBED_MODEL
        self.dimension = dimension_for_model(self.model, settings.EMBED_DIM)
        self.client = client or httpx.Client(timeout=settings.EMBED_TIMEOUT_S)
        self._legacy_endpoint = False

    def embed(self, text: str) -> list[float]:
        if not self._legacy_endpoint:
            r = self.client.post(f"{self.base}/api/embed", json={"model": self.model, "input": text})
            if r.status_code != 404:
                r.raise_for_status()
                embs = r.json().get("embeddings")
                # /api/embed always answers with a batch, even for a single input.
                if isinstance(embs, list) and embs and isinstance(embs[0], list) and embs[0]:
                    return embs[0]
                raise EmbeddingFailed("Ollama /api/embed response missing 'embeddings'", {"model": self.model})
            self._legacy_endpoint = True

        r = self.client.post(f"{self.base}/api/embeddings", json={"model": self.model, "prompt": text})
        r.raise_for_status()
        vec = r.json().get("embedding")
        if not vec:
            raise EmbeddingFailed("Ollama embedding response missing 'embedding'", {"model": self.model})
        return vec
