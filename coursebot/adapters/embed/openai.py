from coursebot.core.config import Settings, settings as default_settings
from coursebot.core.errors import EmbeddingFailed
from coursebot.adapters.embed.base import Embedder, dimension_for_model


class OpenAIEmbedder(Embedder):
    def __init__(self, settings: Settings = default_settings):
        if not settings.OPENAI_API_KEY:
            raise RuntimeError("OPENAI_API_KEY is not set")
        from openai import OpenAI

        self.model = settings.OPENAI_EMBED_MODEL
        self.dimension = dimension_for_model(self.model, settings.EMBED_DIM)
        self.client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.EMBED_TIMEOUT_S)

    def embed(self, text: str) -> list[float]:
        resp = self.client.embeddings.create(model=self.model, input=text)
        if not resp.data:
            raise EmbeddingFailed("OpenAI embedding response was empty", {"model": self.model})
        return resp.data[0].embedding
