from coursebot.core.config import Settings, settings as default_settings
from coursebot.adapters.embed.base import Embedder
from coursebot.adapters.embed.ollama import OllamaEmbedder
from coursebot.adapters.embed.openai import OpenAIEmbedder
from coursebot.adapters.llm.base import LLM
from coursebot.adapters.llm.ollama import OllamaLLM
from coursebot.adapters.llm.openai import OpenAILLM

def get_llm(settings: Settings = default_settings) -> LLM:
    if settings.LLM_PROVIDER == "openai":
        return OpenAILLM(settings)
    return OllamaLLM(settings)

def get_embedder(settings: Settings = default_settings) -> Embedder:
    if (settings.EMBED_BACKEND or "ollama").lower() == "openai":
        return OpenAIEmbedder(settings)
    return OllamaEmbedder(settings)
