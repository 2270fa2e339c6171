import httpx

from coursebot.core.config import Settings, settings as default_settings
from coursebot.core.models import Generation
from coursebot.adapters.llm.base import LLM

class OllamaLLM(LLM):
    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self.model = settings.OLLAMA_MODEL

    async def generate(self, prompt: str, *, temperature: float, system_prompt: str | None = None) -> Generation:
        s = self.settings
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "keep_alive": s.OLLAMA_KEEP_ALIVE,
            "options": {
                "num_predict": s.OLLAMA_NUM_PREDICT,
                "num_ctx": s.OLLAMA_NUM_CTX,
                "temperature": temperature,
                "top_p": s.OLLAMA_TOP_P,
            },
        }
        if system_prompt:
            payload["system"] = system_prompt
        async with httpx.AsyncClient(timeout=s.GENERATION_TIMEOUT_S) as client:
            r = await client.post(f"{s.OLLAMA_BASE_URL.rstrip('/')}/api/generate", json=payload)
            r.raise_for_status()
            data = r.json()
        # Older Ollama builds don't report done_reason; the caller falls back to heuristics.
        return Generation(
            content=data.get("response", ""),
            finish_reason=data.get("done_reason"),
            model=data.get("model") or self.model,
        )
