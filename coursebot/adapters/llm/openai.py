from coursebot.core.config import Settings, settings as default_settings
from coursebot.core.models import Generation
from coursebot.adapters.llm.base import LLM

class OpenAILLM(LLM):
    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self.model = settings.OPENAI_MODEL

    async def generate(self, prompt: str, *, temperature: float, system_prompt: str | None = None) -> Generation:
        from openai import AsyncOpenAI
        client = AsyncOpenAI(api_key=self.settings.OPENAI_API_KEY, timeout=self.settings.GENERATION_TIMEOUT_S)
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        resp = await client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=self.settings.OPENAI_MAX_TOKENS,
        )
        choice = resp.choices[0]
        return Generation(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason,
            model=resp.model,
        )
