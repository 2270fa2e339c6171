from abc import ABC, abstractmethod

from coursebot.core.models import Generation

class LLM(ABC):
    model: str

    @abstractmethod
    async def generate(self, prompt: str, *, temperature: float, system_prompt: str | None = None) -> Generation:
        """Return the generated text and, when the provider reports it, why generation stopped."""
        ...
