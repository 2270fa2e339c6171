"""One chat turn: retrieve -> generate -> (continue while truncated) -> done."""

import asyncio
import logging
import re

from coursebot.core.config import Settings, settings as default_settings
from coursebot.core.errors import GenerationFailed, GenerationTimeout, RetrievalUnavailable
from coursebot.core.models import ChatResult, ChatTurn, Generation, RetrievalScope, SearchResult
from coursebot.adapters.llm.base import LLM
from coursebot.services.citation_service import build_context, format_citations
from coursebot.services.rag_service import (
    build_continuation_prompt,
    build_general_prompt,
    build_prompt,
    system_prompt,
)
from coursebot.services.retrieve_service import Retriever

logger = logging.getLogger(__name__)

# sentence-terminal punctuation, optionally followed by closing quotes/brackets
CLEAN_END_RE = re.compile(r"[.!?][\"')\]]*\s*$")

# finish reasons that mean the output budget ran out (Ollama, OpenAI, Anthropic-style)
LENGTH_FINISH_REASONS = {"length", "max_tokens", "max_output_tokens", "model_length"}


def is_length_limited(finish_reason: str) -> bool:
    return finish_reason.strip().lower() in LENGTH_FINISH_REASONS


def is_likely_truncated(generation: Generation, content: str, min_chars: int = 300) -> bool:
    """Whether `content` looks cut off.

    The provider's finish reason wins when it reports one ("length",
    "max_tokens", ...). Without it we fall back to a heuristic: an answer
    longer than `min_chars` that does not end in sentence-terminal
    punctuation is treated as truncated.
    """
    if generation.finish_reason:
        return is_length_limited(generation.finish_reason)
    if not content:
        return False
    return len(content) > min_chars and not CLEAN_END_RE.search(content[-60:])


class ChatOrchestrator:
    def __init__(self, retriever: Retriever, llm: LLM, settings: Settings = default_settings):
        self.retriever = retriever
        self.llm = llm
        self.temperature = settings.CHAT_TEMPERATURE
        self.timeout = settings.GENERATION_TIMEOUT_S
        self.max_continuations = settings.MAX_CONTINUATIONS
        self.truncation_min_chars = settings.TRUNCATION_MIN_CHARS
        self.tail_chars = settings.CONTINUATION_TAIL_CHARS
        self.general_fallback = settings.CHAT_GENERAL_KNOWLEDGE_FALLBACK

    async def _generate(self, prompt: str, system: str) -> Generation:
        try:
            return await asyncio.wait_for(
                self.llm.generate(prompt, temperature=self.temperature, system_prompt=system),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationTimeout(
                "The tutor took too long to answer. Please try again.",
                {"timeout_s": self.timeout},
            ) from e
        except Exception as e:
            raise GenerationFailed("Text generation failed", {"cause": str(e)}) from e

    async def complete(self, prompt: str, system: str) -> tuple[Generation, str, int]:
        """Generate, then issue at most `max_continuations` follow-up calls while truncated."""
        generation = await self._generate(prompt, system)
        content = generation.content
        continuations = 0
        while continuations < self.max_continuations and is_likely_truncated(
            generation, content, self.truncation_min_chars
        ):
            continuations += 1
            logger.info("Answer looks truncated (finish_reason=%s); continuation %d", generation.finish_reason, continuations)
            generation = await self._generate(build_continuation_prompt(content, self.tail_chars), system)
            content += generation.content
        return generation, content, continuations

    def _retrieve(
        self, query: str, course_id: str, unit_name: str, allow_general_knowledge: bool
    ) -> tuple[RetrievalScope, list[SearchResult], bool]:
        """Blocking part of a turn (metadata lookup, embedding, search); runs in a worker thread."""
        # Unknown course/unit is a user error and is never degraded.
        scope = self.retriever.resolve_scope(course_id, unit_name)
        try:
            return scope, self.retriever.search(query, scope), False
        except RetrievalUnavailable as e:
            if not allow_general_knowledge:
                raise
            logger.warning("Retrieval unavailable for course %s (%s); answering from general knowledge", course_id, e)
            return scope, [], True

    async def chat(
        self,
        query: str,
        course_id: str,
        unit_name: str,
        history: list[ChatTurn] | None = None,
        mode: str = "tutor",
        allow_general_knowledge: bool | None = None,
    ) -> ChatResult:
        if allow_general_knowledge is None:
            allow_general_knowledge = self.general_fallback

        scope, results, degraded = await asyncio.to_thread(
            self._retrieve, query, course_id, unit_name, allow_general_knowledge
        )

        if degraded:
            prompt = build_general_prompt(query, history)
        else:
            prompt = build_prompt(query, build_context(results), history)

        generation, text, continuations = await self.complete(prompt, system_prompt(mode))
        return ChatResult(
            text=text,
            citations=format_citations(results),
            retrieval_scope=scope,
            continuations=continuations,
            degraded=degraded,
            model=generation.model or getattr(self.llm, "model", None),
        )
