"""Chat-completion client with OpenAI-compatible API integration.

Security: Reads API key from settings only, never hardcoded.
Provides a deterministic stub when no key is present, for local runs and tests.
"""

import json
import logging
import re
import time
from collections.abc import AsyncIterator
from typing import Literal, Protocol

from openai import AsyncOpenAI, OpenAIError

from haskify.config import Settings
from haskify.models.tutor import ChatTurn
from haskify.utils.logging import StructuredEventLogger
from haskify.utils.metrics import PrometheusTutorMetrics

logger = logging.getLogger(__name__)

Purpose = Literal["tutor", "quiz"]

MAX_REPLY_CHARS = 10000


class ChatProviderError(Exception):
    """Chat-completion provider call failed."""

    pass


class ChatClient(Protocol):
    """Protocol for chat-completion client implementations."""

    async def complete(
        self,
        system: str,
        turns: list[ChatTurn],
        *,
        temperature: float,
        purpose: Purpose,
    ) -> str:
        """Generate one full reply.

        Args:
            system: System prompt
            turns: Conversation turns after the system prompt
            temperature: Sampling temperature
            purpose: What the reply is for (selects model, labels metrics)

        Returns:
            Generated text

        Raises:
            ChatProviderError: If the provider call fails
        """
        ...

    def stream(
        self,
        system: str,
        turns: list[ChatTurn],
        *,
        temperature: float,
        purpose: Purpose,
    ) -> AsyncIterator[str]:
        """Generate a reply as an asynchronous sequence of text fragments.

        Stopping iteration early abandons the rest of the reply.

        Raises:
            ChatProviderError: If the provider call fails (possibly mid-stream)
        """
        ...


_TOPIC_LINE_RE = re.compile(r"Choose a topic from: (.+)")


class DeterministicStubClient:
    """Deterministic stub client (no API key required)."""

    TUTOR_REPLY = (
        "The AI tutor is not configured yet. Meanwhile: read the error message line by line "
        "and check what each variable holds with print(?)."
    )

    async def complete(
        self,
        system: str,
        turns: list[ChatTurn],
        *,
        temperature: float,
        purpose: Purpose,
    ) -> str:
        """Return a canned reply; quiz prompts get a quiz about the first offered topic."""
        if purpose == "quiz":
            return self._stub_quiz(system)
        return self.TUTOR_REPLY

    async def stream(
        self,
        system: str,
        turns: list[ChatTurn],
        *,
        temperature: float,
        purpose: Purpose,
    ) -> AsyncIterator[str]:
        reply = await self.complete(system, turns, temperature=temperature, purpose=purpose)
        for i, word in enumerate(reply.split(" ")):
            yield word if i == 0 else f" {word}"

    def _stub_quiz(self, system: str) -> str:
        match = _TOPIC_LINE_RE.search(system)
        topic = match.group(1).split(",")[0].strip() if match else "variables"
        quiz = {
            "question": f"Which statement about {topic} in Python is true?",
            "choices": [
                f"{topic} is covered in this course",
                f"{topic} only exists in Python 2",
                f"{topic} requires a compiler flag",
                f"{topic} cannot be used in functions",
            ],
            "correctIndex": 0,
            "topic": topic,
        }
        return json.dumps(quiz)


class OpenAIChatClient:
    """OpenAI-compatible chat client (OpenRouter by default)."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        tutor_model: str = "google/gemma-3-27b-it:free",
        quiz_model: str = "deepseek-chat",
        event_logger: StructuredEventLogger | None = None,
        metrics: PrometheusTutorMetrics | None = None,
    ) -> None:
        """Initialize client.

        Args:
            api_key: Provider API key (read from settings)
            base_url: OpenAI-compatible endpoint
            tutor_model: Model used for tutor replies
            quiz_model: Model used for quiz generation
        """
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.models: dict[str, str] = {"tutor": tutor_model, "quiz": quiz_model}
        self.event_logger = event_logger or StructuredEventLogger()
        self.metrics = metrics or PrometheusTutorMetrics()

    def _messages(self, system: str, turns: list[ChatTurn]) -> list[dict[str, str]]:
        return [{"role": "system", "content": system}] + [
            {"role": t.role, "content": t.content} for t in turns
        ]

    def _record(self, purpose: Purpose, outcome: str, started: float, error: str | None = None) -> None:
        self.metrics.inc_llm_request(purpose, outcome)
        self.event_logger.log_llm_call(
            model=self.models[purpose],
            purpose=purpose,
            outcome=outcome,
            latency_ms=(time.perf_counter() - started) * 1000,
            error_reason=error,
        )

    async def complete(
        self,
        system: str,
        turns: list[ChatTurn],
        *,
        temperature: float,
        purpose: Purpose,
    ) -> str:
        """Generate a reply using the provider API."""
        started = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.models[purpose],
                messages=self._messages(system, turns),  # type: ignore[arg-type]
                temperature=temperature,
            )
        except OpenAIError as e:
            self._record(purpose, "error", started, str(e))
            raise ChatProviderError(str(e)) from e

        text = (response.choices[0].message.content or "") if response.choices else ""

        if len(text) > MAX_REPLY_CHARS:
            logger.warning(f"Reply unexpectedly large ({len(text)} chars), truncating")
            text = text[:MAX_REPLY_CHARS]

        self._record(purpose, "success", started)
        return text

    async def stream(
        self,
        system: str,
        turns: list[ChatTurn],
        *,
        temperature: float,
        purpose: Purpose,
    ) -> AsyncIterator[str]:
        """Stream reply fragments from the provider API."""
        started = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.models[purpose],
                messages=self._messages(system, turns),  # type: ignore[arg-type]
                temperature=temperature,
                stream=True,
            )
            async for chunk in response:
                if not chunk.choices:
                    continue
                fragment = chunk.choices[0].delta.content
                if fragment:
                    yield fragment
        except OpenAIError as e:
            self._record(purpose, "error", started, str(e))
            raise ChatProviderError(str(e)) from e

        self._record(purpose, "success", started)


def get_chat_client(settings: Settings) -> ChatClient:
    """Factory function to get appropriate chat client based on config.

    Returns:
        OpenAIChatClient if API key is configured, DeterministicStubClient otherwise
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI-compatible chat client")
        return OpenAIChatClient(
            api_key=api_key.get_secret_value(),
            base_url=settings.openai_base_url,
            tutor_model=settings.chat_model,
            quiz_model=settings.quiz_model,
        )
    logger.warning("No API key configured, using deterministic stub client")
    return DeterministicStubClient()


async def collect_stream(fragments: AsyncIterator[str]) -> str:
    """Concatenate a fragment stream into the full reply."""
    parts: list[str] = []
    async for fragment in fragments:
        parts.append(fragment)
    return "".join(parts)
