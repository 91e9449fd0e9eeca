"""Quiz generation with a bounded retry-on-duplicate loop.

Every attempt receives an explicit :class:`QuizAttemptContext` describing the
sampling temperature and what to steer away from. Retries never mutate a
shared prompt; the next context is derived from the previous one.
"""

import json
import logging
from dataclasses import dataclass, replace

from pydantic import ValidationError

from haskify.llm.client import ChatClient
from haskify.models.quiz import QuizQuestion
from haskify.models.tutor import ChatTurn
from haskify.quiz.dedup import QuizHashStore
from haskify.utils.logging import StructuredEventLogger
from haskify.utils.metrics import PrometheusTutorMetrics

logger = logging.getLogger(__name__)

COURSE_TOPICS: tuple[str, ...] = (
    "variables",
    "data types",
    "strings",
    "lists",
    "tuples",
    "dictionaries",
    "sets",
    "conditionals",
    "for loops",
    "while loops",
    "functions",
    "recursion",
    "list comprehensions",
    "exceptions",
    "file handling",
    "classes",
    "modules",
)

# Chat turns forwarded to the model as quiz material
HISTORY_WINDOW = 8


class QuizGenerationExhaustedError(Exception):
    """No valid, non-duplicate quiz was produced within the attempt ceiling."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"No valid, unique quiz after {attempts} attempts")
        self.attempts = attempts


class InvalidQuizError(ValueError):
    """Model output is not a well-formed quiz."""

    pass


@dataclass(frozen=True)
class QuizAttemptContext:
    """Parameters for one generation attempt."""

    attempt: int
    temperature: float
    rejected_questions: tuple[str, ...] = ()
    unused_topics: tuple[str, ...] = ()

    def retry(
        self,
        *,
        rejected_question: str | None,
        unused_topics: tuple[str, ...],
        temperature_step: float,
        max_temperature: float,
    ) -> "QuizAttemptContext":
        """Context for the following attempt: hotter, with more to avoid."""
        rejected = self.rejected_questions
        if rejected_question and rejected_question not in rejected:
            rejected = (*rejected, rejected_question)
        return replace(
            self,
            attempt=self.attempt + 1,
            temperature=min(self.temperature + temperature_step, max_temperature),
            rejected_questions=rejected,
            unused_topics=unused_topics,
        )


@dataclass(frozen=True)
class QuizGenerationResult:
    """An accepted quiz and how many attempts it took."""

    quiz: QuizQuestion
    attempts: int
    content_hash: str


def build_quiz_prompt(context_block: str, attempt: QuizAttemptContext) -> str:
    """System prompt for one quiz-generation attempt."""
    lines = [
        "You are a Python instructor for an intro programming course.",
        "Generate exactly one multiple-choice quiz question about Python.",
        "Prefer facts from CONTEXT if provided; do not fabricate.",
    ]

    if context_block:
        lines.append("")
        lines.append(context_block)

    if attempt.rejected_questions:
        lines.append("")
        lines.append("Do NOT repeat or rephrase any of these questions:")
        lines.extend(f"- {q}" for q in attempt.rejected_questions)

    if attempt.unused_topics:
        lines.append("")
        lines.append(f"Choose a topic from: {', '.join(attempt.unused_topics)}")

    lines.append("")
    lines.append(
        "Respond WITH NO EXPLANATION, only JSON with keys: "
        "question (string), choices (array of 4 strings), "
        "correctIndex (0-3), topic (short string)."
    )
    return "\n".join(lines)


def parse_quiz(text: str) -> QuizQuestion:
    """Parse model output into a quiz, tolerating a Markdown code fence.

    Raises:
        InvalidQuizError: If the output is not valid quiz JSON
    """
    body = text.strip()
    if body.startswith("```"):
        body = body[3:]
        if body.startswith("json"):
            body = body[4:]
        if body.endswith("```"):
            body = body[:-3]
        body = body.strip()

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise InvalidQuizError(f"Quiz is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise InvalidQuizError("Quiz JSON must be an object")

    payload.pop("id", None)
    try:
        return QuizQuestion.model_validate(payload)
    except ValidationError as e:
        raise InvalidQuizError(f"Quiz failed validation: {e.error_count()} error(s)") from e


def unused_topics(hash_store: QuizHashStore, session_id: str) -> tuple[str, ...]:
    covered = {t.lower() for t in hash_store.covered_topics(session_id)}
    return tuple(t for t in COURSE_TOPICS if t not in covered)


async def generate_quiz(
    *,
    session_id: str,
    chat_history: list[ChatTurn],
    context_block: str,
    client: ChatClient,
    hash_store: QuizHashStore,
    max_attempts: int = 5,
    base_temperature: float = 0.7,
    temperature_step: float = 0.1,
    max_temperature: float = 1.2,
    event_logger: StructuredEventLogger | None = None,
    metrics: PrometheusTutorMetrics | None = None,
) -> QuizGenerationResult:
    """Generate one quiz the session has not seen yet.

    Malformed output and duplicates each consume an attempt. Provider
    errors are not retried and propagate as ``ChatProviderError``.

    Raises:
        QuizGenerationExhaustedError: If ``max_attempts`` attempts all fail
        ChatProviderError: If the chat provider call fails
    """
    event_logger = event_logger or StructuredEventLogger()
    metrics = metrics or PrometheusTutorMetrics()

    history_json = json.dumps([t.model_dump() for t in chat_history[-HISTORY_WINDOW:]])
    turns = [ChatTurn(role="user", content=history_json)]

    attempt = QuizAttemptContext(attempt=1, temperature=base_temperature)

    while attempt.attempt <= max_attempts:
        system = build_quiz_prompt(context_block, attempt)
        text = await client.complete(
            system, turns, temperature=attempt.temperature, purpose="quiz"
        )

        rejected: str | None = None
        try:
            quiz = parse_quiz(text)
        except InvalidQuizError as e:
            outcome = "invalid"
            logger.info(f"Discarding malformed quiz output: {e}")
        else:
            if hash_store.check_and_record(session_id, quiz):
                metrics.inc_quiz_attempt("accepted")
                event_logger.log_quiz_attempt(
                    session_id=session_id,
                    attempt=attempt.attempt,
                    outcome="accepted",
                    temperature=attempt.temperature,
                )
                return QuizGenerationResult(
                    quiz=quiz,
                    attempts=attempt.attempt,
                    content_hash=hash_store.hash_quiz(quiz),
                )
            outcome = "duplicate"
            rejected = quiz.question

        metrics.inc_quiz_attempt(outcome)
        event_logger.log_quiz_attempt(
            session_id=session_id,
            attempt=attempt.attempt,
            outcome=outcome,
            temperature=attempt.temperature,
        )
        attempt = attempt.retry(
            rejected_question=rejected,
            unused_topics=unused_topics(hash_store, session_id),
            temperature_step=temperature_step,
            max_temperature=max_temperature,
        )

    raise QuizGenerationExhaustedError(max_attempts)
