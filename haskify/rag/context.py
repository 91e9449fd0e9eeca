"""Context assembly - retrieved chunks and quiz history to one prompt block."""

from haskify.models.materials import RetrievalResult
from haskify.models.quiz import CHOICE_LETTERS, QuizResult

CONTEXT_HEADER = "CONTEXT (from course materials):"
QUIZ_HISTORY_HEADER = "RECENT QUIZ RESULTS:"
CHUNK_SEPARATOR = "\n---\n"
SECTION_SEPARATOR = "\n\n"


def _truncate(text: str, cap: int) -> str:
    return text if len(text) <= cap else text[:cap]


def format_chunk(result: RetrievalResult, *, chunk_char_cap: int = 1000, title_cap: int = 40) -> str:
    """Render one retrieved chunk with its provenance.

    Example: ``[Lecture 3 #2 · session p. 4] For loops repeat ...``
    """
    title = _truncate(result.source_title or str(result.material_id), title_cap)
    tag = result.origin.value
    if result.locator is not None and result.locator.describe():
        tag = f"{tag} {result.locator.describe()}"
    return f"[{title} #{result.chunk_index} · {tag}] {_truncate(result.text, chunk_char_cap)}"


def summarize_quiz_history(
    results: list[QuizResult],
    *,
    limit: int = 2,
    question_cap: int = 80,
) -> list[str]:
    """One line per recent quiz answer, newest first.

    The correct choice letter is only shown for wrong answers.
    """
    if limit <= 0:
        return []

    recent = sorted(results, key=lambda r: r.answered_at, reverse=True)[:limit]

    lines: list[str] = []
    for result in recent:
        question = result.question.strip()
        if len(question) > question_cap:
            question = question[: question_cap - 3] + "..."
        chosen = CHOICE_LETTERS[result.chosen_index]
        date = result.answered_at.strftime("%Y-%m-%d")
        if result.correct:
            lines.append(f'{date} correct: "{question}" (answered {chosen})')
        else:
            expected = CHOICE_LETTERS[result.correct_index]
            lines.append(f'{date} incorrect: "{question}" (answered {chosen}, correct {expected})')
    return lines


def assemble_context(
    results: list[RetrievalResult],
    history: list[str] | None = None,
    *,
    chunk_char_cap: int = 1000,
    title_cap: int = 40,
) -> str:
    """Build the bounded context block handed to the language model.

    Args:
        results: Ranked retrieval results
        history: Optional pre-formatted history lines (see summarize_quiz_history)
        chunk_char_cap: Characters kept from each chunk
        title_cap: Characters kept from each source title

    Returns:
        Sections joined by a blank line; ``""`` when there is nothing to say
    """
    sections: list[str] = []

    if results:
        body = CHUNK_SEPARATOR.join(
            format_chunk(r, chunk_char_cap=chunk_char_cap, title_cap=title_cap) for r in results
        )
        sections.append(f"{CONTEXT_HEADER}\n{body}")

    if history:
        lines = "\n".join(f"- {line}" for line in history)
        sections.append(f"{QUIZ_HISTORY_HEADER}\n{lines}")

    return SECTION_SEPARATOR.join(sections)
