"""Tests for context assembly and quiz-history summaries."""

import uuid
from datetime import datetime

from haskify.models.materials import ChunkLocator, MaterialScope, RetrievalResult
from haskify.models.quiz import QuizResult
from haskify.rag.context import (
    CONTEXT_HEADER,
    QUIZ_HISTORY_HEADER,
    assemble_context,
    format_chunk,
    summarize_quiz_history,
)


def _result(
    text: str,
    *,
    title: str = "Lecture 3",
    index: int = 2,
    origin: MaterialScope = MaterialScope.session,
    locator: ChunkLocator | None = None,
) -> RetrievalResult:
    return RetrievalResult(
        material_id=uuid.uuid4(),
        chunk_index=index,
        text=text,
        score=1.0,
        source_title=title,
        origin=origin,
        locator=locator,
    )


def _answer(question: str, chosen: int, correct: int, day: int) -> QuizResult:
    return QuizResult(
        quiz_id=uuid.uuid4(),
        session_id="s1",
        question=question,
        choices=["a", "b", "c", "d"],
        chosen_index=chosen,
        correct_index=correct,
        answered_at=datetime(2026, 3, day, 12, 0),
    )


def test_assemble_context_empty_is_empty_string() -> None:
    assert assemble_context([]) == ""
    assert assemble_context([], []) == ""


def test_format_chunk_includes_title_index_and_origin() -> None:
    line = format_chunk(_result("For loops repeat a block."))

    assert line == "[Lecture 3 #2 · session] For loops repeat a block."


def test_format_chunk_includes_locator() -> None:
    line = format_chunk(_result("text", origin=MaterialScope.system, locator=ChunkLocator(page=4)))

    assert line.startswith("[Lecture 3 #2 · system p. 4] ")


def test_format_chunk_truncates_title_and_text() -> None:
    line = format_chunk(_result("x" * 1500, title="T" * 60))

    assert line == f"[{'T' * 40} #2 · session] {'x' * 1000}"


def test_assemble_context_joins_chunks_under_header() -> None:
    block = assemble_context([_result("first", index=1), _result("second", index=2)])

    assert block == (
        f"{CONTEXT_HEADER}\n"
        "[Lecture 3 #1 · session] first\n---\n"
        "[Lecture 3 #2 · session] second"
    )


def test_assemble_context_adds_history_section() -> None:
    block = assemble_context([_result("body", index=1)], ['2026-03-02 correct: "Q" (answered B)'])

    context, history = block.split("\n\n")
    assert context.startswith(CONTEXT_HEADER)
    assert history == f'{QUIZ_HISTORY_HEADER}\n- 2026-03-02 correct: "Q" (answered B)'


def test_assemble_context_history_only() -> None:
    block = assemble_context([], ["line"])

    assert block == f"{QUIZ_HISTORY_HEADER}\n- line"


def test_summarize_quiz_history_newest_first_with_limit() -> None:
    answers = [
        _answer("What does len() return?", chosen=1, correct=1, day=1),
        _answer("Which keyword defines a function?", chosen=0, correct=2, day=3),
        _answer("What is a tuple?", chosen=1, correct=1, day=2),
    ]

    lines = summarize_quiz_history(answers, limit=2)

    assert lines == [
        '2026-03-03 incorrect: "Which keyword defines a function?" (answered A, correct C)',
        '2026-03-02 correct: "What is a tuple?" (answered B)',
    ]


def test_summarize_quiz_history_truncates_long_questions() -> None:
    (line,) = summarize_quiz_history([_answer("q" * 200, chosen=0, correct=0, day=5)], question_cap=20)

    assert f'"{"q" * 17}..."' in line


def test_summarize_quiz_history_zero_limit() -> None:
    assert summarize_quiz_history([_answer("q", 0, 0, 1)], limit=0) == []
