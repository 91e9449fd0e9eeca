"""Quiz endpoints - generate a quiz, record an answer, list recent answers."""

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from haskify.api.deps import ServicesDep, SessionDep
from haskify.db.repositories import PersistenceError
from haskify.llm.client import ChatProviderError
from haskify.models.quiz import QuizQuestion, QuizRecord, QuizResult
from haskify.models.tutor import ChatTurn, SessionTurn
from haskify.quiz.generator import HISTORY_WINDOW, QuizGenerationExhaustedError, generate_quiz
from haskify.rag.pipeline import build_session_context

router = APIRouter(prefix="/api/quiz", tags=["quiz"])
logger = logging.getLogger(__name__)

EXHAUSTED_MESSAGE = "Failed to generate quiz. Please try again later."


class QuizRequest(BaseModel):
    """Request body for POST /api/quiz."""

    chat_history: list[SessionTurn] = Field(default_factory=list, alias="chatHistory")
    material_ids: list[UUID] | None = Field(None, alias="materialIds")

    model_config = {"populate_by_name": True}


class AnswerRequest(BaseModel):
    """Request body for POST /api/quiz/{quiz_id}/answer."""

    chosen_index: int = Field(..., ge=0, le=3, alias="chosenIndex")

    model_config = {"populate_by_name": True}


class AnswerResponse(BaseModel):
    """Response for POST /api/quiz/{quiz_id}/answer."""

    correct: bool
    correct_index: int = Field(..., serialization_alias="correctIndex")


class QuizHistoryEntry(BaseModel):
    """One recorded answer."""

    quiz_id: UUID
    question: str
    chosen_index: int
    correct_index: int
    correct: bool
    answered_at: datetime


class QuizHistoryResponse(BaseModel):
    """Response for GET /api/quiz/history."""

    results: list[QuizHistoryEntry]


def history_to_turns(history: list[SessionTurn]) -> list[ChatTurn]:
    """Flatten logged question/answer pairs into chat turns."""
    turns: list[ChatTurn] = []
    for entry in history:
        turns.append(ChatTurn(role="user", content=entry.question))
        turns.append(ChatTurn(role="assistant", content=entry.response))
    return turns


def history_query(turns: list[ChatTurn]) -> str:
    """Retrieval query built from the most recent chat turns."""
    return " ".join(t.content for t in turns[-HISTORY_WINDOW:])


@router.post("", response_model=QuizQuestion, response_model_by_alias=True)
async def create_quiz(request: QuizRequest, ctx: SessionDep, services: ServicesDep) -> QuizQuestion:
    """Generate one multiple-choice quiz the session has not seen yet.

    Raises:
        HTTPException: 502 if the chat provider failed, 503 if no unique
            quiz was produced within the attempt ceiling, 500 if the quiz
            could not be stored
    """
    settings = services.settings
    turns = history_to_turns(request.chat_history)

    context_block = await build_session_context(
        services,
        ctx.session_id,
        history_query(turns),
        material_ids=request.material_ids,
    )

    try:
        result = await generate_quiz(
            session_id=ctx.session_id,
            chat_history=turns,
            context_block=context_block,
            client=services.chat,
            hash_store=services.hash_store,
            max_attempts=settings.quiz_max_attempts,
            base_temperature=settings.quiz_base_temperature,
            temperature_step=settings.quiz_temperature_step,
            max_temperature=settings.quiz_max_temperature,
            event_logger=services.event_logger,
            metrics=services.tutor_metrics,
        )
    except QuizGenerationExhaustedError as e:
        logger.warning(f"Quiz generation exhausted for session {ctx.session_id}: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=EXHAUSTED_MESSAGE) from e
    except ChatProviderError as e:
        logger.error(f"Quiz provider call failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=EXHAUSTED_MESSAGE) from e

    record = QuizRecord(
        **result.quiz.model_dump(),
        session_id=ctx.session_id,
        content_hash=result.content_hash,
        created_at=datetime.utcnow(),
    )
    try:
        await services.quizzes.add_quiz(record)
    except PersistenceError as e:
        logger.error(f"Could not store quiz {record.id}: {e}")
        services.hash_store.discard(ctx.session_id, result.content_hash)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store quiz") from e

    return result.quiz


@router.post("/{quiz_id}/answer", response_model=AnswerResponse, response_model_by_alias=True)
async def answer_quiz(
    quiz_id: UUID, request: AnswerRequest, ctx: SessionDep, services: ServicesDep
) -> AnswerResponse:
    """Record the student's answer to a quiz of this session.

    Raises:
        HTTPException: 404 if the quiz does not exist for this session
    """
    record = await services.quizzes.get_quiz(quiz_id, ctx.session_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")

    result = QuizResult(
        quiz_id=record.id,
        session_id=ctx.session_id,
        question=record.question,
        choices=record.choices,
        chosen_index=request.chosen_index,
        correct_index=record.correct_index,
        answered_at=datetime.utcnow(),
    )
    try:
        await services.quizzes.add_result(result)
    except PersistenceError as e:
        logger.error(f"Could not store answer to quiz {quiz_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store answer") from e

    return AnswerResponse(correct=result.correct, correct_index=record.correct_index)


@router.get("/history", response_model=QuizHistoryResponse)
async def quiz_history(
    ctx: SessionDep,
    services: ServicesDep,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> QuizHistoryResponse:
    """The session's most recent answers, newest first."""
    results = await services.quizzes.list_results(ctx.session_id, limit=limit)
    return QuizHistoryResponse(
        results=[
            QuizHistoryEntry(
                quiz_id=r.quiz_id,
                question=r.question,
                chosen_index=r.chosen_index,
                correct_index=r.correct_index,
                correct=r.correct,
                answered_at=r.answered_at,
            )
            for r in results
        ]
    )
