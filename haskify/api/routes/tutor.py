"""Tutor endpoint - POST /ai/ask."""

import logging
from uuid import UUID

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from haskify.api.deps import ServicesDep, SessionDep
from haskify.db.repositories import PersistenceError
from haskify.llm.client import ChatProviderError, collect_stream
from haskify.models.tutor import SessionTurn
from haskify.rag.pipeline import build_session_context
from haskify.services import Services
from haskify.tutor.gating import canned_reply
from haskify.tutor.prompts import build_tutor_prompt, build_tutor_turns

router = APIRouter(tags=["tutor"])
logger = logging.getLogger(__name__)

PROVIDER_ERROR_REPLY = "⚠️ AI couldn't respond"


class AskRequest(BaseModel):
    """Request body for POST /ai/ask."""

    query: str = Field(..., min_length=1, max_length=4000)
    code: str = Field("", max_length=10000)
    output: str = Field("", max_length=10000)
    material_ids: list[UUID] | None = Field(None, alias="materialIds")

    model_config = {"populate_by_name": True}


class AskResponse(BaseModel):
    """Response for POST /ai/ask."""

    response: str


async def _log_turn(services: Services, session_id: str, turn: SessionTurn) -> None:
    # Chat history is best-effort; the reply is returned regardless
    try:
        await services.history.append_turn(session_id, turn)
    except PersistenceError:
        logger.warning(f"Could not log chat turn for session {session_id}", exc_info=True)


@router.post("/ai/ask", response_model=AskResponse)
async def ask(request: AskRequest, ctx: SessionDep, services: ServicesDep) -> AskResponse | JSONResponse:
    """Answer a student's question with a hint.

    Greetings and off-topic questions get a canned reply without calling
    the model. Everything else is grounded on retrieved material context.

    Returns:
        The tutor reply, or 500 with ``"AI couldn't respond"`` if the
        provider failed
    """
    canned = canned_reply(request.query)
    if canned is not None:
        return AskResponse(response=canned)

    context_block = await build_session_context(
        services,
        ctx.session_id,
        request.query,
        material_ids=request.material_ids,
    )
    system = build_tutor_prompt(code=request.code, output=request.output, context_block=context_block)

    try:
        reply = await collect_stream(
            services.chat.stream(
                system,
                build_tutor_turns(request.query),
                temperature=services.settings.tutor_temperature,
                purpose="tutor",
            )
        )
    except ChatProviderError:
        logger.exception("Tutor reply failed")
        return JSONResponse(status_code=500, content={"response": PROVIDER_ERROR_REPLY})

    await _log_turn(services, ctx.session_id, SessionTurn(question=request.query, response=reply))
    return AskResponse(response=reply)
