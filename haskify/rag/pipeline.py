"""Retrieval-augmented context for a session: candidates, ranking and assembly."""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from haskify.rag.context import assemble_context, summarize_quiz_history
from haskify.rag.retriever import collect_candidates, retrieve
from haskify.services import Services


async def build_session_context(
    services: Services,
    session_id: str,
    query: str,
    *,
    material_ids: Iterable[UUID] | None = None,
    include_quiz_history: bool = True,
    now: datetime | None = None,
) -> str:
    """Context block for ``query`` over the session's and system materials.

    Args:
        services: Service container
        session_id: Current session
        query: Retrieval query (the question, or recent chat turns)
        material_ids: Restrict session materials to these ids
        include_quiz_history: Add the session's recent quiz results

    Returns:
        Assembled context, ``""`` when nothing relevant was found
    """
    settings = services.settings
    now = now or datetime.utcnow()

    session_materials = await services.materials.list_for_session(session_id, now)
    system_materials = await services.materials.list_system()
    candidates = collect_candidates(session_materials, system_materials, material_ids)

    results = await retrieve(
        query,
        candidates,
        services.scorer,
        k=settings.retrieval_top_k,
        event_logger=services.event_logger,
        metrics=services.retrieval_metrics,
    )

    history: list[str] = []
    if include_quiz_history and settings.quiz_history_limit > 0:
        recent = await services.quizzes.list_results(session_id, limit=settings.quiz_history_limit)
        history = summarize_quiz_history(recent, limit=settings.quiz_history_limit)

    return assemble_context(
        results,
        history,
        chunk_char_cap=settings.context_chunk_char_cap,
        title_cap=settings.context_title_cap,
    )
