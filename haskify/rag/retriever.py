"""Material retriever - rank candidate chunks for a query."""

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from haskify.models.materials import Chunk, Material, MaterialScope, RetrievalResult
from haskify.rag.embeddings import EmbeddingError
from haskify.rag.scoring import Scorer
from haskify.utils.logging import StructuredEventLogger
from haskify.utils.metrics import PrometheusRetrievalMetrics

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 6


@dataclass(frozen=True)
class Candidate:
    """A chunk eligible for retrieval, with the provenance of its material."""

    material_id: UUID
    title: str
    origin: MaterialScope
    chunk: Chunk


def collect_candidates(
    session_materials: Iterable[Material],
    system_materials: Iterable[Material],
    material_ids: Iterable[UUID] | None = None,
) -> list[Candidate]:
    """Flatten materials into candidates: session chunks first, then system chunks.

    Args:
        session_materials: Materials owned by the current session
        system_materials: Active system-global materials
        material_ids: If given, restrict session materials to these ids

    Returns:
        Candidates in material order, chunk-index order within a material
    """
    wanted = set(material_ids) if material_ids is not None else None

    candidates: list[Candidate] = []
    for material in session_materials:
        if wanted is not None and material.id not in wanted:
            continue
        candidates.extend(_material_candidates(material))
    for material in system_materials:
        if not material.active:
            continue
        candidates.extend(_material_candidates(material))
    return candidates


def _material_candidates(material: Material) -> list[Candidate]:
    return [
        Candidate(
            material_id=material.id,
            title=material.title,
            origin=material.scope,
            chunk=chunk,
        )
        for chunk in sorted(material.chunks, key=lambda c: c.index)
    ]


def rank(
    scored: list[tuple[Candidate, float]],
    *,
    k: int = DEFAULT_TOP_K,
    floor: float = 0.0,
) -> list[RetrievalResult]:
    """Order scored candidates and keep the best ``k`` above the floor.

    Sort is stable (ties keep candidate order). Truncation to ``k`` happens
    BEFORE the floor filter, so fewer than ``k`` results may come back even
    when more than ``k`` candidates clear the floor.
    """
    if k <= 0:
        return []

    ordered = sorted(scored, key=lambda item: -item[1])
    top = ordered[:k]

    return [
        RetrievalResult(
            material_id=candidate.material_id,
            chunk_index=candidate.chunk.index,
            text=candidate.chunk.text,
            score=score,
            source_title=candidate.title,
            origin=candidate.origin,
            locator=candidate.chunk.locator,
        )
        for candidate, score in top
        if score > floor
    ]


async def retrieve(
    query: str,
    candidates: list[Candidate],
    scorer: Scorer,
    *,
    k: int = DEFAULT_TOP_K,
    event_logger: StructuredEventLogger | None = None,
    metrics: PrometheusRetrievalMetrics | None = None,
) -> list[RetrievalResult]:
    """Score every candidate for ``query`` and return at most ``k`` results.

    Embedding provider failures fail closed: the error is logged and an
    empty result list is returned (no lexical fallback).

    Args:
        query: Free-text query
        candidates: Chunks to consider (see :func:`collect_candidates`)
        scorer: Lexical or vector scorer; supplies the relevance floor
        k: Maximum number of results

    Returns:
        Results sorted by descending score, all strictly above the floor
    """
    event_logger = event_logger or StructuredEventLogger()
    metrics = metrics or PrometheusRetrievalMetrics()

    if not candidates:
        return []

    started = time.perf_counter()
    texts = [c.chunk.text for c in candidates]
    embeddings = [c.chunk.embedding for c in candidates]

    try:
        scores = await scorer.score(query, texts, embeddings)
    except EmbeddingError as e:
        latency_ms = (time.perf_counter() - started) * 1000
        metrics.inc_failure(scorer.mode)
        event_logger.log_retrieval(
            mode=scorer.mode,
            candidates=len(candidates),
            returned=0,
            latency_ms=latency_ms,
            error_reason=str(e),
        )
        return []

    results = rank(list(zip(candidates, scores)), k=k, floor=scorer.floor)

    latency_ms = (time.perf_counter() - started) * 1000
    metrics.record_latency(scorer.mode, latency_ms)
    event_logger.log_retrieval(
        mode=scorer.mode,
        candidates=len(candidates),
        returned=len(results),
        latency_ms=latency_ms,
    )
    return results
