"""Service container wiring repositories, providers and shared state."""

import logging
from dataclasses import dataclass, field
from datetime import timedelta

import redis
from sqlalchemy.ext.asyncio import AsyncEngine

from haskify.config import Settings
from haskify.db.engine import create_async_engine_from_settings, create_session_factory
from haskify.db.inmemory import (
    InMemoryHistoryRepository,
    InMemoryMaterialRepository,
    InMemoryQuizRepository,
    InMemoryRateLimiter,
)
from haskify.db.repositories import HistoryRepository, MaterialRepository, QuizRepository, RateLimiter
from haskify.db.sql_repositories import SqlHistoryRepository, SqlMaterialRepository, SqlQuizRepository
from haskify.llm.client import ChatClient, get_chat_client
from haskify.quiz.dedup import QuizHashStore
from haskify.rag.embeddings import EmbeddingProvider, get_embedding_provider
from haskify.rag.scoring import Scorer, build_scorer
from haskify.ratelimit import RedisRateLimiter
from haskify.utils.logging import StructuredEventLogger
from haskify.utils.metrics import PrometheusRetrievalMetrics, PrometheusTutorMetrics

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    materials: MaterialRepository
    quizzes: QuizRepository
    history: HistoryRepository
    hash_store: QuizHashStore
    embedder: EmbeddingProvider
    scorer: Scorer
    chat: ChatClient
    run_limiter: RateLimiter
    event_logger: StructuredEventLogger = field(default_factory=StructuredEventLogger)
    retrieval_metrics: PrometheusRetrievalMetrics = field(default_factory=PrometheusRetrievalMetrics)
    tutor_metrics: PrometheusTutorMetrics = field(default_factory=PrometheusTutorMetrics)
    engine: AsyncEngine | None = None

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


def build_rate_limiter(settings: Settings) -> RateLimiter:
    """Redis-backed limiter when REDIS_URL is set, in-memory otherwise."""
    if settings.redis_url:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        return RedisRateLimiter(
            client,
            max_requests=settings.run_code_max_requests,
            window_seconds=settings.run_code_window_seconds,
        )
    return InMemoryRateLimiter(
        max_requests=settings.run_code_max_requests,
        window_seconds=settings.run_code_window_seconds,
    )


def build_services(settings: Settings) -> Services:
    """Build the service container from settings.

    SQL repositories are used when DATABASE_URL is set; otherwise all state
    lives in process memory and is lost on restart.
    """
    engine: AsyncEngine | None = None
    materials: MaterialRepository
    quizzes: QuizRepository
    history: HistoryRepository

    if settings.database_url:
        engine = create_async_engine_from_settings(settings)
        session_factory = create_session_factory(engine)
        materials = SqlMaterialRepository(session_factory)
        quizzes = SqlQuizRepository(session_factory)
        history = SqlHistoryRepository(session_factory)
        logger.info("Using SQL document store")
    else:
        materials = InMemoryMaterialRepository()
        quizzes = InMemoryQuizRepository()
        history = InMemoryHistoryRepository()
        logger.warning("DATABASE_URL not set, using in-memory document store")

    embedder = get_embedding_provider(settings)

    return Services(
        settings=settings,
        materials=materials,
        quizzes=quizzes,
        history=history,
        hash_store=QuizHashStore(
            retention=timedelta(minutes=settings.quiz_hash_retention_minutes),
            include_choices=settings.quiz_hash_includes_choices,
        ),
        embedder=embedder,
        scorer=build_scorer(settings, embedder),
        chat=get_chat_client(settings),
        run_limiter=build_rate_limiter(settings),
        engine=engine,
    )
