"""PostgreSQL integration test for the material and quiz repositories.

Requires a real PostgreSQL instance (JSON columns, UUID keys, cascades).

Run with: POSTGRES_TEST_URL='postgresql://...' pytest -m postgres
"""

import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from haskify.db.sql_repositories import SqlMaterialRepository, SqlQuizRepository
from haskify.models.materials import Chunk, ChunkLocator, FileType, Material, MaterialScope
from haskify.models.quiz import QuizRecord


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_material_lifecycle_on_postgres(postgres_engine: AsyncEngine) -> None:
    repo = SqlMaterialRepository(async_sessionmaker(bind=postgres_engine, expire_on_commit=False))
    now = datetime.utcnow()
    material_id = uuid.uuid4()
    material = Material(
        id=material_id,
        title="Recursion slides",
        file_type=FileType.pdf,
        scope=MaterialScope.session,
        session_id="pg-session",
        expires_at=now - timedelta(minutes=1),
        created_at=now - timedelta(hours=2),
        chunks=[
            Chunk(
                index=1,
                text="A recursive function calls itself.",
                embedding=[0.25, -0.5, 1.0],
                source_material_id=material_id,
                locator=ChunkLocator(page=3, word_start=0, word_end=5),
            )
        ],
    )

    await repo.add(material)
    stored = await repo.get(material_id)

    assert stored is not None
    assert stored.chunks[0].embedding == [0.25, -0.5, 1.0]
    assert stored.chunks[0].locator == ChunkLocator(page=3, word_start=0, word_end=5)

    assert await repo.delete_expired(now) == 1
    assert await repo.get(material_id) is None


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_quiz_record_on_postgres(postgres_engine: AsyncEngine) -> None:
    repo = SqlQuizRepository(async_sessionmaker(bind=postgres_engine, expire_on_commit=False))
    record = QuizRecord(
        id=uuid.uuid4(),
        question="What is the base case of a recursive function?",
        choices=["The first call", "The case that stops recursion", "A loop", "An exception"],
        correct_index=1,
        topic="recursion",
        session_id="pg-session",
        content_hash="f" * 64,
        created_at=datetime.utcnow(),
    )

    await repo.add_quiz(record)

    assert await repo.get_quiz(record.id, "pg-session") == record
