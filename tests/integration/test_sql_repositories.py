"""Integration tests for the SQL repositories (SQLite via aiosqlite)."""

import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from haskify.db.repositories import PersistenceError
from haskify.db.sql_repositories import (
    SqlHistoryRepository,
    SqlMaterialRepository,
    SqlQuizRepository,
)
from haskify.models.materials import Chunk, ChunkLocator, FileType, Material, MaterialScope
from haskify.models.quiz import QuizRecord, QuizResult
from haskify.models.tutor import SessionTurn

NOW = datetime(2026, 6, 1, 12, 0)

SessionFactory = async_sessionmaker[AsyncSession]


def _material(
    *,
    scope: MaterialScope = MaterialScope.session,
    session_id: str | None = "s1",
    expires_at: datetime | None = None,
    created_at: datetime = NOW,
    title: str = "Loops",
) -> Material:
    material_id = uuid.uuid4()
    return Material(
        id=material_id,
        title=title,
        file_type=FileType.pdf,
        scope=scope,
        session_id=session_id if scope == MaterialScope.session else None,
        expires_at=expires_at,
        created_at=created_at,
        chunks=[
            Chunk(
                index=1,
                text="for loops iterate over sequences",
                embedding=[0.1, 0.2],
                source_material_id=material_id,
                locator=ChunkLocator(page=1, word_start=0, word_end=5),
            ),
            Chunk(index=2, text="while loops repeat until false", source_material_id=material_id),
        ],
    )


@pytest.mark.asyncio
async def test_material_round_trip_keeps_chunks(session_factory: SessionFactory) -> None:
    repo = SqlMaterialRepository(session_factory)
    material = _material(expires_at=NOW + timedelta(hours=2))

    await repo.add(material)
    stored = await repo.get(material.id)

    assert stored is not None
    assert stored.title == "Loops"
    assert stored.file_type == FileType.pdf
    assert [c.index for c in stored.chunks] == [1, 2]
    assert stored.chunks[0].embedding == [0.1, 0.2]
    assert stored.chunks[0].locator == ChunkLocator(page=1, word_start=0, word_end=5)
    assert stored.chunks[1].locator is None
    assert all(c.source_material_id == material.id for c in stored.chunks)


@pytest.mark.asyncio
async def test_get_unknown_material_returns_none(session_factory: SessionFactory) -> None:
    assert await SqlMaterialRepository(session_factory).get(uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_list_for_session_filters_owner_and_expiry(session_factory: SessionFactory) -> None:
    repo = SqlMaterialRepository(session_factory)
    mine = _material(expires_at=NOW + timedelta(minutes=30))
    expired = _material(expires_at=NOW - timedelta(minutes=1))
    other = _material(session_id="s2", expires_at=NOW + timedelta(minutes=30))
    system = _material(scope=MaterialScope.system)
    for m in (mine, expired, other, system):
        await repo.add(m)

    listed = await repo.list_for_session("s1", NOW)

    assert [m.id for m in listed] == [mine.id]


@pytest.mark.asyncio
async def test_system_materials_can_be_deactivated(session_factory: SessionFactory) -> None:
    repo = SqlMaterialRepository(session_factory)
    first = _material(scope=MaterialScope.system, title="Syllabus", created_at=NOW - timedelta(days=1))
    second = _material(scope=MaterialScope.system, title="Style guide")
    session_owned = _material()
    for m in (first, second, session_owned):
        await repo.add(m)

    assert [m.title for m in await repo.list_system()] == ["Syllabus", "Style guide"]

    assert await repo.deactivate(first.id)
    assert not await repo.deactivate(session_owned.id)
    assert not await repo.deactivate(uuid.uuid4())
    assert [m.title for m in await repo.list_system()] == ["Style guide"]


@pytest.mark.asyncio
async def test_delete_for_session_removes_materials_and_chunks(session_factory: SessionFactory) -> None:
    repo = SqlMaterialRepository(session_factory)
    a = _material()
    b = _material()
    keep = _material(session_id="s2")
    for m in (a, b, keep):
        await repo.add(m)

    assert await repo.delete_for_session("s1") == 2
    assert await repo.get(a.id) is None
    assert await repo.get(keep.id) is not None
    assert await repo.delete_for_session("s1") == 0


@pytest.mark.asyncio
async def test_delete_expired_spares_system_and_live_materials(session_factory: SessionFactory) -> None:
    repo = SqlMaterialRepository(session_factory)
    expired = _material(expires_at=NOW - timedelta(seconds=1))
    live = _material(expires_at=NOW + timedelta(minutes=5))
    system = _material(scope=MaterialScope.system)
    for m in (expired, live, system):
        await repo.add(m)

    assert await repo.delete_expired(NOW) == 1
    assert await repo.get(expired.id) is None
    assert await repo.get(live.id) is not None
    assert await repo.get(system.id) is not None


@pytest.mark.asyncio
async def test_duplicate_material_id_raises_persistence_error(session_factory: SessionFactory) -> None:
    repo = SqlMaterialRepository(session_factory)
    material = _material()
    await repo.add(material)

    with pytest.raises(PersistenceError):
        await repo.add(material)


def _record(session_id: str = "s1") -> QuizRecord:
    return QuizRecord(
        id=uuid.uuid4(),
        question="What does range(3) yield?",
        choices=["0, 1, 2", "1, 2, 3", "0, 1, 2, 3", "3"],
        correct_index=0,
        topic="for loops",
        session_id=session_id,
        content_hash="abc123",
        created_at=NOW,
    )


@pytest.mark.asyncio
async def test_quiz_is_scoped_to_its_session(session_factory: SessionFactory) -> None:
    repo = SqlQuizRepository(session_factory)
    record = _record()
    await repo.add_quiz(record)

    stored = await repo.get_quiz(record.id, "s1")

    assert stored == record
    assert await repo.get_quiz(record.id, "s2") is None


@pytest.mark.asyncio
async def test_quiz_results_newest_first_with_limit(session_factory: SessionFactory) -> None:
    repo = SqlQuizRepository(session_factory)
    record = _record()
    await repo.add_quiz(record)

    for minutes, chosen in [(1, 2), (3, 0), (2, 1)]:
        await repo.add_result(
            QuizResult(
                quiz_id=record.id,
                session_id="s1",
                question=record.question,
                choices=record.choices,
                chosen_index=chosen,
                correct_index=record.correct_index,
                answered_at=NOW + timedelta(minutes=minutes),
            )
        )

    results = await repo.list_results("s1", limit=2)

    assert [r.chosen_index for r in results] == [0, 1]
    assert results[0].correct
    assert await repo.list_results("s2") == []


@pytest.mark.asyncio
async def test_history_create_and_replace(session_factory: SessionFactory) -> None:
    repo = SqlHistoryRepository(session_factory)
    log = await repo.create([SessionTurn(question="what is a list?", response="A sequence...")])

    updated = await repo.replace_turns(
        log.id,
        [
            SessionTurn(question="what is a list?", response="A sequence..."),
            SessionTurn(question="and a tuple?", response="An immutable sequence..."),
        ],
    )

    assert updated is not None
    stored = await repo.get(log.id)
    assert stored is not None
    assert [t.question for t in stored.turns] == ["what is a list?", "and a tuple?"]
    assert await repo.replace_turns(uuid.uuid4(), []) is None


@pytest.mark.asyncio
async def test_history_append_reuses_session_log(session_factory: SessionFactory) -> None:
    repo = SqlHistoryRepository(session_factory)

    first = await repo.append_turn("s1", SessionTurn(question="q1", response="r1"))
    second = await repo.append_turn("s1", SessionTurn(question="q2", response="r2"))
    other = await repo.append_turn("s2", SessionTurn(question="q3", response="r3"))

    assert first.id == second.id
    assert other.id != first.id
    stored = await repo.get(first.id)
    assert stored is not None
    assert [t.question for t in stored.turns] == ["q1", "q2"]
    assert stored.session_key == "s1"
