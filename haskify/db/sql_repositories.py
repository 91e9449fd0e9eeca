"""SQL implementations of repository interfaces (async SQLAlchemy)."""

import uuid
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from haskify.db.models import (
    MaterialChunkRow,
    MaterialRow,
    QuizRecordRow,
    QuizResultRow,
    TutorSessionRow,
)
from haskify.db.repositories import PersistenceError
from haskify.models.materials import Chunk, ChunkLocator, FileType, Material, MaterialScope
from haskify.models.quiz import QuizRecord, QuizResult
from haskify.models.tutor import SessionTurn, TutorSession


def _material_from_row(row: MaterialRow) -> Material:
    return Material(
        id=row.material_id,
        title=row.title,
        file_type=FileType(row.file_type),
        scope=MaterialScope(row.scope),
        session_id=row.session_id,
        expires_at=row.expires_at,
        active=row.active,
        created_at=row.created_at,
        chunks=[
            Chunk(
                index=c.chunk_index,
                text=c.text,
                embedding=c.embedding,
                source_material_id=row.material_id,
                locator=ChunkLocator.model_validate(c.locator) if c.locator else None,
            )
            for c in row.chunks
        ],
    )


class SqlMaterialRepository:
    """SQL implementation of MaterialRepository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, material: Material) -> None:
        """Persist a material and its chunks in one transaction."""
        row = MaterialRow(
            material_id=material.id,
            title=material.title,
            file_type=material.file_type.value,
            scope=material.scope.value,
            session_id=material.session_id,
            expires_at=material.expires_at,
            active=material.active,
            created_at=material.created_at,
        )
        row.chunks = [
            MaterialChunkRow(
                chunk_id=uuid.uuid4(),
                chunk_index=chunk.index,
                text=chunk.text,
                embedding=chunk.embedding,
                locator=chunk.locator.model_dump(exclude_none=True) if chunk.locator else None,
            )
            for chunk in material.chunks
        ]

        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store material {material.id}: {e}") from e

    async def get(self, material_id: uuid.UUID) -> Material | None:
        """Get material by ID."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(MaterialRow)
                .options(selectinload(MaterialRow.chunks))
                .where(MaterialRow.material_id == material_id)
            )
            row = result.scalar_one_or_none()

        return _material_from_row(row) if row else None

    async def list_for_session(self, session_id: str, now: datetime) -> list[Material]:
        """List a session's unexpired materials."""
        stmt = (
            select(MaterialRow)
            .options(selectinload(MaterialRow.chunks))
            .where(
                MaterialRow.scope == MaterialScope.session.value,
                MaterialRow.session_id == session_id,
                (MaterialRow.expires_at.is_(None)) | (MaterialRow.expires_at > now),
            )
            .order_by(MaterialRow.created_at)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = list(result.scalars().all())

        return [_material_from_row(row) for row in rows]

    async def list_system(self) -> list[Material]:
        """List active system materials."""
        stmt = (
            select(MaterialRow)
            .options(selectinload(MaterialRow.chunks))
            .where(
                MaterialRow.scope == MaterialScope.system.value,
                MaterialRow.active.is_(True),
            )
            .order_by(MaterialRow.created_at)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = list(result.scalars().all())

        return [_material_from_row(row) for row in rows]

    async def _delete_where(self, *criteria: object) -> int:
        async with self._session_factory() as session:
            ids = list(
                (await session.execute(select(MaterialRow.material_id).where(*criteria)))  # type: ignore[arg-type]
                .scalars()
                .all()
            )
            if not ids:
                return 0

            # Chunks first: bulk deletes bypass ORM cascades
            await session.execute(
                delete(MaterialChunkRow).where(MaterialChunkRow.material_id.in_(ids))
            )
            await session.execute(delete(MaterialRow).where(MaterialRow.material_id.in_(ids)))
            await session.commit()

        return len(ids)

    async def delete_for_session(self, session_id: str) -> int:
        """Delete a session's materials."""
        return await self._delete_where(
            MaterialRow.scope == MaterialScope.session.value,
            MaterialRow.session_id == session_id,
        )

    async def deactivate(self, material_id: uuid.UUID) -> bool:
        """Deactivate a system material."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(MaterialRow)
                .where(
                    MaterialRow.material_id == material_id,
                    MaterialRow.scope == MaterialScope.system.value,
                )
                .values(active=False)
            )
            await session.commit()

        return bool(result.rowcount)

    async def delete_expired(self, now: datetime) -> int:
        """Delete expired session materials."""
        return await self._delete_where(
            MaterialRow.expires_at.is_not(None),
            MaterialRow.expires_at <= now,
        )


class SqlQuizRepository:
    """SQL implementation of QuizRepository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_quiz(self, record: QuizRecord) -> None:
        """Persist an accepted quiz."""
        row = QuizRecordRow(
            quiz_id=record.id,
            session_id=record.session_id,
            question=record.question,
            choices=record.choices,
            correct_index=record.correct_index,
            topic=record.topic,
            content_hash=record.content_hash,
            created_at=record.created_at,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store quiz {record.id}: {e}") from e

    async def get_quiz(self, quiz_id: uuid.UUID, session_id: str) -> QuizRecord | None:
        """Get quiz by ID, scoped to its session."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(QuizRecordRow).where(
                    QuizRecordRow.quiz_id == quiz_id,
                    QuizRecordRow.session_id == session_id,
                )
            )
            row = result.scalar_one_or_none()

        if row is None:
            return None

        return QuizRecord(
            id=row.quiz_id,
            question=row.question,
            choices=row.choices,
            correct_index=row.correct_index,
            topic=row.topic,
            session_id=row.session_id,
            content_hash=row.content_hash,
            created_at=row.created_at,
        )

    async def add_result(self, result: QuizResult) -> None:
        """Persist a student's answer."""
        row = QuizResultRow(
            result_id=uuid.uuid4(),
            quiz_id=result.quiz_id,
            session_id=result.session_id,
            question=result.question,
            choices=result.choices,
            chosen_index=result.chosen_index,
            correct_index=result.correct_index,
            answered_at=result.answered_at,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store quiz result for {result.quiz_id}: {e}") from e

    async def list_results(self, session_id: str, limit: int = 10) -> list[QuizResult]:
        """List a session's answers, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(QuizResultRow)
                .where(QuizResultRow.session_id == session_id)
                .order_by(QuizResultRow.answered_at.desc())
                .limit(limit)
            )
            rows = list(result.scalars().all())

        return [
            QuizResult(
                quiz_id=row.quiz_id,
                session_id=row.session_id,
                question=row.question,
                choices=row.choices,
                chosen_index=row.chosen_index,
                correct_index=row.correct_index,
                answered_at=row.answered_at,
            )
            for row in rows
        ]


def _log_from_row(row: TutorSessionRow) -> TutorSession:
    return TutorSession(
        id=row.id,
        session_key=row.session_key,
        turns=[SessionTurn.model_validate(t) for t in row.turns],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlHistoryRepository:
    """SQL implementation of HistoryRepository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(
        self, turns: list[SessionTurn], session_key: str | None = None
    ) -> TutorSession:
        """Create a new session log."""
        now = datetime.utcnow()
        row = TutorSessionRow(
            id=uuid.uuid4(),
            session_key=session_key,
            turns=[t.model_dump(mode="json") for t in turns],
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create session log: {e}") from e

        return _log_from_row(row)

    async def get(self, log_id: uuid.UUID) -> TutorSession | None:
        """Get session log by ID."""
        async with self._session_factory() as session:
            row = await session.get(TutorSessionRow, log_id)

        return _log_from_row(row) if row else None

    async def replace_turns(
        self, log_id: uuid.UUID, turns: list[SessionTurn]
    ) -> TutorSession | None:
        """Replace a log's turns."""
        try:
            async with self._session_factory() as session:
                row = await session.get(TutorSessionRow, log_id)
                if row is None:
                    return None
                row.turns = [t.model_dump(mode="json") for t in turns]
                row.updated_at = datetime.utcnow()
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update session log {log_id}: {e}") from e

        return _log_from_row(row)

    async def append_turn(self, session_key: str, turn: SessionTurn) -> TutorSession:
        """Append a turn to the log for a session key."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(TutorSessionRow)
                    .where(TutorSessionRow.session_key == session_key)
                    .order_by(TutorSessionRow.created_at)
                    .limit(1)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    row = TutorSessionRow(
                        id=uuid.uuid4(),
                        session_key=session_key,
                        turns=[],
                        created_at=datetime.utcnow(),
                    )
                    session.add(row)
                # Reassign so the JSON column is flagged dirty
                row.turns = [*row.turns, turn.model_dump(mode="json")]
                row.updated_at = datetime.utcnow()
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to append turn for {session_key}: {e}") from e

        return _log_from_row(row)
