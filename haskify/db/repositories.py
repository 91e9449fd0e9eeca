"""Repository protocol interfaces for data access."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from haskify.models.materials import Material
from haskify.models.quiz import QuizRecord, QuizResult
from haskify.models.tutor import SessionTurn, TutorSession


class PersistenceError(Exception):
    """Document store write or read failed."""

    pass


class MaterialRepository(Protocol):
    """Repository for materials and their chunks."""

    async def add(self, material: Material) -> None:
        """Persist a material with all of its chunks.

        Raises:
            PersistenceError: If the write fails
        """
        ...

    async def get(self, material_id: UUID) -> Material | None:
        """Get a material (with chunks) by ID, or None if not found."""
        ...

    async def list_for_session(self, session_id: str, now: datetime) -> list[Material]:
        """List a session's unexpired materials, oldest first."""
        ...

    async def list_system(self) -> list[Material]:
        """List active system-global materials, oldest first."""
        ...

    async def delete_for_session(self, session_id: str) -> int:
        """Delete every material owned by a session.

        Returns:
            Number of materials deleted
        """
        ...

    async def deactivate(self, material_id: UUID) -> bool:
        """Deactivate a system material.

        Returns:
            True if a system material was found and deactivated
        """
        ...

    async def delete_expired(self, now: datetime) -> int:
        """Delete session materials whose ``expires_at`` has passed.

        Returns:
            Number of materials deleted
        """
        ...


class QuizRepository(Protocol):
    """Repository for accepted quizzes and student answers."""

    async def add_quiz(self, record: QuizRecord) -> None:
        """Persist an accepted quiz.

        Raises:
            PersistenceError: If the write fails
        """
        ...

    async def get_quiz(self, quiz_id: UUID, session_id: str) -> QuizRecord | None:
        """Get a quiz by ID, scoped to its session."""
        ...

    async def add_result(self, result: QuizResult) -> None:
        """Persist a student's answer."""
        ...

    async def list_results(self, session_id: str, limit: int = 10) -> list[QuizResult]:
        """List a session's answers, newest first."""
        ...


class HistoryRepository(Protocol):
    """Repository for logged tutoring conversations."""

    async def create(self, turns: list[SessionTurn], session_key: str | None = None) -> TutorSession:
        """Create a new session log."""
        ...

    async def get(self, log_id: UUID) -> TutorSession | None:
        """Get a session log by ID."""
        ...

    async def replace_turns(self, log_id: UUID, turns: list[SessionTurn]) -> TutorSession | None:
        """Replace a log's turns; None if the log does not exist."""
        ...

    async def append_turn(self, session_key: str, turn: SessionTurn) -> TutorSession:
        """Append a turn to the log for ``session_key``, creating it if needed."""
        ...


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class RateLimiter(Protocol):
    """Rate limiter interface."""

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...
