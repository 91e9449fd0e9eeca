"""In-memory implementations of repository interfaces."""

import threading
import uuid
from datetime import datetime, timedelta

from haskify.db.repositories import RetryAfter
from haskify.models.materials import Material, MaterialScope
from haskify.models.quiz import QuizRecord, QuizResult
from haskify.models.tutor import SessionTurn, TutorSession


class InMemoryMaterialRepository:
    """In-memory implementation of MaterialRepository."""

    def __init__(self) -> None:
        self._materials: dict[uuid.UUID, Material] = {}
        self._lock = threading.Lock()

    async def add(self, material: Material) -> None:
        """Store a material."""
        with self._lock:
            self._materials[material.id] = material

    async def get(self, material_id: uuid.UUID) -> Material | None:
        """Get material by ID."""
        with self._lock:
            return self._materials.get(material_id)

    async def list_for_session(self, session_id: str, now: datetime) -> list[Material]:
        """List a session's unexpired materials."""
        with self._lock:
            materials = [
                m
                for m in self._materials.values()
                if m.scope == MaterialScope.session
                and m.session_id == session_id
                and not m.is_expired(now)
            ]
        return sorted(materials, key=lambda m: m.created_at)

    async def list_system(self) -> list[Material]:
        """List active system materials."""
        with self._lock:
            materials = [
                m for m in self._materials.values() if m.scope == MaterialScope.system and m.active
            ]
        return sorted(materials, key=lambda m: m.created_at)

    async def delete_for_session(self, session_id: str) -> int:
        """Delete a session's materials."""
        with self._lock:
            doomed = [
                material_id
                for material_id, m in self._materials.items()
                if m.scope == MaterialScope.session and m.session_id == session_id
            ]
            for material_id in doomed:
                del self._materials[material_id]
        return len(doomed)

    async def deactivate(self, material_id: uuid.UUID) -> bool:
        """Deactivate a system material."""
        with self._lock:
            material = self._materials.get(material_id)
            if material is None or material.scope != MaterialScope.system:
                return False
            self._materials[material_id] = material.model_copy(update={"active": False})
        return True

    async def delete_expired(self, now: datetime) -> int:
        """Delete expired session materials."""
        with self._lock:
            doomed = [
                material_id for material_id, m in self._materials.items() if m.is_expired(now)
            ]
            for material_id in doomed:
                del self._materials[material_id]
        return len(doomed)


class InMemoryQuizRepository:
    """In-memory implementation of QuizRepository."""

    def __init__(self) -> None:
        self._quizzes: dict[uuid.UUID, QuizRecord] = {}
        self._results: list[QuizResult] = []
        self._lock = threading.Lock()

    async def add_quiz(self, record: QuizRecord) -> None:
        """Store an accepted quiz."""
        with self._lock:
            self._quizzes[record.id] = record

    async def get_quiz(self, quiz_id: uuid.UUID, session_id: str) -> QuizRecord | None:
        """Get quiz by ID."""
        with self._lock:
            record = self._quizzes.get(quiz_id)

        if record is None:
            return None

        # Enforce session scoping
        if record.session_id != session_id:
            return None

        return record

    async def add_result(self, result: QuizResult) -> None:
        """Store an answer."""
        with self._lock:
            self._results.append(result)

    async def list_results(self, session_id: str, limit: int = 10) -> list[QuizResult]:
        """List a session's answers, newest first."""
        with self._lock:
            results = [r for r in self._results if r.session_id == session_id]
        results.sort(key=lambda r: r.answered_at, reverse=True)
        return results[:limit]


class InMemoryHistoryRepository:
    """In-memory implementation of HistoryRepository."""

    def __init__(self) -> None:
        self._logs: dict[uuid.UUID, TutorSession] = {}
        self._lock = threading.Lock()

    async def create(
        self, turns: list[SessionTurn], session_key: str | None = None
    ) -> TutorSession:
        """Create a new session log."""
        now = datetime.utcnow()
        log = TutorSession(
            id=uuid.uuid4(),
            session_key=session_key,
            turns=list(turns),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._logs[log.id] = log
        return log

    async def get(self, log_id: uuid.UUID) -> TutorSession | None:
        """Get session log by ID."""
        with self._lock:
            return self._logs.get(log_id)

    async def replace_turns(
        self, log_id: uuid.UUID, turns: list[SessionTurn]
    ) -> TutorSession | None:
        """Replace a log's turns."""
        with self._lock:
            log = self._logs.get(log_id)
            if log is None:
                return None
            updated = log.model_copy(update={"turns": list(turns), "updated_at": datetime.utcnow()})
            self._logs[log_id] = updated
        return updated

    async def append_turn(self, session_key: str, turn: SessionTurn) -> TutorSession:
        """Append a turn to the log for a session key."""
        with self._lock:
            log = next(
                (entry for entry in self._logs.values() if entry.session_key == session_key),
                None,
            )
            if log is not None:
                updated = log.model_copy(
                    update={"turns": [*log.turns, turn], "updated_at": datetime.utcnow()}
                )
                self._logs[log.id] = updated
                return updated

        return await self.create([turn], session_key=session_key)


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}
        self._lock = threading.Lock()

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        with self._lock:
            if key not in self._windows:
                # First request
                self._windows[key] = (now, 1)
                return None

            window_start, count = self._windows[key]
            window_end = window_start + timedelta(seconds=self._window_seconds)

            if now >= window_end:
                # New window
                self._windows[key] = (now, 1)
                return None

            if count >= self._max_requests:
                seconds_remaining = int((window_end - now).total_seconds())
                return RetryAfter(seconds=max(1, seconds_remaining))

            self._windows[key] = (window_start, count + 1)
            return None
