"""Per-session quiz deduplication.

Each session gets a hash set on its first quiz request. Accepted quizzes add
their content hash; a quiz whose hash is already present is rejected. Hash
sets older than the retention window are dropped by :meth:`QuizHashStore.sweep`.
"""

import hashlib
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from haskify.models.quiz import QuizQuestion

logger = logging.getLogger(__name__)


def quiz_content_hash(question: str, choices: list[str] | None = None) -> str:
    """SHA-1 of the normalized question text.

    Whitespace is collapsed and case folded. Choice text is only mixed in
    when ``choices`` is given, so by default two questions with the same
    stem but different choices collide.
    """
    parts = [" ".join(question.split()).lower()]
    if choices is not None:
        parts.extend(" ".join(c.split()).lower() for c in choices)
    return hashlib.sha1("||".join(parts).encode("utf-8")).hexdigest()


@dataclass
class SessionQuizState:
    """Accepted content hashes for one session, each with its quiz topic."""

    created_at: datetime
    hashes: dict[str, str | None] = field(default_factory=dict)


class QuizHashStore:
    """Thread-safe map of session id to :class:`SessionQuizState`."""

    def __init__(self, *, retention: timedelta = timedelta(hours=2), include_choices: bool = False) -> None:
        self.retention = retention
        self.include_choices = include_choices
        self._sessions: dict[str, SessionQuizState] = {}
        self._lock = threading.Lock()

    def hash_quiz(self, quiz: QuizQuestion) -> str:
        return quiz_content_hash(quiz.question, quiz.choices if self.include_choices else None)

    def _state(self, session_id: str, now: datetime) -> SessionQuizState:
        state = self._sessions.get(session_id)
        if state is None:
            state = SessionQuizState(created_at=now)
            self._sessions[session_id] = state
        return state

    def is_duplicate(self, session_id: str, quiz: QuizQuestion) -> bool:
        """True if the session already accepted a quiz with this hash."""
        content_hash = self.hash_quiz(quiz)
        with self._lock:
            state = self._sessions.get(session_id)
            return state is not None and content_hash in state.hashes

    def check_and_record(self, session_id: str, quiz: QuizQuestion, now: datetime | None = None) -> bool:
        """Accept ``quiz`` for the session unless its hash was seen before.

        Creates the session's hash set on first use.

        Returns:
            True if accepted (hash inserted), False if it is a repeat
        """
        now = now or datetime.utcnow()
        content_hash = self.hash_quiz(quiz)
        with self._lock:
            state = self._state(session_id, now)
            if content_hash in state.hashes:
                return False
            state.hashes[content_hash] = quiz.topic
        return True

    def discard(self, session_id: str, content_hash: str) -> None:
        """Take back an accepted hash whose quiz was never delivered."""
        with self._lock:
            state = self._sessions.get(session_id)
            if state is not None:
                state.hashes.pop(content_hash, None)

    def covered_topics(self, session_id: str) -> list[str]:
        """Topics of the quizzes the session has accepted so far."""
        with self._lock:
            state = self._sessions.get(session_id)
            if state is None:
                return []
            return list(dict.fromkeys(t for t in state.hashes.values() if t))

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def forget(self, session_id: str) -> None:
        """Drop a session's hash set (explicit session cleanup)."""
        with self._lock:
            self._sessions.pop(session_id, None)

    def sweep(self, now: datetime | None = None) -> int:
        """Drop hash sets older than the retention window.

        Returns:
            Number of sessions dropped
        """
        now = now or datetime.utcnow()
        cutoff = now - self.retention
        with self._lock:
            stale = [sid for sid, state in self._sessions.items() if state.created_at <= cutoff]
            for sid in stale:
                del self._sessions[sid]

        if stale:
            logger.info(f"Dropped {len(stale)} stale quiz hash sets")
        return len(stale)
