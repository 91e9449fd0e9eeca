"""Chat and session-history domain models."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    """One message in a conversation with the language model."""

    role: Literal["system", "user", "assistant"]
    content: str


class SessionTurn(BaseModel):
    """One logged question/answer pair."""

    question: str
    response: str
    time: datetime = Field(default_factory=datetime.utcnow)


class TutorSession(BaseModel):
    """Chat history log for a tutoring session."""

    id: UUID
    session_key: str | None = None
    turns: list[SessionTurn]
    created_at: datetime
    updated_at: datetime
