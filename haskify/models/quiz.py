"""Quiz domain models."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

CHOICE_LETTERS = "ABCD"


class QuizQuestion(BaseModel):
    """A generated multiple-choice question.

    The id is always assigned by the server; any id in the model output is ignored.
    """

    id: UUID = Field(default_factory=uuid4)
    question: str = Field(..., min_length=1)
    choices: list[str] = Field(..., min_length=4, max_length=4)
    correct_index: int = Field(..., ge=0, le=3, alias="correctIndex")
    topic: str | None = None

    model_config = {"populate_by_name": True}

    @field_validator("choices")
    @classmethod
    def choices_not_blank(cls, v: list[str]) -> list[str]:
        if any(not c.strip() for c in v):
            raise ValueError("choices must be non-empty strings")
        return v


class QuizRecord(QuizQuestion):
    """A quiz accepted for a session and persisted."""

    session_id: str
    content_hash: str
    created_at: datetime


class QuizResult(BaseModel):
    """A student's answer to a quiz."""

    quiz_id: UUID
    session_id: str
    question: str
    choices: list[str]
    chosen_index: int = Field(..., ge=0, le=3)
    correct_index: int = Field(..., ge=0, le=3)
    answered_at: datetime

    @property
    def correct(self) -> bool:
        return self.chosen_index == self.correct_index
