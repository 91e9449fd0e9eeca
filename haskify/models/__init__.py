"""Models package - re-exports for convenience."""

from haskify.models.materials import (
    Chunk,
    ChunkLocator,
    FileType,
    Material,
    MaterialScope,
    MaterialSummary,
    RetrievalResult,
)
from haskify.models.quiz import CHOICE_LETTERS, QuizQuestion, QuizRecord, QuizResult
from haskify.models.tutor import ChatTurn, SessionTurn, TutorSession

__all__ = [
    "CHOICE_LETTERS",
    "ChatTurn",
    "Chunk",
    "ChunkLocator",
    "FileType",
    "Material",
    "MaterialScope",
    "MaterialSummary",
    "QuizQuestion",
    "QuizRecord",
    "QuizResult",
    "RetrievalResult",
    "SessionTurn",
    "TutorSession",
]
