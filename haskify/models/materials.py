"""Material and chunk domain models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class FileType(str, Enum):
    """Kind of uploaded material."""

    pdf = "pdf"
    source_code = "source-code"
    plain_text = "plain-text"


class MaterialScope(str, Enum):
    """Who owns a material and how long it lives."""

    session = "session"  # private to one session, expires
    system = "system"  # global, persists until deactivated


class ChunkLocator(BaseModel):
    """Where a chunk came from inside its material."""

    page: int | None = None
    line_start: int | None = None
    line_end: int | None = None
    word_start: int | None = None
    word_end: int | None = None

    def describe(self) -> str:
        """Short human-readable form, e.g. "p. 3" or "lines 10-42"."""
        if self.page is not None:
            return f"p. {self.page}"
        if self.line_start is not None and self.line_end is not None:
            return f"lines {self.line_start}-{self.line_end}"
        return ""


class Chunk(BaseModel):
    """A bounded slice of a material's text - the unit of retrieval."""

    index: int = Field(..., ge=1)  # 1-based, stable within a material
    text: str
    embedding: list[float] | None = None
    source_material_id: UUID | None = None
    locator: ChunkLocator | None = None


class Material(BaseModel):
    """Uploaded (session) or administratively provided (system) document."""

    id: UUID
    title: str
    file_type: FileType
    scope: MaterialScope
    chunks: list[Chunk] = Field(default_factory=list)
    session_id: str | None = None
    expires_at: datetime | None = None
    active: bool = True
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """True once a session material is past its retention window."""
        return self.expires_at is not None and now >= self.expires_at


class MaterialSummary(BaseModel):
    """Material metadata without chunk bodies."""

    id: UUID
    title: str
    file_type: FileType
    scope: MaterialScope
    chunk_count: int
    expires_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_material(cls, material: Material) -> "MaterialSummary":
        return cls(
            id=material.id,
            title=material.title,
            file_type=material.file_type,
            scope=material.scope,
            chunk_count=len(material.chunks),
            expires_at=material.expires_at,
            created_at=material.created_at,
        )


class RetrievalResult(BaseModel):
    """One ranked chunk for a query. Computed per request, never persisted."""

    material_id: UUID
    chunk_index: int
    text: str
    score: float
    source_title: str
    origin: MaterialScope
    locator: ChunkLocator | None = None
