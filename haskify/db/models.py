"""SQLAlchemy ORM models for materials, quizzes and session history."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class MaterialRow(Base):
    """Material table - uploaded or system-provided documents."""

    __tablename__ = "material"
    __table_args__ = (
        Index("idx_material_session", "session_id"),
        Index("idx_material_expires", "expires_at"),
    )

    material_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False)
    session_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    chunks: Mapped[list["MaterialChunkRow"]] = relationship(
        "MaterialChunkRow",
        back_populates="material",
        cascade="all, delete-orphan",
        order_by="MaterialChunkRow.chunk_index",
    )


class MaterialChunkRow(Base):
    """Material chunk table - chunk text plus optional embedding."""

    __tablename__ = "material_chunk"
    __table_args__ = (Index("idx_chunk_material_order", "material_id", "chunk_index"),)

    chunk_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    material_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("material.material_id", ondelete="CASCADE"), nullable=False
    )
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-based
    text: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float] | None] = mapped_column(JSON, nullable=True)
    locator: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Relationships
    material: Mapped["MaterialRow"] = relationship("MaterialRow", back_populates="chunks")


class QuizRecordRow(Base):
    """Quiz record table - quizzes accepted for a session."""

    __tablename__ = "quiz_record"
    __table_args__ = (Index("idx_quiz_session_hash", "session_id", "content_hash"),)

    quiz_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    session_id: Mapped[str] = mapped_column(Text, nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    choices: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    correct_index: Mapped[int] = mapped_column(Integer, nullable=False)
    topic: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_hash: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class QuizResultRow(Base):
    """Quiz result table - a student's answers, newest used for prompts."""

    __tablename__ = "quiz_result"
    __table_args__ = (Index("idx_quiz_result_session_ts", "session_id", "answered_at"),)

    result_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    session_id: Mapped[str] = mapped_column(Text, nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    choices: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    chosen_index: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_index: Mapped[int] = mapped_column(Integer, nullable=False)
    answered_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class TutorSessionRow(Base):
    """Tutor session table - logged question/answer turns."""

    __tablename__ = "tutor_session"
    __table_args__ = (Index("idx_tutor_session_key", "session_key"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    turns: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
