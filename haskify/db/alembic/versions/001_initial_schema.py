"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- material, material_chunk
- quiz_record, quiz_result
- tutor_session
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # material table
    op.create_table(
        "material",
        sa.Column("material_id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("file_type", sa.Text(), nullable=False),
        sa.Column("scope", sa.Text(), nullable=False),
        sa.Column("session_id", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_material_session", "material", ["session_id"])
    op.create_index("idx_material_expires", "material", ["expires_at"])

    # material_chunk table
    op.create_table(
        "material_chunk",
        sa.Column("chunk_id", sa.Uuid(), primary_key=True),
        sa.Column("material_id", sa.Uuid(), nullable=False),
        sa.Column("chunk_index", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("embedding", sa.JSON(), nullable=True),
        sa.Column("locator", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["material_id"], ["material.material_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_chunk_material_order", "material_chunk", ["material_id", "chunk_index"])

    # quiz_record table
    op.create_table(
        "quiz_record",
        sa.Column("quiz_id", sa.Uuid(), primary_key=True),
        sa.Column("session_id", sa.Text(), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("choices", sa.JSON(), nullable=False),
        sa.Column("correct_index", sa.Integer(), nullable=False),
        sa.Column("topic", sa.Text(), nullable=True),
        sa.Column("content_hash", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_quiz_session_hash", "quiz_record", ["session_id", "content_hash"])

    # quiz_result table
    op.create_table(
        "quiz_result",
        sa.Column("result_id", sa.Uuid(), primary_key=True),
        sa.Column("quiz_id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Text(), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("choices", sa.JSON(), nullable=False),
        sa.Column("chosen_index", sa.Integer(), nullable=False),
        sa.Column("correct_index", sa.Integer(), nullable=False),
        sa.Column("answered_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_quiz_result_session_ts", "quiz_result", ["session_id", "answered_at"])

    # tutor_session table
    op.create_table(
        "tutor_session",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("session_key", sa.Text(), nullable=True),
        sa.Column("turns", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_tutor_session_key", "tutor_session", ["session_key"])


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table("tutor_session")
    op.drop_table("quiz_result")
    op.drop_table("quiz_record")
    op.drop_table("material_chunk")
    op.drop_table("material")
