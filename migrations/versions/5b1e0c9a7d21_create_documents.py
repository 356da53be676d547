"""create documents table

Revision ID: 5b1e0c9a7d21
Revises:
Create Date: 2026-10-17 10:12:44.503118

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1e0c9a7d21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the table backing the document store."""
    op.create_table(
        "documents",
        sa.Column("path", sa.String(length=1024), nullable=False),
        sa.Column("collection_path", sa.String(length=1024), nullable=False),
        sa.Column("doc_id", sa.String(length=256), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("path"),
    )
    op.create_index(
        "ix_documents_collection_doc",
        "documents",
        ["collection_path", "doc_id"],
    )


def downgrade() -> None:
    """Drop the document store table."""
    op.drop_index("ix_documents_collection_doc", table_name="documents")
    op.drop_table("documents")
