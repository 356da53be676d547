# pylint: disable=too-few-public-methods
"""Storage model backing the document store."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from message_retraction.db.session import Base
from message_retraction.db.time import utcnow


class Document(Base):
    """One document addressed by its slash-separated path.

    `collection_path` is the path of the parent collection, so listing a
    collection is an equality filter on an indexed column. The document body
    lives in `data` as JSON.
    """

    __tablename__ = "documents"

    path: Mapped[str] = mapped_column(String(1024), primary_key=True)
    collection_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    doc_id: Mapped[str] = mapped_column(String(256), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("ix_documents_collection_doc", "collection_path", "doc_id"),
    )
