"""SQLAlchemy models for the message retraction service."""

from .document import Document

__all__ = ["Document"]
