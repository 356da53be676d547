"""Exceptions raised by the document store."""


class StoreError(RuntimeError):
    """Base exception for document store failures.

    Wraps driver-level errors so callers can treat every store failure the
    same way without importing SQLAlchemy.
    """


class DocumentNotFoundError(StoreError):
    """Raised when `update` targets a document that does not exist."""


class BatchTooLargeError(StoreError):
    """Raised when a write batch holds more operations than the store accepts."""
