"""Document store used by the retraction service."""

from .client import (
    ASCENDING,
    DESCENDING,
    MAX_BATCH_OPERATIONS,
    SERVER_TIMESTAMP,
    CollectionReference,
    DocumentReference,
    DocumentSnapshot,
    DocumentStore,
    Query,
    WriteBatch,
    encode_timestamp,
)
from .errors import BatchTooLargeError, DocumentNotFoundError, StoreError

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "MAX_BATCH_OPERATIONS",
    "SERVER_TIMESTAMP",
    "BatchTooLargeError",
    "CollectionReference",
    "DocumentNotFoundError",
    "DocumentReference",
    "DocumentSnapshot",
    "DocumentStore",
    "Query",
    "StoreError",
    "WriteBatch",
    "encode_timestamp",
]
