"""Fan a merge patch out to many documents in capped, atomic chunks."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from message_retraction.store import DocumentReference, DocumentStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 400


@dataclass
class BatchWriteResult:
    written: int = 0
    commits: int = 0
    failed_chunks: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_chunks


class BatchedWriter:
    """Commit merge writes chunk by chunk.

    Each chunk is one atomic batch. Chunks that already committed stay
    committed when a later one fails; the writer moves on to the next chunk
    and reports the failure in the result.
    """

    def __init__(self, store: DocumentStore, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1 or chunk_size > store.max_batch_operations:
            raise ValueError(
                f"chunk_size must be between 1 and {store.max_batch_operations}, got {chunk_size}"
            )
        self.store = store
        self.chunk_size = chunk_size

    def merge_all(
        self,
        references: Sequence[DocumentReference],
        patch: Mapping[str, Any],
    ) -> BatchWriteResult:
        """Merge the same `patch` into every referenced document."""
        return self.merge_each([(reference, patch) for reference in references])

    def merge_each(
        self,
        writes: Sequence[tuple[DocumentReference, Mapping[str, Any]]],
    ) -> BatchWriteResult:
        """Merge a separate patch into each document."""
        result = BatchWriteResult()
        for index, start in enumerate(range(0, len(writes), self.chunk_size)):
            chunk = writes[start:start + self.chunk_size]
            batch = self.store.batch()
            for reference, patch in chunk:
                batch.set(reference, patch, merge=True)
            try:
                batch.commit()
            except StoreError as exc:
                logger.warning(
                    "Preview chunk %d (%d documents) failed to commit: %s", index, len(chunk), exc
                )
                result.failed_chunks.append(index)
                continue
            result.commits += 1
            result.written += len(chunk)
        return result
