"""Decide, before mutating anything, whether the target is the visible preview."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from message_retraction.store import (
    DESCENDING,
    CollectionReference,
    DocumentSnapshot,
    Query,
    StoreError,
)

from .fields import is_not_deleted

logger = logging.getLogger(__name__)

TIMESTAMP_FIELD = "timestamp"


@dataclass
class ProbeResult:
    """Outcome of the effective-latest probe.

    `recent_page` is kept so the replacement search can reuse it.
    """

    was_latest: bool
    recent_page: list[DocumentSnapshot] = field(default_factory=list)
    failed: bool = False


def newest_first(log: CollectionReference) -> Query:
    return log.order_by(TIMESTAMP_FIELD, DESCENDING)


def load_recent_page(log: CollectionReference, page_size: int) -> list[DocumentSnapshot]:
    return newest_first(log).limit(page_size).get()


def first_visible(
    snapshots: list[DocumentSnapshot],
    excluded_ids: frozenset[str] = frozenset(),
) -> DocumentSnapshot | None:
    """Return the first snapshot that is neither excluded nor soft-deleted."""
    for snapshot in snapshots:
        if snapshot.id in excluded_ids:
            continue
        if is_not_deleted(snapshot.to_dict()):
            return snapshot
    return None


def probe_effective_latest(log: CollectionReference, message_id: str, page_size: int) -> ProbeResult:
    """Check whether `message_id` is the newest visible entry of `log`.

    A failed read is reported as `failed` with `was_latest` False, so the
    caller skips preview recomputation instead of aborting the retraction.
    """
    try:
        page = load_recent_page(log, page_size)
    except StoreError as exc:
        logger.warning("Effective-latest probe failed on %s for %s: %s", log.path, message_id, exc)
        return ProbeResult(was_latest=False, failed=True)

    latest = first_visible(page)
    return ProbeResult(was_latest=latest is not None and latest.id == message_id, recent_page=page)
