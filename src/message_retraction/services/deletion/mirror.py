"""Find and retract the peer's copy of a direct message.

Each side of a direct conversation stores its own copy of the thread. The
peer's copy usually has the same id; older copies are linked only through a
correlation id. A candidate is retracted only after its own sender field is
checked, since ids alone could point at someone else's message.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from message_retraction.store import DocumentSnapshot, DocumentStore, StoreError

from . import paths
from .fields import CORRELATION_ID_FIELDS, as_trimmed_string, first_string
from .soft_delete import soft_delete

logger = logging.getLogger(__name__)

MIRROR_SENDER_MISMATCH = "mirror_sender_mismatch"
MIRROR_LOOKUP_FAILED = "mirror_lookup_failed"
MIRROR_DELETE_FAILED = "mirror_delete_failed"

_FALLBACK_FAILURES = {
    "global_id": "fallback_global_id_failed",
    "message_global_id": "fallback_message_global_id_failed",
}


@dataclass
class MirrorOutcome:
    """What happened to the peer's copy.

    `mirror_id` is set once an authored copy is located, whether this request
    deleted it or it was already deleted. `deleted` counts writes made.
    """

    mirror_id: str | None = None
    deleted: int = 0
    warnings: list[str] = field(default_factory=list)

    def warn(self, code: str) -> None:
        if code not in self.warnings:
            self.warnings.append(code)


def correlation_id_of(message: Mapping[str, Any], message_id: str) -> str:
    """Return the id linking both copies, defaulting to the local message id."""
    return first_string(message, CORRELATION_ID_FIELDS) or message_id


def is_authored_by(message: Mapping[str, Any], sender_id: str, receiver_id: str) -> bool:
    """Check the copy was sent by `sender_id` to `receiver_id`.

    Legacy copies may lack `receiver_id`; the thread path already implies it.
    """
    if as_trimmed_string(message.get("sender_id")) != sender_id:
        return False
    stored_receiver = as_trimmed_string(message.get("receiver_id"))
    return not stored_receiver or stored_receiver == receiver_id


def _claim(candidate: DocumentSnapshot, caller_id: str, peer_id: str, outcome: MirrorOutcome) -> bool:
    data = candidate.to_dict() or {}
    if not is_authored_by(data, caller_id, peer_id):
        logger.warning(
            "Peer copy %s in %s's thread was not sent by %s (sender=%s); leaving it",
            candidate.id,
            peer_id,
            caller_id,
            data.get("sender_id"),
        )
        outcome.warn(MIRROR_SENDER_MISMATCH)
        return False

    try:
        if soft_delete(candidate, caller_id):
            outcome.deleted += 1
    except StoreError as exc:
        logger.warning("Failed to retract peer copy %s for %s: %s", candidate.id, peer_id, exc)
        outcome.warn(MIRROR_DELETE_FAILED)
        return False

    outcome.mirror_id = candidate.id
    return True


def retract_mirror(
    store: DocumentStore,
    caller_id: str,
    peer_id: str,
    message_id: str,
    correlation_id: str,
) -> MirrorOutcome:
    """Retract the peer's copy of `message_id`, best effort.

    Tries the same id in the peer's thread first, then the correlation id
    under each correlation field. Failures become warnings on the outcome.
    """
    outcome = MirrorOutcome()
    peer_thread = paths.direct_log(store, peer_id, caller_id)

    try:
        direct_candidate = peer_thread.document(message_id).get()
    except StoreError as exc:
        logger.warning("Failed to read peer copy %s for %s: %s", message_id, peer_id, exc)
        outcome.warn(MIRROR_LOOKUP_FAILED)
        direct_candidate = None

    if direct_candidate is not None and direct_candidate.exists:
        if _claim(direct_candidate, caller_id, peer_id, outcome):
            return outcome

    if not correlation_id:
        return outcome

    for field_name in CORRELATION_ID_FIELDS:
        try:
            matches = peer_thread.where(field_name, "==", correlation_id).limit(1).get()
        except StoreError as exc:
            logger.warning(
                "Correlation lookup on %s=%s failed for %s: %s",
                field_name,
                correlation_id,
                peer_id,
                exc,
            )
            outcome.warn(_FALLBACK_FAILURES[field_name])
            continue
        if matches and _claim(matches[0], caller_id, peer_id, outcome):
            return outcome

    return outcome
