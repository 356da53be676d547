"""Idempotent soft deletion of a single message."""

from __future__ import annotations

from typing import Any

from message_retraction.store import SERVER_TIMESTAMP, DocumentSnapshot

from .fields import is_not_deleted


def soft_delete_patch(caller_id: str) -> dict[str, Any]:
    return {
        "is_deleted": True,
        "deleted_at": SERVER_TIMESTAMP,
        "deleted_by": caller_id,
    }


def soft_delete(snapshot: DocumentSnapshot, caller_id: str) -> bool:
    """Flag the message as deleted unless it already is.

    Returns:
        True if a write was made, False if the message was already deleted
    """
    if not is_not_deleted(snapshot.to_dict()):
        return False
    snapshot.reference.set(soft_delete_patch(caller_id), merge=True)
    return True
