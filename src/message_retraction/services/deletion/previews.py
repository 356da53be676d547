"""Preview patches written after a retraction.

Replicas are read by clients of several vintages, so every patch carries the
legacy and the current field names together.
"""

from __future__ import annotations

from typing import Any

from message_retraction.store import SERVER_TIMESTAMP

from .fields import DEFAULT_MESSAGE_TYPE
from .recompute import Replacement


def replica_patch(replacement: Replacement | None) -> dict[str, Any]:
    """Patch for a per-participant preview replica."""
    if replacement is None:
        return {
            "last_message": "",
            "last_message_type": DEFAULT_MESSAGE_TYPE,
            "last_message_is_deleted": True,
            "lastMessageId": "",
        }
    timestamp = replacement.timestamp if replacement.timestamp is not None else SERVER_TIMESTAMP
    return {
        "last_message": replacement.text,
        "last_message_type": replacement.type,
        "last_message_is_deleted": False,
        "lastMessageId": replacement.id,
        "timestamp": timestamp,
        "lastMessageAt": timestamp,
        "last_message_timestamp": timestamp,
    }


def aggregate_patch(replacement: Replacement | None) -> dict[str, Any]:
    """Patch for the preview fields kept on the group aggregate itself."""
    if replacement is None:
        return {
            "lastMessage": "",
            "lastMessageIsDeleted": True,
            "lastMessageId": "",
        }
    timestamp = replacement.timestamp if replacement.timestamp is not None else SERVER_TIMESTAMP
    return {
        "lastMessage": replacement.text,
        "lastMessageType": replacement.type,
        "lastMessageIsDeleted": False,
        "lastMessageAt": timestamp,
        "lastMessageId": replacement.id,
    }
