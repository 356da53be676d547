"""Field-name alias tables and tolerant readers for stored documents.

Several generations of clients wrote the same concept under different field
names. Each concept has an ordered alias table here; resolution walks the
table and returns the first usable value.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

# Group aggregate membership. Dotted entries address nested maps.
PARTICIPANT_ID_ALIASES: tuple[str, ...] = (
    "participantIds",
    "participants",
    "participants.participantIds",
)
MODERATOR_ID_ALIASES: tuple[str, ...] = (
    "moderatorIds",
    "moderator_ids",
    "adminIds",
    "admin_ids",
    "moderators",
    "admins",
)

# Preview replicas
LAST_MESSAGE_ID_ALIASES: tuple[str, ...] = (
    "lastMessageId",
    "last_message_id",
    "last_messageId",
    "lastMessageID",
)
PREVIEW_TIMESTAMP_ALIASES: tuple[str, ...] = (
    "timestamp",
    "lastMessageAt",
    "last_message_at",
)

# Messages
MESSAGE_TEXT_ALIASES: tuple[str, ...] = ("message_text", "message")
MESSAGE_TYPE_ALIASES: tuple[str, ...] = ("message_type", "messageType")
CORRELATION_ID_FIELDS: tuple[str, ...] = ("global_id", "message_global_id")

DEFAULT_MESSAGE_TYPE = "text"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def lookup(data: Mapping[str, Any] | None, field: str) -> Any:
    """Read a possibly dotted field, returning None when any hop is missing."""
    node: Any = data
    for part in field.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def as_trimmed_string(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def as_string_list(value: Any) -> list[str]:
    """Keep the non-blank string entries of a list; anything else is empty."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


def first_string_list(data: Mapping[str, Any] | None, aliases: Sequence[str]) -> list[str]:
    """Return the first non-empty string list found under `aliases`."""
    for alias in aliases:
        values = as_string_list(lookup(data, alias))
        if values:
            return values
    return []


def first_string(data: Mapping[str, Any] | None, aliases: Sequence[str]) -> str:
    """Return the first non-blank trimmed string found under `aliases`."""
    for alias in aliases:
        value = as_trimmed_string(lookup(data, alias))
        if value:
            return value
    return ""


def first_present(data: Mapping[str, Any] | None, aliases: Sequence[str]) -> Any:
    """Return the first value under `aliases` that is not None."""
    for alias in aliases:
        value = lookup(data, alias)
        if value is not None:
            return value
    return None


def message_text(data: Mapping[str, Any]) -> str:
    value = first_present(data, MESSAGE_TEXT_ALIASES)
    return "" if value is None else str(value)


def message_type(data: Mapping[str, Any]) -> str:
    value = first_present(data, MESSAGE_TYPE_ALIASES)
    return DEFAULT_MESSAGE_TYPE if value is None else str(value)


def is_not_deleted(data: Mapping[str, Any] | None) -> bool:
    """A message is visible unless `is_deleted` is literally true."""
    return (data or {}).get("is_deleted") is not True


def _is_seconds_nanos(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and isinstance(value.get("seconds"), (int, float))
        and isinstance(value.get("nanoseconds"), (int, float))
    )


def _to_micros(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return (value - _EPOCH) // timedelta(microseconds=1)
    if isinstance(value, (int, float)):
        # Bare numbers are epoch milliseconds.
        return int(value * 1000) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            return _to_micros(datetime.fromisoformat(value.strip()))
        except ValueError:
            return None
    if isinstance(value, Mapping) and isinstance(value.get("seconds"), (int, float)):
        if not math.isfinite(value["seconds"]):
            return None
        nanos = value.get("nanoseconds")
        nanos = nanos if isinstance(nanos, (int, float)) and math.isfinite(nanos) else 0
        return int(value["seconds"]) * 1_000_000 + int(nanos) // 1000
    return None


def timestamps_equal(a: Any, b: Any) -> bool:
    """Compare two timestamps stored in any of the shapes clients have used.

    Accepts datetimes, ISO-8601 strings, epoch milliseconds and
    `{seconds, nanoseconds}` maps. Anything unparseable never matches.
    """
    if _is_seconds_nanos(a) and _is_seconds_nanos(b):
        return a["seconds"] == b["seconds"] and a["nanoseconds"] == b["nanoseconds"]
    a_micros = _to_micros(a)
    b_micros = _to_micros(b)
    if a_micros is None or b_micros is None:
        return False
    return a_micros == b_micros
