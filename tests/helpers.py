# tests/helpers.py
"""Builders for conversation fixtures stored in the document store."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from message_retraction.services.deletion import paths
from message_retraction.store import CollectionReference, DocumentStore, encode_timestamp

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def ts(seconds: int) -> datetime:
    return T0 + timedelta(seconds=seconds)


def stored_ts(seconds: int) -> str:
    """Timestamp as the store keeps it."""
    return encode_timestamp(ts(seconds))


def add_message(
    log: CollectionReference,
    message_id: str,
    sender_id: str,
    seconds: int,
    *,
    text: str | None = None,
    deleted: bool | None = None,
    **extra: Any,
) -> None:
    data: dict[str, Any] = {
        "sender_id": sender_id,
        "message_text": text if text is not None else f"text of {message_id}",
        "message_type": "text",
        "timestamp": ts(seconds),
    }
    if deleted is not None:
        data["is_deleted"] = deleted
    data.update(extra)
    log.document(message_id).set(data)


def seed_group(
    store: DocumentStore,
    group_id: str,
    *,
    creator: str | None,
    participants: list[str],
    moderators: list[str] | None = None,
    **extra: Any,
) -> None:
    """Create a group aggregate plus one stale preview per participant."""
    aggregate: dict[str, Any] = {"participantIds": participants, **extra}
    if creator is not None:
        aggregate["createdBy"] = creator
    if moderators:
        aggregate["moderatorIds"] = moderators
    paths.group_aggregate(store, group_id).set(aggregate)
    for participant_id in participants:
        paths.preview_replica(store, participant_id, f"event_{group_id}").set(
            {"last_message": "stale", "last_message_is_deleted": False}
        )


def group_log(store: DocumentStore, group_id: str) -> CollectionReference:
    return paths.group_log(store, group_id)


def group_preview(store: DocumentStore, user_id: str, group_id: str) -> dict[str, Any]:
    return paths.preview_replica(store, user_id, f"event_{group_id}").get().to_dict() or {}


def send_direct(
    store: DocumentStore,
    sender: str,
    receiver: str,
    message_id: str,
    seconds: int,
    *,
    peer_message_id: str | None = None,
    text: str | None = None,
    **extra: Any,
) -> None:
    """Store both copies of a direct message, as the send path does."""
    for owner, peer, doc_id in (
        (sender, receiver, message_id),
        (receiver, sender, peer_message_id or message_id),
    ):
        add_message(
            paths.direct_log(store, owner, peer),
            doc_id,
            sender,
            seconds,
            text=text,
            receiver_id=receiver,
            **extra,
        )


def set_direct_preview(
    store: DocumentStore,
    owner: str,
    peer: str,
    *,
    last_message_id: str | None,
    seconds: int,
    text: str = "preview",
) -> None:
    data: dict[str, Any] = {
        "last_message": text,
        "last_message_is_deleted": False,
        "timestamp": ts(seconds),
    }
    if last_message_id is not None:
        data["lastMessageId"] = last_message_id
    paths.preview_replica(store, owner, peer).set(data)


def direct_preview(store: DocumentStore, owner: str, peer: str) -> dict[str, Any]:
    return paths.preview_replica(store, owner, peer).get().to_dict() or {}


def direct_message(store: DocumentStore, owner: str, peer: str, message_id: str) -> dict[str, Any]:
    return paths.direct_log(store, owner, peer).document(message_id).get().to_dict() or {}
