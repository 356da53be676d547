# tests/services/test_fields.py
"""Tests for alias resolution and tolerant field readers."""

from datetime import UTC, datetime

from message_retraction.services.deletion.fields import (
    LAST_MESSAGE_ID_ALIASES,
    MODERATOR_ID_ALIASES,
    PARTICIPANT_ID_ALIASES,
    first_string,
    first_string_list,
    is_not_deleted,
    message_text,
    message_type,
    timestamps_equal,
)


def test_participants_resolve_in_alias_order() -> None:
    data = {"participantIds": [], "participants": ["a", "b"]}
    assert first_string_list(data, PARTICIPANT_ID_ALIASES) == ["a", "b"]


def test_participants_nested_map() -> None:
    data = {"participants": {"participantIds": ["a", " ", 3, "c"]}}
    assert first_string_list(data, PARTICIPANT_ID_ALIASES) == ["a", "c"]


def test_moderators_fall_through_every_alias() -> None:
    assert first_string_list({"admins": ["m"]}, MODERATOR_ID_ALIASES) == ["m"]
    assert first_string_list({"moderator_ids": ["x"], "admins": ["m"]}, MODERATOR_ID_ALIASES) == ["x"]
    assert first_string_list({}, MODERATOR_ID_ALIASES) == []


def test_last_message_pointer_aliases() -> None:
    assert first_string({"lastMessageID": " m9 "}, LAST_MESSAGE_ID_ALIASES) == "m9"
    assert first_string({"lastMessageId": "", "last_message_id": "m2"}, LAST_MESSAGE_ID_ALIASES) == "m2"


def test_message_text_and_type_fallbacks() -> None:
    assert message_text({"message": "legacy"}) == "legacy"
    assert message_text({}) == ""
    assert message_type({"messageType": "image"}) == "image"
    assert message_type({}) == "text"


def test_is_not_deleted_only_trusts_literal_true() -> None:
    assert is_not_deleted({}) is True
    assert is_not_deleted({"is_deleted": "true"}) is True
    assert is_not_deleted({"is_deleted": True}) is False


def test_timestamps_equal_across_shapes() -> None:
    moment = datetime(2026, 1, 1, 12, 0, 0, 250000, tzinfo=UTC)
    millis = int(moment.timestamp() * 1000)

    assert timestamps_equal(moment, "2026-01-01T12:00:00.250000Z")
    assert timestamps_equal(moment, millis)
    assert timestamps_equal(
        {"seconds": int(moment.timestamp()), "nanoseconds": 250_000_000}, moment
    )
    assert timestamps_equal({"seconds": 10, "nanoseconds": 5}, {"seconds": 10, "nanoseconds": 5})
    assert not timestamps_equal({"seconds": 10, "nanoseconds": 5}, {"seconds": 10, "nanoseconds": 6})
    assert not timestamps_equal(moment, None)
    assert not timestamps_equal("not a date", "not a date")


def test_non_finite_timestamps_never_match() -> None:
    assert timestamps_equal(float("nan"), float("nan")) is False
    assert timestamps_equal(float("inf"), 1.0) is False
    assert timestamps_equal({"seconds": float("nan"), "nanoseconds": 0}, 0) is False
