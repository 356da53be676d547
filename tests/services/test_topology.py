# tests/services/test_topology.py
"""Tests for group topology resolution."""

import pytest

from message_retraction.services.deletion import FailedPrecondition, NotFound, paths
from message_retraction.services.deletion.topology import resolve_group


def test_missing_aggregate_is_not_found(store) -> None:
    with pytest.raises(NotFound):
        resolve_group(store, "g1")


def test_resolves_creator_members_and_moderators(store) -> None:
    paths.group_aggregate(store, "g1").set(
        {
            "createdBy": "alice",
            "participants": {"participantIds": ["alice", "bob"]},
            "admin_ids": ["carol"],
        }
    )
    group = resolve_group(store, "g1")
    assert group.creator_id == "alice"
    assert group.participant_ids == ("alice", "bob")
    assert group.moderator_ids == ("carol",)
    assert group.aggregate.path == "EventChats/g1"


def test_creator_falls_back_to_source_event(store) -> None:
    paths.group_aggregate(store, "g1").set({"participantIds": ["bob"]})
    paths.group_source_event(store, "g1").set({"createdBy": " dave "})
    assert resolve_group(store, "g1").creator_id == "dave"


def test_no_creator_anywhere_fails_precondition(store) -> None:
    paths.group_aggregate(store, "g1").set({"participantIds": ["bob"]})
    with pytest.raises(FailedPrecondition):
        resolve_group(store, "g1")

    paths.group_source_event(store, "g1").set({"title": "no owner"})
    with pytest.raises(FailedPrecondition):
        resolve_group(store, "g1")
