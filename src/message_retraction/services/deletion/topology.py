"""Resolve who owns and belongs to a group conversation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from message_retraction.store import DocumentReference, DocumentStore

from . import paths
from .errors import FailedPrecondition, NotFound
from .fields import (
    MODERATOR_ID_ALIASES,
    PARTICIPANT_ID_ALIASES,
    as_trimmed_string,
    first_string_list,
)

logger = logging.getLogger(__name__)

CREATOR_FIELD = "createdBy"


@dataclass(frozen=True)
class GroupTopology:
    """Minimal view of a group needed to authorize a retraction."""

    group_id: str
    creator_id: str
    participant_ids: tuple[str, ...]
    moderator_ids: tuple[str, ...]
    aggregate: DocumentReference


def resolve_group(store: DocumentStore, group_id: str) -> GroupTopology:
    """Load the group aggregate and extract creator, members and moderators.

    The creator comes from the aggregate, or from the source event record when
    the aggregate does not carry one.

    Raises:
        NotFound: If the group aggregate does not exist
        FailedPrecondition: If no creator can be determined
    """
    aggregate_ref = paths.group_aggregate(store, group_id)
    aggregate = aggregate_ref.get()
    if not aggregate.exists:
        raise NotFound("Group conversation not found")

    data = aggregate.to_dict() or {}
    participant_ids = first_string_list(data, PARTICIPANT_ID_ALIASES)
    moderator_ids = first_string_list(data, MODERATOR_ID_ALIASES)

    creator_id = as_trimmed_string(data.get(CREATOR_FIELD))
    if not creator_id:
        event = paths.group_source_event(store, group_id).get()
        creator_id = as_trimmed_string(event.get(CREATOR_FIELD)) if event.exists else ""
        if not creator_id:
            logger.error(
                "Group %s has no creator (source event exists=%s)", group_id, event.exists
            )
            raise FailedPrecondition("Group conversation is invalid")

    return GroupTopology(
        group_id=group_id,
        creator_id=creator_id,
        participant_ids=tuple(participant_ids),
        moderator_ids=tuple(moderator_ids),
        aggregate=aggregate_ref,
    )
