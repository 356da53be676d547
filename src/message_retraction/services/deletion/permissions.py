"""Per-request authorization for retracting a message."""

from __future__ import annotations

import logging
from enum import Enum

from .errors import PermissionDenied
from .topology import GroupTopology

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Roles derived for a single request; never persisted."""

    AUTHOR = "author"
    CREATOR = "creator"
    MODERATOR = "moderator"
    PARTICIPANT = "participant"
    NON_MEMBER = "non_member"


_MAY_DELETE_ANY = frozenset({Role.AUTHOR, Role.CREATOR, Role.MODERATOR})
_IS_MEMBER = frozenset({Role.PARTICIPANT, Role.CREATOR, Role.MODERATOR})


def group_roles(caller_id: str, sender_id: str, group: GroupTopology) -> frozenset[Role]:
    """Return every role `caller_id` holds for a message sent by `sender_id`."""
    roles: set[Role] = set()
    if caller_id == sender_id:
        roles.add(Role.AUTHOR)
    if caller_id == group.creator_id:
        roles.add(Role.CREATOR)
    if caller_id in group.moderator_ids:
        roles.add(Role.MODERATOR)
    if not roles & {Role.CREATOR, Role.MODERATOR}:
        roles.add(Role.PARTICIPANT if caller_id in group.participant_ids else Role.NON_MEMBER)
    return frozenset(roles)


def authorize_group_delete(
    caller_id: str,
    sender_id: str,
    group: GroupTopology,
    message_id: str,
) -> frozenset[Role]:
    """Apply the membership gate, then the role gate.

    The membership gate only applies when the group records its members.

    Raises:
        PermissionDenied: If either gate rejects the caller
    """
    roles = group_roles(caller_id, sender_id, group)

    if group.participant_ids and not roles & _IS_MEMBER:
        logger.warning(
            "Denied retraction of %s in group %s: %s is not a member",
            message_id,
            group.group_id,
            caller_id,
        )
        raise PermissionDenied("Not allowed to delete this message")

    if not roles & _MAY_DELETE_ANY:
        logger.warning(
            "Denied retraction of %s in group %s: %s lacks a role over sender %s",
            message_id,
            group.group_id,
            caller_id,
            sender_id,
        )
        raise PermissionDenied("Not allowed to delete this message")

    return roles


def authorize_direct_delete(caller_id: str, sender_id: str, peer_id: str, message_id: str) -> None:
    """Only the author may retract a direct message for both sides.

    Raises:
        PermissionDenied: If the caller did not send the message
    """
    if sender_id != caller_id:
        logger.warning(
            "Denied retraction of %s with %s: %s is not the author (sender=%s)",
            message_id,
            peer_id,
            caller_id,
            sender_id or "<none>",
        )
        raise PermissionDenied("Only the author can delete for everyone")
