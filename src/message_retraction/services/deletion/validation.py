"""Boundary validation for retraction requests. Performs no store reads."""

from __future__ import annotations

from dataclasses import dataclass

from message_retraction.schemas.deletion import DeleteMessageRequest

from .errors import InvalidArgument, Unauthenticated

PATH_SEPARATOR = "/"


@dataclass(frozen=True)
class ValidatedRequest:
    """A request whose identifiers are safe to use as store path segments."""

    caller_id: str
    conversation_id: str
    message_id: str
    group_id: str | None = None

    @property
    def is_group(self) -> bool:
        return self.group_id is not None


def group_id_from(conversation_id: str, group_prefix: str) -> str | None:
    """Return the group id of a group conversation id, or None for direct ones."""
    if group_prefix and conversation_id.startswith(group_prefix):
        return conversation_id[len(group_prefix):].strip()
    return None


def validate_request(
    caller_id: str | None,
    request: DeleteMessageRequest,
    group_prefix: str,
) -> ValidatedRequest:
    """Check the caller and identifiers of a retraction request.

    Raises:
        Unauthenticated: If there is no caller identity
        InvalidArgument: On empty identifiers, path separators, a
            conversation with oneself, or a group id that is empty
    """
    caller = (caller_id or "").strip()
    if not caller:
        raise Unauthenticated("Caller is not authenticated")

    conversation_id = request.conversation_id.strip()
    message_id = request.message_id.strip()
    if not conversation_id or not message_id:
        raise InvalidArgument("conversationId and messageId are required")

    if PATH_SEPARATOR in conversation_id or PATH_SEPARATOR in message_id:
        raise InvalidArgument("Identifiers must not contain path separators")

    if conversation_id == caller:
        raise InvalidArgument("Cannot address a conversation with yourself")

    group_id = group_id_from(conversation_id, group_prefix)
    if group_id is not None and not group_id:
        raise InvalidArgument("Group id is empty")

    return ValidatedRequest(
        caller_id=caller,
        conversation_id=conversation_id,
        message_id=message_id,
        group_id=group_id,
    )
