"""Request and response schemas for message retraction."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeleteMessageRequest(BaseModel):
    """Payload asking to delete a message for everyone in a conversation.

    Clients historically sent loosely typed payloads; anything that is not a
    string is treated as missing so the validator reports it uniformly.
    """

    conversation_id: str = Field(
        default="",
        alias="conversationId",
        description="Peer user id, or the group prefix followed by the group id",
    )
    message_id: str = Field(default="", alias="messageId", description="Target message id")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("conversation_id", "message_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    @classmethod
    def from_body(cls, body: Any) -> DeleteMessageRequest:
        """Build a request from an arbitrary decoded JSON body.

        A missing body or one that is not an object yields empty identifiers,
        which validation then rejects as `invalid-argument`.
        """
        if not isinstance(body, Mapping):
            return cls()
        return cls.model_validate(body)


class DeleteMessageResponse(BaseModel):
    """Success payload; optional fields are omitted when unset."""

    ok: bool = True
    status: Literal["missing"] | None = None
    updated_previews: int | None = Field(default=None, alias="updatedPreviews")
    deleted_other: int | None = Field(default=None, alias="deletedOther")
    warnings: list[str] | None = None

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Return the wire representation (camelCase, no null fields)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ErrorResponse(BaseModel):
    """Structured error body returned for every failed request."""

    error: str = Field(..., description="Error tag, e.g. permission-denied")
    detail: str
