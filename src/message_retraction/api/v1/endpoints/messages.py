# src/message_retraction/api/v1/endpoints/messages.py
"""Message retraction endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, status

from message_retraction.api.v1.dependencies import CallerIdDep, DeletionServiceDep
from message_retraction.schemas.deletion import DeleteMessageRequest, ErrorResponse

router = APIRouter(prefix="/messages", tags=["messages"])

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    code: {"model": ErrorResponse}
    for code in (
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_412_PRECONDITION_FAILED,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
}

# Clients send loosely typed bodies, so the route takes raw JSON and the
# request model normalizes it; authentication is checked before its contents.
_REQUEST_BODY_DOC = {
    "requestBody": {
        "content": {
            "application/json": {
                "schema": DeleteMessageRequest.model_json_schema(by_alias=True),
            }
        }
    }
}


@router.post("/delete", responses=_ERROR_RESPONSES, openapi_extra=_REQUEST_BODY_DOC)
async def delete_message(
    caller_id: CallerIdDep,
    service: DeletionServiceDep,
    payload: Annotated[Any, Body()] = None,
) -> dict[str, Any]:
    """Delete a message for everyone and repair conversation previews."""
    result = service.delete_message(caller_id, DeleteMessageRequest.from_body(payload))
    return result.to_payload()
