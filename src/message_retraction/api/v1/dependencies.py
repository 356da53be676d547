"""Shared API dependencies for authentication and store access."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from message_retraction.core.security import decode_subject
from message_retraction.core.settings import settings
from message_retraction.db.session import get_db
from message_retraction.services.deletion import MessageDeletionService
from message_retraction.store import DocumentStore

# Missing credentials are reported by the service as `unauthenticated`
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_caller_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Return the caller id from the bearer token, or None if there is none.

    Args:
        credentials: HTTP Bearer token credentials, if any were sent

    Returns:
        The token subject, or None for a missing or invalid token
    """
    if credentials is None:
        return None
    return decode_subject(credentials.credentials)


def get_store(db: SessionDep) -> Generator[DocumentStore, None, None]:
    """Yield a document store bound to the request's session."""
    yield DocumentStore(db, max_batch_operations=settings.store_batch_max_operations)


def get_deletion_service(
    store: Annotated[DocumentStore, Depends(get_store)],
) -> MessageDeletionService:
    """Build the retraction service for this request."""
    return MessageDeletionService.from_settings(store, settings)


# Type aliases for dependencies
CallerIdDep = Annotated[str | None, Depends(get_caller_id)]
StoreDep = Annotated[DocumentStore, Depends(get_store)]
DeletionServiceDep = Annotated[MessageDeletionService, Depends(get_deletion_service)]
