"""Delete-for-everyone for direct and group conversations."""

from .errors import (
    DeletionError,
    FailedPrecondition,
    Internal,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    Unauthenticated,
)
from .service import MessageDeletionService

__all__ = [
    "DeletionError",
    "FailedPrecondition",
    "Internal",
    "InvalidArgument",
    "MessageDeletionService",
    "NotFound",
    "PermissionDenied",
    "Unauthenticated",
]
