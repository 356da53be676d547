"""Error taxonomy for message retraction.

Every failure the caller can observe is a :class:`DeletionError` carrying a
stable `code` tag and the HTTP status the API maps it to.
"""

from fastapi import status


class DeletionError(Exception):
    """Base class for structured retraction failures."""

    code = "internal"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class Unauthenticated(DeletionError):
    """No caller identity was supplied."""

    code = "unauthenticated"
    http_status = status.HTTP_401_UNAUTHORIZED


class InvalidArgument(DeletionError):
    """The request is malformed; raised before any store read."""

    code = "invalid-argument"
    http_status = status.HTTP_400_BAD_REQUEST


class NotFound(DeletionError):
    """The group conversation does not exist."""

    code = "not-found"
    http_status = status.HTTP_404_NOT_FOUND


class FailedPrecondition(DeletionError):
    """Stored data is inconsistent (no group creator, message without sender)."""

    code = "failed-precondition"
    http_status = status.HTTP_412_PRECONDITION_FAILED


class PermissionDenied(DeletionError):
    """The caller may not delete this message."""

    code = "permission-denied"
    http_status = status.HTTP_403_FORBIDDEN


class Internal(DeletionError):
    """Unexpected failure while validating, authorizing or soft-deleting."""
