"""
Error taxonomy shared by the services and the HTTP layer.
"""

from typing import Optional

from fastapi import status


class LibraryError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LibraryError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(LibraryError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(LibraryError):
    """Caller is not allowed to touch the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(LibraryError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UploadFailed(LibraryError):
    """Object storage rejected or never answered an upload."""

    default_message = "Failed to upload asset."


class PersistenceError(LibraryError):
    """The document store rejected a read or a write."""

    default_message = "Database error"
