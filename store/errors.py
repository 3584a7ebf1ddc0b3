"""
Error kinds raised by the stores and the access control layer.

Every error carries the HTTP status the API responds with, so a single
exception handler can write the error envelope.
"""


class APIError(Exception):
    """Base class for expected failures."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(APIError):
    """Request data broke a validation rule."""
    status_code = 400


class Unauthorized(APIError):
    """Missing, invalid or expired token, or bad credentials."""
    status_code = 401


class Forbidden(APIError):
    """Authenticated, but not the owner of the resource."""
    status_code = 403


class NotFound(APIError):
    """Resource id does not resolve."""
    status_code = 404


class Conflict(APIError):
    """Duplicate email, ISBN or review."""
    status_code = 400


class ServerError(APIError):
    """Unexpected failure."""
    status_code = 500
