"""Error taxonomy shared by the domain layer and the API boundary.

Client-facing errors (`ApiError` subclasses) carry a message that is safe to
return as `{"error": message}`. Everything else is an internal failure: the
boundary logs its detail and answers with a generic 500.
"""

from __future__ import annotations


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = int(status_code)


class ValidationFailed(ApiError):
    status_code = 400


class AuthenticationFailed(ApiError):
    status_code = 401


class NotFound(ApiError):
    status_code = 404


class InternalError(ApiError):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


class HashingError(Exception):
    """The password hashing primitive failed (e.g. an unreadable stored hash)."""


class RepositoryError(Exception):
    """Could not obtain a database connection."""


class PoolExhausted(RepositoryError):
    pass


class ConnectError(RepositoryError):
    pass


class StatementError(Exception):
    """A statement failed while executing on a checked-out connection."""
