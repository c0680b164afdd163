"""
Exception hierarchy for the study assistant.
"""


class NisuError(Exception):
    """Base class for all study assistant errors."""


class MalformedTaskError(NisuError, ValueError):
    """A task descriptor is missing its id or kind."""


class NotAuthenticatedError(NisuError):
    """No identity token is stored; the student has to sign in."""


class ApiError(NisuError):
    """The backend answered with an error or could not be reached."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class UnauthorizedError(ApiError):
    """The backend rejected the identity token (expired or malformed)."""


class TransportError(ApiError):
    """The request never produced an HTTP response."""
