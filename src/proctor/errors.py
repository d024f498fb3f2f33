"""
Error taxonomy for the proctored session engine.

Gateway failures are mapped onto these classes so the coordinator can decide
which ones it absorbs (network ladder) and which ones stop the flow.
"""

from typing import Optional


class ProctorError(Exception):
    """Base class for every engine error."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ProctorError):
    """Malformed or missing data (400/422)."""


class NotFoundError(ProctorError):
    """Quiz or attempt id could not be resolved (404)."""


class ConflictError(ProctorError):
    """Uniqueness violation or state conflict on the store (409)."""


class NetworkError(ProctorError):
    """Timeout, unreachable host or 5xx."""


class AuthError(ProctorError):
    """Missing or rejected credentials (401/403). Handled by the auth collaborator."""


class RequestError(ProctorError):
    """Any other 4xx the store answered with."""


class SessionStateError(ProctorError):
    """An operation was called in a state that does not allow it."""


class AttemptClosedError(SessionStateError):
    """The stored attempt for this quiz is already completed or abandoned."""


class FrozenAttemptError(ProctorError):
    """A completed attempt was mutated."""
