"""Exception types raised by the clocker modules."""

from __future__ import annotations


class ClockerError(Exception):
    """Base error for everything the UI reports back to the user."""


class ValidationError(ClockerError):
    """Local input failed a check before any remote call was made."""


class NetworkError(ClockerError):
    """A call to the time-tracking service failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthorizationError(NetworkError):
    """The service rejected our credentials (401/403)."""


class CredentialError(ClockerError):
    """Credentials are missing or could not be verified."""
