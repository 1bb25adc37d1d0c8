"""
Exceptions raised by the SPARQL gateway client.

Every failed HTTP exchange surfaces as a RequestError subclass:
- RemoteError when the store answered with a JSON body carrying a message
- TransportError when only the status code is known (or no response arrived)

Authentication failures are additionally signalled through the client's
``on_not_authorized`` callback; they are not a separate exception type.
"""
from __future__ import annotations

AUTH_FAILURE_STATUSES = frozenset({401, 403})


class GatewayError(Exception):
    """Base class for all gateway errors."""
    pass


class RequestError(GatewayError):
    """An HTTP exchange with the triple store did not succeed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_auth_failure(self) -> bool:
        """True for 401/403 responses."""
        return self.status_code in AUTH_FAILURE_STATUSES


class TransportError(RequestError):
    """Non-success status without a structured error body, or no response at all."""

    def __init__(self, status_code: int | None = None, message: str | None = None):
        if message is None:
            message = f"Error {status_code}"
        super().__init__(message, status_code)


class RemoteError(RequestError):
    """Non-success status with a JSON error body; carries the server's message."""
    pass


class DecodeError(GatewayError):
    """A response expected to be JSON was malformed or had the wrong shape."""
    pass


def error_message(error: object) -> str:
    """Turn anything raised into a human-readable message."""
    if isinstance(error, str):
        return error
    if isinstance(error, GatewayError):
        return getattr(error, "message", None) or str(error)
    if isinstance(error, BaseException):
        return str(error)
    return f"{error}"
