"""Exceptions raised by the Clio client."""


class ClioError(Exception):
    """Base class for every error raised by this package."""


class TransportFailure(ClioError):
    """The HTTP request could not be performed (connection, DNS, timeout...)."""


class RemoteApiError(ClioError):
    """The API answered with a non-2xx status."""

    def __init__(self, status_code: int, description: str, body: bytes = b""):
        super().__init__(f"HTTP {status_code}: {description}")
        self.status_code = status_code
        self.description = description
        self.body = body


class TokenExpired(ClioError):
    """The access token expired and no further refresh is allowed for this call."""


class AuthError(ClioError):
    """Authorization code exchange or token refresh failed."""


class NotAuthorizedError(AuthError):
    """An authenticated request was attempted without an access token."""


class ResponseDecodeError(ClioError):
    """A successful response did not contain valid JSON."""
