"""OAuth2 client for the Clio marketplace API."""

from .auth import TokenManager, parse_callback_url
from .client import ClioClient
from .config import ClioConfig, EnvSettings
from .errors import (
    AuthError,
    ClioError,
    NotAuthorizedError,
    RemoteApiError,
    ResponseDecodeError,
    TokenExpired,
    TransportFailure,
)
from .tokens import Token, TokenStore
from .transport import HttpxTransport, TransportResponse

__all__ = [
    "AuthError",
    "ClioClient",
    "ClioConfig",
    "ClioError",
    "EnvSettings",
    "HttpxTransport",
    "NotAuthorizedError",
    "RemoteApiError",
    "ResponseDecodeError",
    "Token",
    "TokenExpired",
    "TokenManager",
    "TokenStore",
    "TransportFailure",
    "TransportResponse",
    "parse_callback_url",
]
