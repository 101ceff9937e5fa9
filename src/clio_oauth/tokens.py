"""In-memory token storage for a single client instance."""

import threading
from dataclasses import dataclass, replace
from typing import Any

from .errors import AuthError


@dataclass(frozen=True)
class Token:
    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "Token":
        """Build a token from a token endpoint JSON payload.

        Raises:
            AuthError: If the payload has no access token.
        """
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise AuthError(f"No access_token in response: {data}")
        return cls(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or None,
            token_type=data.get("token_type") or "bearer",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
        }


class TokenStore:
    """Holds the current token; ``lock`` guards read-modify-write sequences."""

    def __init__(self, token: Token | None = None):
        self.lock = threading.RLock()
        self._token = token

    @property
    def token(self) -> Token | None:
        with self.lock:
            return self._token

    @property
    def access_token(self) -> str | None:
        token = self.token
        return token.access_token if token else None

    @property
    def refresh_token(self) -> str | None:
        token = self.token
        return token.refresh_token if token else None

    def set(self, token: Token | None) -> None:
        with self.lock:
            self._token = token

    def clear(self) -> None:
        self.set(None)

    def update(self, data: dict[str, Any]) -> Token:
        """Apply a refresh response to the stored token.

        The access token is always replaced. The refresh token is replaced
        only when the response carries a new one.
        """
        fresh = Token.from_response(data)
        with self.lock:
            if self._token is None:
                self._token = fresh
            else:
                self._token = replace(
                    self._token,
                    access_token=fresh.access_token,
                    token_type=fresh.token_type,
                    refresh_token=fresh.refresh_token or self._token.refresh_token,
                )
            return self._token
