"""Clio OAuth token lifecycle: authorization URL, code exchange, and refresh.

The flow, in short:

    1. Send the user to ``authorization_url()``; after approval the
       authorization server redirects to ``<redirect_uri>?code=...``.
    2. ``exchange_code(code)`` trades the code for an access token and a
       refresh token.
    3. Authenticated calls send ``Authorization: bearer <access_token>``.
    4. When the API answers "Token already expired", ``refresh()`` trades
       the refresh token for a new access token.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import parse_qs, urlencode, urlparse

from .config import ClioConfig
from .dispatch import RequestDispatcher, RequestSpec, Success
from .errors import AuthError, ClioError
from .tokens import Token, TokenStore

RefreshListener = Callable[[dict[str, Any]], None]


@dataclass(frozen=True)
class CallbackResult:
    code: str
    state: str | None = None


def parse_callback_url(url: str) -> CallbackResult:
    """Extract the authorization code from the URL the user was redirected to.

    Raises:
        AuthError: If the redirect reports an error (e.g. ``access_denied``)
            or carries no code.
    """
    params = parse_qs(urlparse(url).query)
    state = params.get("state", [None])[0]
    code = params.get("code", [None])[0]
    if not code:
        error = params.get("error", ["unknown"])[0]
        desc = params.get("error_description", [error])[0]
        raise AuthError(f"Authorization failed: {desc}")
    return CallbackResult(code=code, state=state)


class TokenManager:
    """Obtains and refreshes tokens, keeping ``tokens`` up to date.

    Usage:
        manager = TokenManager(config, dispatcher, tokens)
        url = manager.authorization_url(state="xyz")
        manager.exchange_code(code)      # populates the token store
        manager.refresh()                # new access token, same refresh token
    """

    def __init__(
        self,
        config: ClioConfig,
        dispatcher: RequestDispatcher,
        tokens: TokenStore,
        logger: logging.Logger | None = None,
    ):
        self.config = config
        self.dispatcher = dispatcher
        self.tokens = tokens
        self.logger = logger or logging.getLogger(__name__)
        self._listeners: list[RefreshListener] = []

    def authorization_url(self, redirect_uri: str | None = None, state: str | None = None) -> str:
        params = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": redirect_uri or self.config.app_redirect_uri,
        }
        if state:
            params["state"] = state
        return f"{self.config.authorize_url}?{urlencode(params)}"

    def add_refresh_listener(self, listener: RefreshListener) -> None:
        """Register ``listener`` to be called with the token payload after each refresh."""
        self._listeners.append(listener)

    def remove_refresh_listener(self, listener: RefreshListener) -> None:
        self._listeners.remove(listener)

    def _request_token(self, parameters: dict[str, str]) -> dict[str, Any]:
        spec = RequestSpec(
            url=self.config.token_url,
            parameters={
                **parameters,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
            method="POST",
            requires_auth=False,
        )
        grant_type = parameters["grant_type"]
        try:
            result = self.dispatcher.dispatch(spec)
        except ClioError as e:
            self.logger.error("Token request (%s) failed: %s", grant_type, e)
            raise AuthError(f"Token request ({grant_type}) failed: {e}") from e

        if not isinstance(result, Success):
            self.logger.error("Token request (%s) returned %r", grant_type, result)
            raise AuthError(f"Unexpected token response ({grant_type}): {result!r}")
        try:
            data = json.loads(result.payload)
        except ValueError as e:
            self.logger.error("Token response (%s) is not JSON", grant_type)
            raise AuthError(f"Token response ({grant_type}) is not JSON") from e
        if not isinstance(data, dict) or not data.get("access_token"):
            self.logger.error("Token response (%s) has no access_token", grant_type)
            raise AuthError(f"No access_token in response: {data}")
        return data

    def exchange_code(self, code: str, redirect_uri: str | None = None) -> Token:
        """Exchange an authorization code for access + refresh tokens.

        Returns:
            The new token, which also replaces the stored one.

        Raises:
            AuthError: If the token endpoint could not be reached or refused the code.
        """
        data = self._request_token({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri or self.config.app_redirect_uri,
        })
        token = Token.from_response(data)
        self.tokens.set(token)
        self.logger.info("Authorization code exchanged for an access token")
        return token

    def refresh(self, stale_access_token: str | None = None) -> None:
        """Exchange the stored refresh token for a new access token.

        If ``stale_access_token`` is given and the stored access token is
        already different, another caller refreshed it meanwhile and nothing
        is sent.

        Raises:
            AuthError: If there is no refresh token or the refresh was refused.
                The stored token is left untouched.
        """
        with self.tokens.lock:
            current = self.tokens.token
            if (
                stale_access_token is not None
                and current is not None
                and current.access_token != stale_access_token
            ):
                self.logger.debug("Access token already refreshed by another caller")
                return
            if current is None or not current.refresh_token:
                self.logger.error("Cannot refresh access token: no refresh token")
                raise AuthError("No refresh token available")

            data = self._request_token({
                "grant_type": "refresh_token",
                "refresh_token": current.refresh_token,
                "redirect_uri": self.config.app_redirect_uri,
            })
            self.tokens.update(data)

        self.logger.info("Access token refreshed")
        for listener in list(self._listeners):
            try:
                listener(data)
            except Exception:
                self.logger.exception("Token refresh listener %r failed", listener)
