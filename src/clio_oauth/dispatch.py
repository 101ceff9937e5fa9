"""Request dispatch: query/body encoding, bearer header, error interpretation."""

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping
from urllib.parse import urlencode

from .config import ClioConfig
from .errors import NotAuthorizedError, RemoteApiError, TokenExpired
from .tokens import TokenStore
from .transport import HttpTransport, TransportResponse

TOKEN_EXPIRED_DESCRIPTION = "Token already expired"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded;charset=UTF-8"
METHODS = ("GET", "POST")


@dataclass(frozen=True)
class RequestSpec:
    url: str
    parameters: Mapping[str, str] = field(default_factory=dict)
    method: str = "GET"
    requires_auth: bool = True

    def __post_init__(self):
        if self.method not in METHODS:
            raise ValueError(f"Unsupported method: {self.method}. Use 'GET' or 'POST'.")


@dataclass(frozen=True)
class Success:
    payload: bytes


@dataclass(frozen=True)
class Refreshed:
    """The access token expired and was refreshed; the request should be sent again."""


DispatchResult = Success | Refreshed


def _error_body(response: TransportResponse) -> dict:
    try:
        data = json.loads(response.raw_body or b"null")
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class RequestDispatcher:
    """Sends one request and turns the transport result into a ``DispatchResult``.

    ``on_token_expired`` is called with the access token that was rejected;
    the client wires it to ``TokenManager.refresh``.
    """

    def __init__(
        self,
        config: ClioConfig,
        transport: HttpTransport,
        tokens: TokenStore,
        on_token_expired: Callable[[str | None], None] | None = None,
        logger: logging.Logger | None = None,
    ):
        self.config = config
        self.transport = transport
        self.tokens = tokens
        self.on_token_expired = on_token_expired
        self.logger = logger or logging.getLogger(__name__)

    def build_headers(self, spec: RequestSpec, access_token: str | None) -> dict[str, str]:
        headers = {
            "User-Agent": self.config.app_user_agent,
            "Content-Type": FORM_CONTENT_TYPE,
        }
        if spec.requires_auth:
            headers["Authorization"] = f"bearer {access_token}"
        return headers

    def dispatch(self, spec: RequestSpec, allow_refresh: bool = True) -> DispatchResult:
        """Send ``spec`` once.

        Returns:
            ``Success`` with the raw payload, or ``Refreshed`` when the token
            had expired and has been refreshed.

        Raises:
            NotAuthorizedError: If an authenticated request has no access token.
            TokenExpired: If the token expired and ``allow_refresh`` is false.
            RemoteApiError: For any other non-2xx response.
            TransportFailure: If the transport could not reach the server.
            AuthError: If refreshing the expired token failed.
        """
        url = spec.url
        body = ""
        if spec.parameters:
            encoded = urlencode(spec.parameters)
            if spec.method == "GET":
                url = f"{url}{'&' if '?' in url else '?'}{encoded}"
            else:
                body = encoded

        access_token = None
        if spec.requires_auth:
            access_token = self.tokens.access_token
            if not access_token:
                raise NotAuthorizedError(
                    "No access token; exchange an authorization code first."
                )

        self.logger.debug("%s %s", spec.method, spec.url)
        response = self.transport.request(
            url, self.build_headers(spec, access_token), spec.method, body
        )
        if response.success:
            return Success(response.payload or b"")

        error = _error_body(response)
        if spec.requires_auth and error.get("error_description") == TOKEN_EXPIRED_DESCRIPTION:
            if not allow_refresh or self.on_token_expired is None:
                raise TokenExpired(f"Access token rejected by {spec.url}")
            self.logger.info("Access token expired, refreshing")
            self.on_token_expired(access_token)
            return Refreshed()

        raise RemoteApiError(
            response.error_code or 0,
            error.get("error_description") or error.get("error") or response.raw_body.decode(errors="replace"),
            response.raw_body,
        )
