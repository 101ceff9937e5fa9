"""Clio API client: endpoint wrappers with one automatic token refresh."""

import json
import logging
from typing import Any

from .auth import RefreshListener, TokenManager
from .config import ClioConfig, SettingsProvider
from .dispatch import Refreshed, RequestDispatcher, RequestSpec
from .errors import ClioError, ResponseDecodeError
from .tokens import Token, TokenStore
from .transport import HttpTransport, HttpxTransport


class ClioClient:
    """Marketplace API client.

    Usage:
        client = ClioClient.from_settings(EnvSettings())
        webbrowser.open(client.authorization_url(state="xyz"))
        client.exchange_code(code)
        user = client.get_user("collis")   # dict, or None on failure

    Failed calls are logged and return ``None``. Pass ``raise_errors=True``
    to get the ``ClioError`` instead.
    """

    def __init__(
        self,
        config: ClioConfig,
        transport: HttpTransport | None = None,
        token: Token | None = None,
        logger: logging.Logger | None = None,
        raise_errors: bool = False,
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.raise_errors = raise_errors
        self.tokens = TokenStore(token)
        self.dispatcher = RequestDispatcher(
            config, transport or HttpxTransport(), self.tokens, logger=self.logger
        )
        self.auth = TokenManager(config, self.dispatcher, self.tokens, logger=self.logger)
        self.dispatcher.on_token_expired = self.auth.refresh

    @classmethod
    def from_settings(cls, settings: SettingsProvider, **kwargs: Any) -> "ClioClient":
        return cls(ClioConfig.from_settings(settings), **kwargs)

    @property
    def token(self) -> Token | None:
        return self.tokens.token

    def authorization_url(self, redirect_uri: str | None = None, state: str | None = None) -> str:
        return self.auth.authorization_url(redirect_uri, state)

    def exchange_code(self, code: str, redirect_uri: str | None = None) -> Token | None:
        try:
            return self.auth.exchange_code(code, redirect_uri)
        except ClioError:
            if self.raise_errors:
                raise
            return None

    def refresh(self) -> Token | None:
        """Force a token refresh."""
        try:
            self.auth.refresh()
        except ClioError:
            if self.raise_errors:
                raise
            return None
        return self.tokens.token

    def add_refresh_listener(self, listener: RefreshListener) -> None:
        self.auth.add_refresh_listener(listener)

    def call(self, path: str, params: dict[str, str] | None = None, method: str = "GET") -> Any:
        """Call an API endpoint and return the decoded JSON.

        An expired access token is refreshed and the request sent once more.
        """
        spec = RequestSpec(
            url=self.config.endpoint_url(path),
            parameters=params or {},
            method=method,
        )
        try:
            result = self.dispatcher.dispatch(spec)
            if isinstance(result, Refreshed):
                result = self.dispatcher.dispatch(spec, allow_refresh=False)
            try:
                return json.loads(result.payload)
            except ValueError as e:
                raise ResponseDecodeError(f"{spec.url} returned invalid JSON") from e
        except ClioError as e:
            self.logger.error("%s %s failed: %s", method, path, e)
            if self.raise_errors:
                raise
            return None

    # User details

    def get_user(self, user_name: str) -> Any:
        """Account details of a user."""
        return self.call(f"market/user:{user_name}")

    def get_user_name(self) -> Any:
        return self.call("market/private/user/username")

    def get_user_email(self) -> Any:
        return self.call("market/private/user/email")

    def get_user_badges(self, user_name: str) -> Any:
        return self.call(f"market/user-badges:{user_name}")

    def get_user_items_by_site(self, user_name: str) -> Any:
        """Number of items an author has for sale on each site."""
        return self.call(f"market/user-items-by-site:{user_name}")

    def get_new_files_from_user(self, user_name: str, site: str) -> Any:
        """The newest 25 files a user uploaded to ``site``."""
        return self.call(f"market/new-files-from-user:{user_name},{site}")

    # Private user details

    def get_private_user_account(self) -> Any:
        """First name, surname, available earnings, deposits, balance and country."""
        return self.call("market/private/user/account")

    def get_private_user_earnings_and_sales_by_month(self) -> Any:
        return self.call("market/private/user/earnings-and-sales-by-month")

    def get_private_user_statement(self) -> Any:
        """The last 100 statement events from the past 28 days."""
        return self.call("market/private/user/statement")

    def get_private_user_recent_sales(self) -> Any:
        """The 50 most recent sales of the user's items."""
        return self.call("market/private/user/recent-sales")

    def get_private_user_download_purchase(self, purchase_code: str) -> Any:
        """Download URL of a purchased item."""
        return self.call(f"market/private/user/download-purchase:{purchase_code}")

    def get_private_user_verify_purchase(self, purchase_code: str) -> Any:
        """Details of a sold item, looked up by purchase code."""
        return self.call(f"market/private/user/verify-purchase:{purchase_code}")

    # Activities

    def get_all_activities(self, **params: str) -> Any:
        return self.call("activities", params)
