"""Clio API configuration: URLs, settings keys, and defaults."""

import os
from dataclasses import dataclass
from typing import Protocol

CLIO_API = "https://app.goclio.com"
CLIO_APP_NAME = "clio-oauth"
CLIO_APP_REDIRECT_URI = ""

AUTHORIZE_PATH = "/oauth/authorize"
TOKEN_PATH = "/oauth/token"
API_VERSION = "v2"
RESPONSE_FORMAT = ".json"

ENV_PREFIX = "CLIO_"


class SettingsProvider(Protocol):
    """Read-only key/value settings source. A plain dict qualifies."""

    def get(self, key: str, default: str = "") -> str: ...


class EnvSettings:
    """Settings read from ``CLIO_<KEY>`` environment variables."""

    def __init__(self, environ: dict | None = None):
        self._environ = os.environ if environ is None else environ

    def get(self, key: str, default: str = "") -> str:
        return self._environ.get(f"{ENV_PREFIX}{key.upper()}", default)


@dataclass(frozen=True)
class ClioConfig:
    """Credentials and endpoints for one client instance."""

    client_id: str
    client_secret: str
    api_base_url: str = CLIO_API
    app_user_agent: str = CLIO_APP_NAME
    app_redirect_uri: str = CLIO_APP_REDIRECT_URI

    @classmethod
    def from_settings(cls, settings: SettingsProvider) -> "ClioConfig":
        return cls(
            client_id=settings.get("client_id", ""),
            client_secret=settings.get("client_secret", ""),
            api_base_url=settings.get("api_base_url", CLIO_API) or CLIO_API,
            app_user_agent=settings.get("app_user_agent", CLIO_APP_NAME) or CLIO_APP_NAME,
            app_redirect_uri=settings.get("app_redirect_uri", CLIO_APP_REDIRECT_URI),
        )

    @property
    def base_url(self) -> str:
        return self.api_base_url.rstrip("/")

    @property
    def token_url(self) -> str:
        return f"{self.base_url}{TOKEN_PATH}"

    @property
    def authorize_url(self) -> str:
        return f"{self.base_url}{AUTHORIZE_PATH}"

    def endpoint_url(self, path: str, fmt: str = RESPONSE_FORMAT) -> str:
        """Build the full URL of an API endpoint, e.g. ``<base>/v2/market/user:collis.json``."""
        return f"{self.base_url}/{API_VERSION}/{path.lstrip('/')}{fmt}"
