from unittest.mock import MagicMock

import pytest

from clio_oauth.client import ClioClient
from clio_oauth.config import ClioConfig
from clio_oauth.tokens import Token

EXPIRED_BODY = b'{"error": "invalid_grant", "error_description": "Token already expired"}'


@pytest.fixture
def config():
    return ClioConfig(
        client_id="test_client_id",
        client_secret="test_client_secret",
        api_base_url="https://clio.test",
        app_user_agent="clio-tests",
        app_redirect_uri="https://app.test/callback",
    )


@pytest.fixture
def transport():
    return MagicMock()


@pytest.fixture
def client(config, transport):
    return ClioClient(
        config,
        transport=transport,
        token=Token(access_token="old_access", refresh_token="test_refresh"),
    )
