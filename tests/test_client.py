"""End-to-end tests for ClioClient endpoint calls and the single refresh retry."""

import logging
from unittest.mock import MagicMock

import pytest

from clio_oauth.client import ClioClient
from clio_oauth.config import ClioConfig
from clio_oauth.errors import AuthError, RemoteApiError, ResponseDecodeError, TransportFailure
from clio_oauth.tokens import Token
from clio_oauth.transport import HttpxTransport, TransportResponse

from .conftest import EXPIRED_BODY

REFRESH_OK = TransportResponse.ok(b'{"token_type": "bearer", "access_token": "new_access"}')


def _calls(transport):
    return [c.args for c in transport.request.call_args_list]


class TestClioClient:
    def test_from_settings(self):
        client = ClioClient.from_settings({"client_id": "id", "client_secret": "secret"})
        assert client.config.client_id == "id"
        assert isinstance(client.dispatcher.transport, HttpxTransport)
        assert client.token is None

    def test_get_user(self, client, transport):
        transport.request.return_value = TransportResponse.ok(b'{"username":"alice"}')

        assert client.get_user("alice") == {"username": "alice"}

        url, headers, method, body = _calls(transport)[0]
        assert url == "https://clio.test/v2/market/user:alice.json"
        assert method == "GET"
        assert headers["Authorization"] == "bearer old_access"

    def test_expired_token_refreshed_and_retried(self, client, transport):
        transport.request.side_effect = [
            TransportResponse.failed(401, EXPIRED_BODY),
            REFRESH_OK,
            TransportResponse.ok(b'{"account": {"firstname": "Test"}}'),
        ]

        assert client.get_private_user_account() == {"account": {"firstname": "Test"}}

        calls = _calls(transport)
        assert len(calls) == 3
        assert calls[1][0] == "https://clio.test/oauth/token"
        assert calls[2][0] == "https://clio.test/v2/market/private/user/account.json"
        assert calls[2][1]["Authorization"] == "bearer new_access"
        assert client.token.access_token == "new_access"
        assert client.token.refresh_token == "test_refresh"

    def test_refresh_failure_returns_none(self, client, transport, caplog):
        transport.request.side_effect = [
            TransportResponse.failed(401, EXPIRED_BODY),
            TransportResponse.failed(400, b'{"error_description": "Invalid refresh token"}'),
        ]

        with caplog.at_level(logging.ERROR):
            assert client.get_user("alice") is None

        assert transport.request.call_count == 2
        assert client.token.access_token == "old_access"
        assert "Invalid refresh token" in caplog.text

    def test_second_expiry_is_not_refreshed_again(self, client, transport):
        transport.request.side_effect = [
            TransportResponse.failed(401, EXPIRED_BODY),
            REFRESH_OK,
            TransportResponse.failed(401, EXPIRED_BODY),
        ]

        assert client.get_user("alice") is None
        assert transport.request.call_count == 3

    def test_remote_error_returns_none(self, client, transport):
        transport.request.return_value = TransportResponse.failed(404, b'{"error_description": "Not found"}')
        assert client.get_user_badges("nobody") is None
        assert transport.request.call_count == 1

    def test_transport_failure_returns_none(self, client, transport, caplog):
        transport.request.side_effect = TransportFailure("connection refused")
        with caplog.at_level(logging.ERROR):
            assert client.get_user_email() is None
        assert len([r for r in caplog.records if r.levelno >= logging.ERROR]) == 1

    def test_invalid_json_returns_none(self, client, transport):
        transport.request.return_value = TransportResponse.ok(b"not json")
        assert client.get_user_name() is None

    def test_not_authorized_returns_none(self, config, transport):
        client = ClioClient(config, transport=transport)
        assert client.get_user("alice") is None
        transport.request.assert_not_called()

    def test_raise_errors(self, config, transport):
        client = ClioClient(config, transport=transport, token=Token("old_access"), raise_errors=True)
        transport.request.return_value = TransportResponse.failed(500, b'{"error_description": "Oops"}')
        with pytest.raises(RemoteApiError, match="Oops"):
            client.get_user("alice")

        transport.request.return_value = TransportResponse.ok(b"<html>")
        with pytest.raises(ResponseDecodeError):
            client.get_user("alice")

    def test_refresh_listener_receives_payload(self, client, transport):
        transport.request.side_effect = [
            TransportResponse.failed(401, EXPIRED_BODY),
            REFRESH_OK,
            TransportResponse.ok(b"[]"),
        ]
        listener = MagicMock()
        client.add_refresh_listener(listener)

        assert client.get_private_user_statement() == []
        listener.assert_called_once_with({"token_type": "bearer", "access_token": "new_access"})

    def test_exchange_code(self, config, transport):
        client = ClioClient(config, transport=transport)
        transport.request.return_value = TransportResponse.ok(b'{"access_token": "a1", "refresh_token": "r1"}')

        token = client.exchange_code("code")

        assert token == Token(access_token="a1", refresh_token="r1")
        assert client.token == token

    def test_exchange_code_failure(self, config, transport):
        client = ClioClient(config, transport=transport)
        transport.request.side_effect = TransportFailure("down")
        assert client.exchange_code("code") is None

        strict = ClioClient(config, transport=transport, raise_errors=True)
        with pytest.raises(AuthError):
            strict.exchange_code("code")

    def test_force_refresh(self, client, transport):
        transport.request.return_value = REFRESH_OK
        token = client.refresh()
        assert token.access_token == "new_access"

    def test_authorization_url(self, client):
        assert client.authorization_url(state="xyz").startswith("https://clio.test/oauth/authorize?response_type=code")


@pytest.mark.parametrize(
    "method, args, path",
    [
        ("get_user", ("collis",), "market/user:collis"),
        ("get_user_name", (), "market/private/user/username"),
        ("get_user_email", (), "market/private/user/email"),
        ("get_user_badges", ("collis",), "market/user-badges:collis"),
        ("get_user_items_by_site", ("collis",), "market/user-items-by-site:collis"),
        ("get_new_files_from_user", ("collis", "themeforest"), "market/new-files-from-user:collis,themeforest"),
        ("get_private_user_account", (), "market/private/user/account"),
        ("get_private_user_earnings_and_sales_by_month", (), "market/private/user/earnings-and-sales-by-month"),
        ("get_private_user_statement", (), "market/private/user/statement"),
        ("get_private_user_recent_sales", (), "market/private/user/recent-sales"),
        ("get_private_user_download_purchase", ("550e8400",), "market/private/user/download-purchase:550e8400"),
        ("get_private_user_verify_purchase", ("550e8400",), "market/private/user/verify-purchase:550e8400"),
        ("get_all_activities", (), "activities"),
    ],
)
def test_endpoint_paths(client, transport, method, args, path):
    transport.request.return_value = TransportResponse.ok(b"{}")
    assert getattr(client, method)(*args) == {}
    url, _, http_method, _ = transport.request.call_args.args
    assert url == f"https://clio.test/v2/{path}.json"
    assert http_method == "GET"


def test_get_all_activities_params(client, transport):
    transport.request.return_value = TransportResponse.ok(b'{"activities": []}')
    client.get_all_activities(type="TimeEntry")
    url = transport.request.call_args.args[0]
    assert url == "https://clio.test/v2/activities.json?type=TimeEntry"


def test_config_is_per_instance():
    a = ClioClient(ClioConfig("a", "s", api_base_url="https://a.test"))
    b = ClioClient(ClioConfig("b", "s", api_base_url="https://b.test"))
    assert a.config.endpoint_url("x") == "https://a.test/v2/x.json"
    assert b.config.endpoint_url("x") == "https://b.test/v2/x.json"
