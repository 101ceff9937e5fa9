"""CLI for Clio OAuth authorization and API calls."""

import json
import logging
import sys
import webbrowser

import click

from .auth import parse_callback_url
from .client import ClioClient
from .config import EnvSettings
from .errors import ClioError
from .tokens import Token


def _make_client(access_token: str | None = None, refresh_token: str | None = None) -> ClioClient:
    settings = EnvSettings()
    if not settings.get("client_id") or not settings.get("client_secret"):
        click.echo("Error: CLIO_CLIENT_ID and CLIO_CLIENT_SECRET must be set as environment variables.", err=True)
        sys.exit(1)

    token = None
    if access_token or refresh_token:
        token = Token(access_token=access_token or "", refresh_token=refresh_token)
    return ClioClient.from_settings(settings, token=token, raise_errors=True)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2))


def _parse_params(params: tuple[str, ...]) -> dict[str, str]:
    parsed = {}
    for item in params:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {item!r}", param_hint="--param")
        parsed[key] = value
    return parsed


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log requests and token refreshes.")
def cli(verbose: bool) -> None:
    """Clio OAuth CLI — authorize and call the Clio API."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("authorize-url")
@click.option("--state", default=None, help="Opaque value echoed back in the redirect.")
@click.option("--open", "open_browser", is_flag=True, help="Open the URL in a browser.")
def authorize_url(state: str | None, open_browser: bool) -> None:
    """Print the URL the user must visit to grant access."""
    url = _make_client().authorization_url(state=state)
    click.echo(url)
    if open_browser:
        webbrowser.open(url)


@cli.command()
@click.option("--state", default=None, help="Opaque value echoed back in the redirect.")
def login(state: str | None) -> None:
    """Run the authorization flow and print the resulting tokens."""
    client = _make_client()
    url = client.authorization_url(state=state)

    click.echo("Opening browser for Clio authorization...")
    click.echo(f"If the browser doesn't open, visit:\n{url}\n")
    webbrowser.open(url)

    click.echo("After you approve access, you will be redirected.")
    click.echo("Copy the FULL URL from your browser's address bar and paste it here.\n")
    redirect_url = click.prompt("Paste the redirect URL")

    try:
        callback = parse_callback_url(redirect_url)
        if state and callback.state != state:
            click.echo("\nOAuth failed: state mismatch", err=True)
            sys.exit(1)
        click.echo("\nExchanging authorization code for tokens...")
        token = client.exchange_code(callback.code)
    except ClioError as e:
        click.echo(f"\nOAuth failed: {e}", err=True)
        sys.exit(1)

    _echo_json(token.to_dict())


@cli.command()
@click.option("--refresh-token", envvar="CLIO_REFRESH_TOKEN", required=True, help="Refresh token.")
def refresh(refresh_token: str) -> None:
    """Exchange a refresh token for a new access token."""
    client = _make_client(refresh_token=refresh_token)
    try:
        token = client.refresh()
    except ClioError as e:
        click.echo(f"Refresh failed: {e}", err=True)
        sys.exit(1)
    _echo_json(token.to_dict())


@cli.command()
@click.argument("path")
@click.option("--param", "-p", "params", multiple=True, help="key=value parameter, repeatable.")
@click.option("--method", "-X", type=click.Choice(["GET", "POST"]), default="GET")
@click.option("--access-token", envvar="CLIO_ACCESS_TOKEN", required=True, help="Access token.")
@click.option("--refresh-token", envvar="CLIO_REFRESH_TOKEN", default=None, help="Refresh token.")
def call(path: str, params: tuple[str, ...], method: str, access_token: str, refresh_token: str | None) -> None:
    """Call an API endpoint, e.g. ``market/user:collis``, and print the JSON."""
    client = _make_client(access_token=access_token, refresh_token=refresh_token)
    refreshed = []
    client.add_refresh_listener(refreshed.append)
    try:
        data = client.call(path, _parse_params(params), method=method)
    except ClioError as e:
        click.echo(f"Request failed: {e}", err=True)
        sys.exit(1)

    _echo_json(data)
    if refreshed:
        click.echo(f"Access token was refreshed: {refreshed[-1]['access_token']}", err=True)
