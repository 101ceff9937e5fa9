"""HTTP transport: the single network boundary of the client."""

import logging
from dataclasses import dataclass
from typing import Mapping, Protocol

import httpx

from .errors import TransportFailure

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class TransportResponse:
    """Outcome of one HTTP request: a success payload or an error code plus raw body."""

    success: bool
    payload: bytes | None = None
    error_code: int | None = None
    raw_body: bytes = b""

    @classmethod
    def ok(cls, payload: bytes) -> "TransportResponse":
        return cls(success=True, payload=payload)

    @classmethod
    def failed(cls, error_code: int, raw_body: bytes = b"") -> "TransportResponse":
        return cls(success=False, error_code=error_code, raw_body=raw_body)


class HttpTransport(Protocol):
    def request(
        self, url: str, headers: Mapping[str, str], method: str, body: str
    ) -> TransportResponse: ...


class HttpxTransport:
    """Blocking transport backed by ``httpx``.

    Raises:
        TransportFailure: If the request never produced an HTTP response.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.timeout = timeout

    def request(
        self, url: str, headers: Mapping[str, str], method: str, body: str
    ) -> TransportResponse:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(
                    method,
                    url,
                    headers=dict(headers),
                    content=body.encode() if body else None,
                )
        except httpx.RequestError as e:
            logger.debug("%s %s failed: %s", method, url, e)
            raise TransportFailure(f"{method} {url} failed: {e}") from e

        if response.is_success:
            return TransportResponse.ok(response.content)
        return TransportResponse.failed(response.status_code, response.content)
