"""Send integration payloads to the agent over HTTP."""

from __future__ import annotations

import logging
import ssl
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

import requests

DEFAULT_AGENT_FORWARDER_HOST = "localhost"
DEFAULT_AGENT_FORWARDER_PATH = "/v1/data"

_logger = logging.getLogger(__name__)


class SinkError(Exception):
    """The sink could not be created or could not deliver data."""


class CAAppendError(SinkError):
    """No CA certificate could be added to the trust pool."""


@dataclass
class TLSConfig:
    """Client certificate, key and CA used to reach the agent over TLS."""

    enabled: bool = False
    cert_path: str = ""
    key_path: str = ""
    ca_path: str = ""


class _Doer(Protocol):
    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response: ...


class RetryingClient:
    """Retries requests that fail or answer 5xx, with a linearly growing pause.

    ``max_retries`` is the total number of attempts (at least one). The pause after
    attempt ``n`` is ``n * backoff`` seconds. ``log_hook(attempt, message)`` is called
    for every failed attempt.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_retries: int = 3,
        timeout: Optional[float] = None,
        backoff: float = 1.0,
        log_hook: Optional[Callable[[int, str], None]] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.max_retries = max_retries
        self.timeout = timeout
        self.backoff = backoff
        self.log_hook = log_hook

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Perform the request, retrying; return the last response or raise the last error."""
        kwargs.setdefault("timeout", self.timeout)
        attempts = max(1, self.max_retries)
        response: Optional[requests.Response] = None
        last_error: Optional[requests.RequestException] = None

        for attempt in range(1, attempts + 1):
            try:
                response = self.session.request(method, url, **kwargs)
            except requests.RequestException as err:
                response, last_error = None, err
                self._log(attempt, f"{method} {url}: {err}")
            else:
                if response.status_code < 500:
                    return response
                last_error = None
                self._log(attempt, f"{method} {url}: status {response.status_code}")

            if attempt < attempts:
                if response is not None:
                    response.close()
                time.sleep(self.backoff * attempt)

        if response is not None:
            return response
        assert last_error is not None
        raise last_error

    def _log(self, attempt: int, message: str) -> None:
        if self.log_hook is not None:
            self.log_hook(attempt, message)


class HTTPSink:
    """Posts JSON payloads to the agent and expects 204 No Content back."""

    def __init__(self, url: str, client: Optional[_Doer]) -> None:
        if client is None:
            raise SinkError("client cannot be nil")
        if not url:
            raise SinkError("url cannot be empty")
        self.url = url
        self.client = client

    def write(self, data: bytes) -> int:
        """Send ``data`` and return how many bytes were written."""
        payload = bytes(data)
        try:
            response = self.client.request(
                "POST", self.url, data=payload, headers={"Content-Type": "application/json"}
            )
        except requests.RequestException as err:
            raise SinkError(f"performing HTTP request: {err}") from err

        with response:
            try:
                _ = response.content
            except requests.RequestException as err:
                _logger.error("reading body: %s", err)
            if response.status_code != 204:
                raise SinkError(
                    f"unexpected status code: {response.status_code}, expected: 204"
                )
        return len(payload)


def new_tls_session(config: TLSConfig) -> requests.Session:
    """Build a session presenting the client certificate and trusting the given CA."""
    context = ssl.create_default_context()
    try:
        context.load_cert_chain(config.cert_path, config.key_path)
    except (OSError, ssl.SSLError) as err:
        raise SinkError(f"loading client certificates: {err}") from err

    try:
        ca_pem = Path(config.ca_path).read_text()
    except (OSError, UnicodeDecodeError) as err:
        raise SinkError(f"loading CA certificate: {err}") from err

    if "-----BEGIN CERTIFICATE-----" not in ca_pem:
        raise CAAppendError(f'appending certs to pool from "{config.ca_path}"')
    try:
        context.load_verify_locations(cadata=ca_pem)
    except (ssl.SSLError, ValueError) as err:
        raise CAAppendError(f'appending certs to pool from "{config.ca_path}"') from err

    session = requests.Session()
    session.cert = (config.cert_path, config.key_path)
    session.verify = config.ca_path
    return session