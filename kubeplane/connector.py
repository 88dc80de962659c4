"""Probe a list of endpoints and connect to the first one that answers."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from kubeplane.authenticator import AuthenticationError, K8sClientAuthenticator
from kubeplane.config import Endpoint

DEFAULT_METRICS_PATH = "/metrics"


class ConnectError(Exception):
    """No endpoint could be connected to."""


@dataclass
class ConnParams:
    """An endpoint URL with the session and timeout used to scrape it."""

    url: str
    client: requests.Session
    timeout: Optional[float] = None


def _parse_url(url: str) -> str:
    if url.startswith(":"):
        raise ValueError("missing protocol scheme")
    parts = urlsplit(url)
    parts.port  # raises ValueError on a malformed port
    if parts.path.removesuffix("/") == "":
        parts = parts._replace(path=DEFAULT_METRICS_PATH)
    return urlunsplit(parts)


class DefaultConnector:
    """Connects to the first endpoint of a list that answers a HEAD probe with 200."""

    def __init__(
        self,
        authenticator: K8sClientAuthenticator,
        endpoints: Iterable[Endpoint] = (),
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.authenticator = authenticator
        self.endpoints = list(endpoints)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def connect(self) -> ConnParams:
        """Probe the endpoints in order and return how to reach the first working one."""
        for endpoint in self.endpoints:
            self.logger.debug('Configuring endpoint "%s" for probing', endpoint.url)
            try:
                url = _parse_url(endpoint.url)
            except ValueError as err:
                raise ConnectError(f'parsing endpoint url "{endpoint.url}": {err}') from err

            try:
                session = self.authenticator.authenticated_transport(endpoint)
            except AuthenticationError as err:
                raise ConnectError(
                    f'creating HTTP client for endpoint "{endpoint.url}": {err}'
                ) from err

            try:
                self._probe(url, session)
            except (requests.RequestException, OSError, ValueError) as err:
                self.logger.debug('Endpoint "%s" probe failed, skipping: %s', endpoint.url, err)
                continue

            self.logger.debug('Endpoint "%s" probed successfully', endpoint.url)
            return ConnParams(url=url, client=session, timeout=self.timeout)

        raise ConnectError("all endpoints in the list failed to respond")

    def _probe(self, url: str, session: requests.Session) -> None:
        with session.head(url, timeout=self.timeout, allow_redirects=True) as response:
            if response.status_code != 200:
                raise requests.HTTPError(
                    f"http request failed with status: {response.status_code} {response.reason}"
                )