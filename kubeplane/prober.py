"""Poll an HTTP endpoint until it answers 200 OK or a deadline passes."""

from __future__ import annotations

import logging
import time
from typing import Optional

import requests


class ProbeTimeoutError(TimeoutError):
    """The probed endpoint did not answer 200 OK before the timeout."""


class _ProbeNotOkError(Exception):
    """A probe attempt got an answer other than 200 OK."""


class Prober:
    """Repeatedly GETs a URL every ``backoff`` seconds for at most ``timeout`` seconds."""

    def __init__(
        self,
        timeout: float,
        backoff: float,
        logger: Optional[logging.Logger] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.backoff = backoff
        self.logger = logger or logging.getLogger(__name__)
        self.session = session or requests.Session()

    def probe(self, url: str) -> None:
        """Block until a GET to ``url`` returns 200; raise ProbeTimeoutError otherwise."""
        start = time.monotonic()
        while True:
            if time.monotonic() - start > self.timeout:
                raise ProbeTimeoutError(f"probe timed out after {self.timeout}s")
            try:
                self._attempt(url)
            except (requests.RequestException, ValueError, _ProbeNotOkError) as err:
                self.logger.debug("%s", err)
                self.logger.debug("Retrying in %ss", self.backoff)
                time.sleep(self.backoff)
                continue
            return

    def _attempt(self, url: str) -> None:
        # A third of the global timeout per request guarantees at least two attempts,
        # so one stuck request cannot eat the whole budget.
        request_timeout = self.timeout / 3
        try:
            response = self.session.get(url, timeout=request_timeout)
        except requests.RequestException as err:
            raise requests.RequestException(
                f"probe attempt to infra agent ({url}) failed: {err}"
            ) from err
        with response:
            if response.status_code != 200:
                raise _ProbeNotOkError(f"probe did not return 200 Ok: {response.status_code}")