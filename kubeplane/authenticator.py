"""Build authenticated HTTP sessions for control plane endpoints."""

from __future__ import annotations

import logging
import ssl
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from requests.auth import AuthBase

from kubeplane.config import MTLS, Endpoint

SECRET_TYPE_OPAQUE = "Opaque"
SECRET_TYPE_TLS = "kubernetes.io/tls"

_MTLS_AUTH = "mtls"
_BEARER_AUTH = "bearer"


class AuthenticationError(Exception):
    """An authenticated session could not be built for an endpoint."""


@dataclass
class Secret:
    """A secret holding certificate data."""

    name: str
    data: dict[str, bytes] = field(default_factory=dict)
    type: str = SECRET_TYPE_OPAQUE


@dataclass(frozen=True)
class _KeyNames:
    cert: str
    key: str
    ca: str


# Older secrets are Opaque with these keys; TLS secrets use the standard names.
_OPAQUE_KEYS = _KeyNames(cert="cert", key="key", ca="cacert")
_TLS_KEYS = _KeyNames(cert="tls.crt", key="tls.key", ca="ca.crt")


@dataclass
class _CertificatesData:
    cert: bytes
    key: bytes
    ca: Optional[bytes]


class _BearerTokenFileAuth(AuthBase):
    """Adds the token read from a file as a bearer Authorization header."""

    def __init__(self, path: str) -> None:
        self._path = Path(path)

    def __call__(self, request):
        token = self._path.read_text().strip()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        return request


class _SSLContextAdapter(HTTPAdapter):
    """An adapter that opens every connection with a given SSL context."""

    def __init__(self, ssl_context: ssl.SSLContext, **kwargs) -> None:
        self._ssl_context = ssl_context
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs["ssl_context"] = self._ssl_context
        return super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        proxy_kwargs["ssl_context"] = self._ssl_context
        return super().proxy_manager_for(proxy, **proxy_kwargs)


def _build_ssl_context(certs: _CertificatesData, insecure: bool) -> ssl.SSLContext:
    if certs.ca is not None and insecure:
        raise AuthenticationError(
            "creating the round tripper: specifying a root certificates file "
            "with the insecure flag is not allowed"
        )
    try:
        if certs.ca is not None:
            context = ssl.create_default_context(cadata=certs.ca.decode("ascii"))
        else:
            context = ssl.create_default_context()
        with tempfile.TemporaryDirectory() as directory:
            cert_path = Path(directory) / "tls.crt"
            key_path = Path(directory) / "tls.key"
            cert_path.write_bytes(certs.cert)
            key_path.write_bytes(certs.key)
            context.load_cert_chain(str(cert_path), str(key_path))
    except (ssl.SSLError, OSError, ValueError) as err:
        raise AuthenticationError(f"creating the round tripper: {err}") from err
    if insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class K8sClientAuthenticator:
    """Builds sessions supporting anonymous, bearer token and mTLS authentication.

    ``secret_listers`` maps a namespace to the secrets of that namespace, by name.
    """

    def __init__(
        self,
        secret_listers: Optional[Mapping[str, Mapping[str, Secret]]] = None,
        bearer_token_file: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.secret_listers = secret_listers or {}
        self.bearer_token_file = bearer_token_file
        self.logger = logger or logging.getLogger(__name__)

    def authenticated_transport(self, endpoint: Endpoint) -> requests.Session:
        """Return a session configured to reach the endpoint as its config requires."""
        insecure = endpoint.insecure_skip_verify
        session = requests.Session()
        session.verify = not insecure
        auth = endpoint.auth

        if auth is None:
            self.logger.debug(
                'No authentication configured for "%s", connection will be attempted anonymously',
                endpoint.url,
            )
        elif auth.type.casefold() == _BEARER_AUTH:
            self.logger.debug('Using kubernetes token to authenticate request to "%s"', endpoint.url)
            if self.bearer_token_file:
                session.auth = _BearerTokenFileAuth(self.bearer_token_file)
        elif auth.type.casefold() == _MTLS_AUTH and auth.mtls is not None:
            self.logger.debug('Using mTLS to authenticate request to "%s"', endpoint.url)
            try:
                certs = self._certificates_from_secret(auth.mtls)
            except AuthenticationError as err:
                raise AuthenticationError(
                    f'could not load TLS configuration for endpoint "{endpoint.url}": {err}'
                ) from err
            if certs.ca is None and not insecure:
                raise AuthenticationError(
                    f'insecureSkipVerify is false and CA cert is missing from secret "{endpoint.url}"'
                )
            session.mount("https://", _SSLContextAdapter(_build_ssl_context(certs, insecure)))
        else:
            raise AuthenticationError(f'unknown authorization type "{auth.type}"')

        return session

    def _certificates_from_secret(self, mtls: MTLS) -> _CertificatesData:
        if not mtls.tls_secret_name:
            raise AuthenticationError("mTLS secret name cannot be empty")
        if not mtls.tls_secret_namespace:
            raise AuthenticationError("mTLS secret namespace cannot be empty")

        secrets = self.secret_listers.get(mtls.tls_secret_namespace)
        if secrets is None:
            raise AuthenticationError(
                f'could not find secret lister for namespace "{mtls.tls_secret_namespace}"'
            )

        self.logger.debug(
            'Getting TLS certs from secret "%s" on namespace "%s"',
            mtls.tls_secret_name,
            mtls.tls_secret_namespace,
        )
        secret = secrets.get(mtls.tls_secret_name)
        if secret is None:
            raise AuthenticationError(
                f'could not find secret "{mtls.tls_secret_name}" containing TLS configuration'
            )

        names = _OPAQUE_KEYS
        if secret.type == SECRET_TYPE_TLS:
            self.logger.debug(
                'Secret "%s" has type "%s", using standard key names', secret.name, secret.type
            )
            names = _TLS_KEYS

        if names.cert not in secret.data:
            raise AuthenticationError(
                f'could not find TLS certificate in "{names.cert}" field in secret "{secret.name}"'
            )
        if names.key not in secret.data:
            raise AuthenticationError(
                f'could not find TLS key in "{names.key}" field in secret "{secret.name}"'
            )
        ca = secret.data.get(names.ca)
        if ca is None:
            self.logger.debug(
                'CA certificate not found in "%s" field in secret "%s". CA will not be validated.',
                names.ca,
                secret.name,
            )
        return _CertificatesData(cert=secret.data[names.cert], key=secret.data[names.key], ca=ca)