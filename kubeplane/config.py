"""Configuration of control plane components and the endpoints they are scraped from."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class MTLS:
    """Location of the secret holding the client certificates for mutual TLS."""

    tls_secret_name: str = ""
    tls_secret_namespace: str = ""


@dataclass
class Auth:
    """Authentication used for an endpoint: "bearer" or "mTLS"."""

    type: str = ""
    mtls: Optional[MTLS] = None


@dataclass
class Endpoint:
    """An endpoint exposing metrics of a control plane component."""

    url: str = ""
    insecure_skip_verify: bool = False
    auth: Optional[Auth] = None


@dataclass
class AutodiscoverControlPlane:
    """How to find a component's pod and which endpoints to try once it is found."""

    namespace: str = ""
    selector: str = ""
    match_node: bool = False
    endpoints: list[Endpoint] = field(default_factory=list)


@dataclass
class ControlPlaneComponent:
    """Settings of one control plane component."""

    enabled: bool = False
    autodiscover: list[AutodiscoverControlPlane] = field(default_factory=list)
    static_endpoint: Optional[Endpoint] = None


@dataclass
class ControlPlane:
    """Settings of the whole control plane scraping."""

    enabled: bool = False
    timeout: Optional[float] = None
    retries: int = 0
    etcd: ControlPlaneComponent = field(default_factory=ControlPlaneComponent)
    api_server: ControlPlaneComponent = field(default_factory=ControlPlaneComponent)
    controller_manager: ControlPlaneComponent = field(default_factory=ControlPlaneComponent)
    scheduler: ControlPlaneComponent = field(default_factory=ControlPlaneComponent)