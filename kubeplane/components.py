"""Control plane components to be scraped, built from configuration."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from kubeplane.config import Auth, AutodiscoverControlPlane, ControlPlane, Endpoint
from kubeplane.definition import SpecGroup


class ComponentName(str, Enum):
    """Names of the control plane components."""

    SCHEDULER = "scheduler"
    ETCD = "etcd"
    CONTROLLER_MANAGER = "controller-manager"
    API_SERVER = "api-server"


@dataclass
class Component:
    """A control plane component from which metrics are fetched."""

    name: ComponentName
    specs: dict[str, SpecGroup] = field(default_factory=dict)
    queries: list[Any] = field(default_factory=list)
    autodiscover_configs: list[AutodiscoverControlPlane] = field(default_factory=list)
    static_endpoint_config: Optional[Endpoint] = None


def new_components(
    control_plane: ControlPlane,
    catalog: Mapping[ComponentName, tuple[Sequence[Any], Mapping[str, SpecGroup]]],
) -> list[Component]:
    """Return the enabled components, taking queries and specs from ``catalog``."""
    settings = [
        (ComponentName.SCHEDULER, control_plane.scheduler),
        (ComponentName.ETCD, control_plane.etcd),
        (ComponentName.CONTROLLER_MANAGER, control_plane.controller_manager),
        (ComponentName.API_SERVER, control_plane.api_server),
    ]
    components = []
    for name, component in settings:
        if not component.enabled:
            continue
        queries, specs = catalog.get(name, ((), {}))
        components.append(
            Component(
                name=name,
                specs=dict(specs),
                queries=list(queries),
                autodiscover_configs=list(component.autodiscover),
                static_endpoint_config=component.static_endpoint,
            )
        )
    return components


def _secret_namespace(auth: Optional[Auth]) -> str:
    if auth is None or auth.mtls is None:
        return ""
    return auth.mtls.tls_secret_namespace


def secret_namespaces(components: Iterable[Component]) -> list[str]:
    """Return the distinct, sorted namespaces where mTLS secrets are stored."""
    namespaces: set[str] = set()
    for component in components:
        if component.static_endpoint_config is not None:
            namespaces.add(_secret_namespace(component.static_endpoint_config.auth))
        for autodiscover in component.autodiscover_configs:
            namespaces.update(_secret_namespace(e.auth) for e in autodiscover.endpoints)
    namespaces.discard("")
    return sorted(namespaces)


def autodiscover_namespaces(components: Iterable[Component]) -> list[str]:
    """Return the non-empty namespaces of every autodiscovery config, in order."""
    return [
        autodiscover.namespace
        for component in components
        for autodiscover in component.autodiscover_configs
        if autodiscover.namespace
    ]