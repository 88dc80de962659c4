"""Find the pod running a control plane component."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Optional

from kubeplane.config import AutodiscoverControlPlane


class DiscoveryError(Exception):
    """Discovery failed for reasons unrelated to whether a pod exists."""


class PodNotFoundError(LookupError):
    """No pod matched the autodiscovery configuration."""


@dataclass
class Pod:
    """The parts of a pod that discovery needs."""

    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    node_name: str = ""


_NAME_RE = re.compile(r"^([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]$")
_PREFIX_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")


def _valid_key(key: str) -> bool:
    prefix, slash, name = key.rpartition("/")
    if slash and (not prefix or len(prefix) > 253 or not _PREFIX_RE.match(prefix)):
        return False
    return 0 < len(name) <= 63 and bool(_NAME_RE.match(name))


def _valid_value(value: str) -> bool:
    return value == "" or (len(value) <= 63 and bool(_NAME_RE.match(value)))


def parse_selector(selector: str) -> dict[str, str]:
    """Turn a ``key=value,key=value`` selector into a label map; raise ValueError if invalid."""
    labels: dict[str, str] = {}
    if not selector:
        return labels
    for pair in selector.split(","):
        parts = pair.split("=")
        if len(parts) != 2:
            raise ValueError(f"invalid selector: {selector}")
        key, value = parts[0].strip(), parts[1].strip()
        if not _valid_key(key):
            raise ValueError(f"invalid label key {key!r}")
        if not _valid_value(value):
            raise ValueError(f"invalid label value {value!r}")
        labels[key] = value
    return labels


class ControlplanePodDiscoverer:
    """Discovers control plane pods among the pods listed per namespace."""

    def __init__(
        self,
        pod_listers: Mapping[str, Iterable[Pod]],
        node_name: str = "",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.pod_listers = pod_listers
        self.node_name = node_name
        self.logger = logger or logging.getLogger(__name__)

    def discover(self, autodiscover: AutodiscoverControlPlane) -> Pod:
        """Return the first pod matching namespace, selector and, if asked, node."""
        pods = self.pod_listers.get(autodiscover.namespace)
        if pods is None:
            raise DiscoveryError(f"pod lister for namespace: {autodiscover.namespace} not found")

        try:
            wanted = parse_selector(autodiscover.selector)
        except ValueError as err:
            raise DiscoveryError(f'invalid selector "{autodiscover.selector}": {err}') from err

        matching = [
            pod for pod in pods if all(pod.labels.get(k) == v for k, v in wanted.items())
        ]
        self.logger.debug('%d pods found with labels "%s"', len(matching), autodiscover.selector)

        for pod in matching:
            if autodiscover.match_node and pod.node_name != self.node_name:
                self.logger.debug("Discarding pod: %s running outside the node", pod.name)
                continue
            return pod

        raise PodNotFoundError("pod not found")