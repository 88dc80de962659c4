# kubeplane

Building blocks for scraping Kubernetes control plane components (scheduler,
etcd, controller manager, API server) and turning what they report into
entities and metric sets.

## Installation

```
pip install kubeplane
```

For running the test suite:

```
pip install "kubeplane[test]"
pytest
```

## What is inside

- `kubeplane.definition`: metric specifications. `from_raw`, `transform` and
  `transform_and_filter` build fetch functions over grouped raw metrics
  (`{group label: {entity id: {metric name: value}}}`); a missing group,
  entity or metric raises `FetchError`. `Spec` and `SpecGroup` describe how
  each group is turned into metrics, and a fetch function may return
  `FetchedValues` to set several metrics at once.
  `k8s_metric_set_type_guesser` derives event types such as
  `K8sApiServerSample` from dash separated group labels.
- `kubeplane.sdk`: an in-memory integration model. `Integration.entity`
  returns or creates an `Entity` (raising `EntityError` when name or type is
  empty); `Entity.new_metric_set` creates a `MetricSet` carrying the
  attributes added with `Entity.add_attributes`; `MetricSet.set_metric`
  stores values according to `SourceType` (attributes must be strings,
  gauges numeric, rates and deltas are computed against the previous sample)
  and raises `MetricError` otherwise. `Inventory.set_item` records inventory.
- `kubeplane.populate`: `integration_populator` fills an `Integration` from
  an `IntegrationPopulateConfig` of raw groups and spec groups. It supports
  entity ID and type generators, per-group event type guessers and an
  optional namespace filterer (an object with `is_allowed(namespace)`);
  entities of the `namespace` group are kept and marked with the
  `nrFiltered` attribute instead. Once anything is populated it adds a
  `k8s:cluster` entity with the cluster name and Kubernetes version. It
  returns whether anything was populated and the list of errors.
- `kubeplane.errors`: `ErrorGroup`, an exception bundling recoverable or
  non-recoverable errors, and `PopulateResult`.
- `kubeplane.config`: dataclasses for endpoints (`Endpoint`, `Auth`,
  `MTLS`), autodiscovery (`AutodiscoverControlPlane`) and components
  (`ControlPlaneComponent`, `ControlPlane`).
- `kubeplane.authenticator`: `K8sClientAuthenticator.authenticated_transport`
  returns a `requests.Session` for an endpoint with no auth, a bearer token
  read from a file, or mTLS certificates taken from a `Secret` (Opaque
  secrets with `cert`/`key`/`cacert`, or TLS secrets with
  `tls.crt`/`tls.key`/`ca.crt`). Failures raise `AuthenticationError`.
- `kubeplane.connector`: `DefaultConnector.connect` probes a list of
  endpoints with HEAD requests, adding `/metrics` when a URL has no path,
  and returns `ConnParams` for the first one that answers 200; otherwise it
  raises `ConnectError`.
- `kubeplane.discoverer`: `ControlplanePodDiscoverer.discover` returns the
  first `Pod` matching an autodiscovery config's namespace, label selector
  and, when `match_node` is set, node. It raises `PodNotFoundError` when no
  pod matches and `DiscoveryError` for an unknown namespace or an invalid
  selector. `parse_selector` turns `key=value,...` into a label map.
- `kubeplane.components`: `new_components` lists the enabled components
  (`ComponentName`) with queries and specs taken from a catalog you supply;
  `secret_namespaces` and `autodiscover_namespaces` collect the namespaces
  they need secrets and pods from.
- `kubeplane.prober`: `Prober.probe` polls a URL with GET until it answers
  200, raising `ProbeTimeoutError` once the timeout passes.
- `kubeplane.sink`: `HTTPSink.write` posts JSON payloads and expects
  `204 No Content`, raising `SinkError` otherwise. `RetryingClient` retries
  failed or 5xx requests with a linearly growing pause, and
  `new_tls_session` builds a session for mutual TLS from a `TLSConfig`
  (raising `CAAppendError` when the CA file holds no certificate).

## Example

```python
from kubeplane.definition import from_raw, transform

groups = {"pod": {"web-1": {"cpu": "0.25"}}}
fetch = transform(from_raw("cpu"), float)
print(fetch("pod", "web-1", groups))  # 0.25
```

```python
from kubeplane.definition import k8s_metric_set_type_guesser

print(k8s_metric_set_type_guesser("controller-manager"))
# K8sControllerManagerSample
```

## What it does not do

- There is no command-line program and no long-running collector; the
  pieces are meant to be assembled by your own code.
- It does not talk to the Kubernetes API. Pods for discovery and secrets
  for mTLS are passed in as mappings by namespace.
- It does not fetch or parse Prometheus metrics and ships no metric specs
  or queries for the control plane components; `new_components` takes them
  from the catalog you provide.