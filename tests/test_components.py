from kubeplane.components import (
    Component,
    ComponentName,
    autodiscover_namespaces,
    new_components,
    secret_namespaces,
)
from kubeplane.config import (
    MTLS,
    Auth,
    AutodiscoverControlPlane,
    ControlPlane,
    ControlPlaneComponent,
    Endpoint,
)
from kubeplane.definition import SpecGroup


def _mtls_endpoint(namespace):
    return Endpoint(
        url="https://localhost:2379",
        auth=Auth(type="mTLS", mtls=MTLS(tls_secret_name="etcd-secret", tls_secret_namespace=namespace)),
    )


def test_all_enabled_components_carry_group_label_names():
    control_plane = ControlPlane(
        enabled=True,
        scheduler=ControlPlaneComponent(enabled=True),
        etcd=ControlPlaneComponent(enabled=True),
        controller_manager=ControlPlaneComponent(enabled=True),
        api_server=ControlPlaneComponent(enabled=True),
    )
    components = new_components(control_plane, {})
    assert [c.name.value for c in components] == [
        "scheduler",
        "etcd",
        "controller-manager",
        "api-server",
    ]


def test_new_components_only_enabled_in_fixed_order():
    control_plane = ControlPlane(
        enabled=True,
        api_server=ControlPlaneComponent(enabled=True),
        etcd=ControlPlaneComponent(enabled=False),
        scheduler=ControlPlaneComponent(enabled=True),
        controller_manager=ControlPlaneComponent(enabled=True),
    )
    components = new_components(control_plane, {})
    assert [c.name for c in components] == [
        ComponentName.SCHEDULER,
        ComponentName.CONTROLLER_MANAGER,
        ComponentName.API_SERVER,
    ]


def test_new_components_uses_catalog_and_config():
    static = Endpoint(url="http://localhost:10259")
    autodiscover = [AutodiscoverControlPlane(namespace="kube-system", selector="k8s-app=kube-scheduler")]
    queries = ["scheduler_query"]
    specs = {"scheduler": SpecGroup()}
    control_plane = ControlPlane(
        scheduler=ControlPlaneComponent(enabled=True, autodiscover=autodiscover, static_endpoint=static)
    )
    [component] = new_components(control_plane, {ComponentName.SCHEDULER: (queries, specs)})
    assert component == Component(
        name=ComponentName.SCHEDULER,
        specs=specs,
        queries=queries,
        autodiscover_configs=autodiscover,
        static_endpoint_config=static,
    )


def test_new_components_none_enabled():
    assert new_components(ControlPlane(enabled=True), {}) == []


def test_secret_namespaces_are_distinct_and_skip_empty():
    components = [
        Component(name=ComponentName.ETCD, static_endpoint_config=_mtls_endpoint("secrets-a")),
        Component(
            name=ComponentName.API_SERVER,
            autodiscover_configs=[
                AutodiscoverControlPlane(
                    namespace="kube-system",
                    endpoints=[
                        _mtls_endpoint("secrets-b"),
                        _mtls_endpoint("secrets-a"),
                        Endpoint(url="http://localhost:8080"),
                        Endpoint(url="https://localhost:6443", auth=Auth(type="bearer")),
                        _mtls_endpoint(""),
                    ],
                )
            ],
        ),
    ]
    assert secret_namespaces(components) == ["secrets-a", "secrets-b"]


def test_secret_namespaces_empty_without_mtls():
    components = [Component(name=ComponentName.SCHEDULER, static_endpoint_config=Endpoint(url="http://x"))]
    assert secret_namespaces(components) == []


def test_autodiscover_namespaces_keeps_order_and_skips_empty():
    components = [
        Component(
            name=ComponentName.ETCD,
            autodiscover_configs=[
                AutodiscoverControlPlane(namespace="kube-system"),
                AutodiscoverControlPlane(namespace=""),
            ],
        ),
        Component(
            name=ComponentName.SCHEDULER,
            autodiscover_configs=[AutodiscoverControlPlane(namespace="openshift-kube-scheduler")],
        ),
        Component(name=ComponentName.API_SERVER),
    ]
    assert autodiscover_namespaces(components) == ["kube-system", "openshift-kube-scheduler"]