import pytest
import responses

from kubeplane.authenticator import K8sClientAuthenticator
from kubeplane.config import Auth, Endpoint
from kubeplane.connector import ConnectError, DefaultConnector

PROMETHEUS_PATH = "/metrics"

OK_URL = "http://ok.example.com"
FAIL_URL = "http://fail.example.com"
SKIPPED_URL = "http://skipped.example.com"


def _hits(rsps, base):
    return sum(1 for call in rsps.calls if call.request.url.startswith(base))


def test_connector_probes_endpoints_list():
    endpoints = [
        Endpoint(url=FAIL_URL),
        Endpoint(url=FAIL_URL, auth=Auth(type="bearer")),
        Endpoint(url="http://localhost:1234"),
        Endpoint(url=OK_URL),
        Endpoint(url=SKIPPED_URL),
    ]
    connector = DefaultConnector(K8sClientAuthenticator(), endpoints)

    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.HEAD, OK_URL + PROMETHEUS_PATH, status=200)
        rsps.add(responses.HEAD, FAIL_URL + PROMETHEUS_PATH, status=403)
        rsps.add(responses.HEAD, SKIPPED_URL + PROMETHEUS_PATH, status=403)

        params = connector.connect()

        assert params.url == OK_URL + PROMETHEUS_PATH
        assert _hits(rsps, OK_URL) == 1
        assert _hits(rsps, FAIL_URL) == 2
        assert _hits(rsps, SKIPPED_URL) == 0


def test_connect_keeps_explicit_path_and_timeout():
    connector = DefaultConnector(
        K8sClientAuthenticator(), [Endpoint(url=OK_URL + "/custom")], timeout=2.0
    )
    with responses.RequestsMock() as rsps:
        rsps.add(responses.HEAD, OK_URL + "/custom", status=200)
        params = connector.connect()
    assert params.url == OK_URL + "/custom"
    assert params.timeout == 2.0


def test_connect_replaces_bare_slash_with_metrics_path():
    connector = DefaultConnector(K8sClientAuthenticator(), [Endpoint(url=OK_URL + "/")])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.HEAD, OK_URL + PROMETHEUS_PATH, status=200)
        params = connector.connect()
    assert params.url == OK_URL + PROMETHEUS_PATH


@pytest.mark.parametrize(
    ("endpoints", "message"),
    [
        ([Endpoint(url="https://fail:1234")], "all endpoints in the list failed to respond"),
        ([], "all endpoints in the list failed to respond"),
        ([Endpoint(url="")], "all endpoints in the list failed to respond"),
        ([Endpoint(url=":invalid/url:")], "parsing endpoint url"),
        (
            [Endpoint(url="https://mTLSendpoint:443", auth=Auth(type="mTLS"))],
            "creating HTTP client for endpoint",
        ),
    ],
    ids=[
        "all_probes_fail",
        "no_endpoint_in_the_list",
        "has_empty_url",
        "has_invalid_url_format",
        "fails_to_authenticate",
    ],
)
def test_connect_fails_when(endpoints, message):
    connector = DefaultConnector(K8sClientAuthenticator(), endpoints)
    with responses.RequestsMock(assert_all_requests_are_fired=False):
        with pytest.raises(ConnectError, match=message):
            connector.connect()