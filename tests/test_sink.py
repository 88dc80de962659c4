import json

import pytest
import requests
import responses

from kubeplane.sink import (
    DEFAULT_AGENT_FORWARDER_HOST,
    HTTPSink,
    RetryingClient,
    SinkError,
    TLSConfig,
    new_tls_session,
)

RETRIES = 3
URL = "http://localhost:8001/v1/test/8001"


def _client(timeout=1.0, hook=None):
    return RetryingClient(max_retries=RETRIES, timeout=timeout, backoff=0.0, log_hook=hook)


def test_sink_creation_fails_when_there_is_no_client():
    with pytest.raises(SinkError, match="client cannot be nil"):
        HTTPSink(DEFAULT_AGENT_FORWARDER_HOST, None)


def test_sink_creation_fails_when_there_is_no_url():
    with pytest.raises(SinkError, match="url cannot be empty"):
        HTTPSink("", _client())


def test_sink_writes_data_when_server_returns_204():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=204, body="randomData")
        sink = HTTPSink(URL, _client())
        assert sink.write(b"random data") == len(b"random data")
        request = rsps.calls[0].request
        assert request.headers["Content-Type"] == "application/json"
        assert request.body == b"random data"


def test_sink_writes_data_when_server_returns_5xx_and_then_204():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=503)
        rsps.add(responses.POST, URL, status=503)
        rsps.add(responses.POST, URL, status=204)
        sink = HTTPSink(URL, _client())
        assert sink.write(b"random data") == 11
        assert len(rsps.calls) == 3


def test_sink_fails_when_server_never_returns_204():
    hook_calls = []
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=503)
        sink = HTTPSink(URL, _client(hook=lambda attempt, message: hook_calls.append(attempt)))
        with pytest.raises(SinkError, match="unexpected status code: 503, expected: 204"):
            sink.write(b"random data")
    assert hook_calls == [1, 2, 3]


def test_sink_fails_when_each_request_times_out():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, body=requests.exceptions.ReadTimeout("timed out"))
        sink = HTTPSink(URL, _client(timeout=1e-9))
        with pytest.raises(SinkError, match="performing HTTP request"):
            sink.write(b"random data")
        assert len(rsps.calls) == RETRIES


def test_sink_fails_on_non_5xx_error_without_retry():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=400)
        sink = HTTPSink(URL, _client())
        with pytest.raises(SinkError, match="unexpected status code: 400"):
            sink.write(json.dumps({"a": 1}).encode())
        assert len(rsps.calls) == 1


def test_retrying_client_with_zero_retries_makes_one_attempt():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=200)
        client = RetryingClient(max_retries=0, backoff=0.0)
        assert client.request("GET", URL).status_code == 200
        assert len(rsps.calls) == 1


def test_tls_session_fails_with_missing_certificates(tmp_path):
    config = TLSConfig(
        enabled=True,
        cert_path=str(tmp_path / "client.pem"),
        key_path=str(tmp_path / "client-key.pem"),
        ca_path=str(tmp_path / "rootCA.pem"),
    )
    with pytest.raises(SinkError, match="loading client certificates"):
        new_tls_session(config)


def test_tls_session_fails_with_invalid_certificate(tmp_path):
    cert = tmp_path / "client.pem"
    key = tmp_path / "client-key.pem"
    cert.write_text("not a certificate")
    key.write_text("not a key")
    config = TLSConfig(enabled=True, cert_path=str(cert), key_path=str(key), ca_path=str(cert))
    with pytest.raises(SinkError, match="loading client certificates"):
        new_tls_session(config)