import importlib
import io
import json
import sys
from http.client import RemoteDisconnected
from urllib.error import HTTPError, URLError

import pytest


def _load_module():
    if "lambda" not in sys.path:
        sys.path.insert(0, "lambda")
    import upstream_http as module

    return importlib.reload(module)


class _Resp:
    def __init__(self, status, data):
        self.status = status
        self._data = data

    def read(self):
        return self._data

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_json_request_sends_payload_and_decodes_object(monkeypatch):
    m = _load_module()
    seen = {}

    def fake_urlopen(req, timeout):
        seen["method"] = req.get_method()
        seen["url"] = req.full_url
        seen["body"] = json.loads(req.data.decode("utf-8"))
        seen["auth"] = req.get_header("Authorization")
        seen["content_type"] = req.get_header("Content-type")
        seen["timeout"] = timeout
        return _Resp(200, b'{"success": true}')

    monkeypatch.setattr(m, "urlopen", fake_urlopen)

    status, data = m.http_json(
        "post",
        "https://api.example.com/x",
        headers={"Authorization": "Bearer t"},
        payload={"a": 1},
        timeout_seconds=3,
    )

    assert (status, data) == (200, {"success": True})
    assert seen == {
        "method": "POST",
        "url": "https://api.example.com/x",
        "body": {"a": 1},
        "auth": "Bearer t",
        "content_type": "application/json",
        "timeout": 3,
    }


def test_http_error_status_is_returned_with_body(monkeypatch):
    m = _load_module()

    def fake_urlopen(req, timeout):
        raise HTTPError(req.full_url, 404, "Not Found", {}, io.BytesIO(b'{"success": false}'))

    monkeypatch.setattr(m, "urlopen", fake_urlopen)

    assert m.http_json("GET", "https://api.example.com/x", headers={}) == (404, {"success": False})


def test_non_object_bodies_decode_to_empty_dict(monkeypatch):
    m = _load_module()
    monkeypatch.setattr(m, "urlopen", lambda req, timeout: _Resp(200, b"<html>oops</html>"))

    assert m.http_json("GET", "https://api.example.com/x", headers={}) == (200, {})


def test_transport_failure_raises_upstream_failure(monkeypatch):
    m = _load_module()
    from gateway_errors import UpstreamFailure

    def fake_urlopen(req, timeout):
        raise URLError("connection refused")

    monkeypatch.setattr(m, "urlopen", fake_urlopen)

    with pytest.raises(UpstreamFailure):
        m.http_json("GET", "https://api.example.com/x", headers={})


@pytest.mark.parametrize(
    "exc",
    [TimeoutError("timed out"), RemoteDisconnected("Remote end closed connection without response")],
)
def test_unwrapped_socket_failures_raise_upstream_failure(monkeypatch, exc):
    m = _load_module()
    from gateway_errors import UpstreamFailure

    def fake_urlopen(req, timeout):
        raise exc

    monkeypatch.setattr(m, "urlopen", fake_urlopen)

    with pytest.raises(UpstreamFailure):
        m.http_json("GET", "https://api.example.com/x", headers={})


def test_timeout_while_reading_body_raises_upstream_failure(monkeypatch):
    m = _load_module()
    from gateway_errors import UpstreamFailure

    class _SlowResp(_Resp):
        def read(self):
            raise TimeoutError("timed out")

    monkeypatch.setattr(m, "urlopen", lambda req, timeout: _SlowResp(200, b""))

    with pytest.raises(UpstreamFailure):
        m.http_json("GET", "https://api.example.com/x", headers={})
