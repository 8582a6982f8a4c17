from __future__ import annotations

import io
from email.message import Message
from http.client import BadStatusLine, IncompleteRead
from urllib.error import HTTPError, URLError

import pytest

import filelink.client.http as http_mod
from filelink.client.http import DEFAULT_API_URL, DEFAULT_CDN_URL, UrllibTransport
from filelink.core.config import Config
from filelink.core.errors import TransportError
from filelink.core.request_builder import build_delete, build_get, build_transform
from filelink.core.transport import RequestBody, RequestDescriptor


class _FakeResponse:
    def __init__(self, body: bytes, status: int = 200, content_type: str = "text/plain"):
        self._body = body
        self.status = status
        self.headers = Message()
        self.headers["Content-Type"] = content_type

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _capture(monkeypatch, result):
    seen = {}

    def fake_urlopen(req, timeout=None, context=None):
        seen["req"] = req
        seen["timeout"] = timeout
        if isinstance(result, BaseException):
            raise result
        return result

    monkeypatch.setattr(http_mod, "urlopen", fake_urlopen)
    return seen


def test_build_url_per_service():
    t = UrllibTransport(cdn_url="https://cdn.example/", api_url="https://api.example/api/")

    get = build_get("h1", Config("k", "p", "s"))
    assert t.build_url(get) == "https://cdn.example/h1?policy=p&signature=s"

    tags = build_transform("h1", Config("k", "p", "s"), "tags")
    assert t.build_url(tags) == "https://cdn.example/security=policy:p,signature:s/tags/h1"

    delete = build_delete("h1", Config("k", "p", "s"))
    assert t.build_url(delete) == "https://api.example/api/file/h1?key=k&policy=p&signature=s"

    with pytest.raises(ValueError):
        t.build_url(RequestDescriptor(service="ftp", method="GET", path="/x"))


def test_send_returns_body_and_media_type(monkeypatch):
    seen = _capture(monkeypatch, _FakeResponse(b"hello", content_type="text/plain; charset=utf-8"))
    t = UrllibTransport(timeout=5)

    resp = t.send(build_get("h1", Config("k")))

    assert resp.status == 200
    assert resp.body == b"hello"
    assert resp.media_type == "text/plain"
    assert seen["req"].get_method() == "GET"
    assert seen["req"].full_url == f"{DEFAULT_CDN_URL}/h1"
    assert seen["timeout"] == 5.0


def test_send_attaches_body(monkeypatch):
    seen = _capture(monkeypatch, _FakeResponse(b""))
    req = RequestDescriptor(
        service="api",
        method="POST",
        path="/file/h1",
        body=RequestBody(data=b"abc", media_type="text/plain"),
    )

    UrllibTransport().send(req)

    sent = seen["req"]
    assert sent.data == b"abc"
    assert sent.get_header("Content-type") == "text/plain"
    assert sent.get_header("Content-length") == "3"
    assert sent.full_url == f"{DEFAULT_API_URL}/file/h1"


def test_http_error_becomes_transport_error(monkeypatch):
    err = HTTPError(
        url="https://cdn.example/h1", code=403, msg="Forbidden", hdrs=Message(), fp=io.BytesIO(b"nope")
    )
    _capture(monkeypatch, err)

    with pytest.raises(TransportError) as ei:
        UrllibTransport().send(build_get("h1", Config("k")))
    assert ei.value.status == 403
    assert ei.value.body == b"nope"


def test_connection_failure_becomes_status_zero(monkeypatch):
    _capture(monkeypatch, URLError("connection refused"))

    with pytest.raises(TransportError) as ei:
        UrllibTransport().send(build_get("h1", Config("k")))
    assert ei.value.status == 0
    assert "connection refused" in str(ei.value)


def test_from_env(monkeypatch):
    monkeypatch.setenv("FILELINK_CDN_URL", "http://localhost:9000/")
    monkeypatch.setenv("FILELINK_API_URL", "http://localhost:9001/api")
    monkeypatch.setenv("FILELINK_TIMEOUT_SEC", "not-a-number")

    t = UrllibTransport.from_env()
    assert t.base_urls == {"cdn": "http://localhost:9000", "api": "http://localhost:9001/api"}
    assert t.timeout == 30.0


class _TruncatedResponse(_FakeResponse):
    def read(self) -> bytes:
        raise IncompleteRead(b"par", 10)


def test_truncated_body_becomes_status_zero(monkeypatch):
    _capture(monkeypatch, _TruncatedResponse(b""))

    with pytest.raises(TransportError) as ei:
        UrllibTransport().send(build_get("h1", Config("k")))
    assert ei.value.status == 0
    assert isinstance(ei.value.__cause__, IncompleteRead)


def test_bad_status_line_becomes_status_zero(monkeypatch):
    _capture(monkeypatch, BadStatusLine("garbage"))

    with pytest.raises(TransportError) as ei:
        UrllibTransport().send(build_get("h1", Config("k")))
    assert ei.value.status == 0
    assert "network error" in str(ei.value)
