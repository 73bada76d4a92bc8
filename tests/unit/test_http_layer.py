# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
import json

import httpx
import pytest

from authprobe.config import HttpSettings
from authprobe.errors import ErrorCategory
from authprobe.http import StubHttpClient, create_default_http_client
from authprobe.http.headers import build_probe_headers
from authprobe.http.httpx_client import HttpxClient
from authprobe.http.models import ProbeRequest, ProbeResult, interpret_body


def test_build_probe_headers_with_body_key_and_token():
    body = json.dumps({"email": "tëst@example.com"}).encode("utf-8")
    headers = build_probe_headers(api_key="abc123", access_token="tok", body=body)
    assert headers["Content-Type"] == "application/json"
    assert headers["Content-Length"] == str(len(body))
    assert headers["apikey"] == "abc123"
    assert headers["Authorization"] == "Bearer tok"


def test_build_probe_headers_omits_optional_headers():
    headers = build_probe_headers(api_key=None, access_token=None, body=None)
    assert headers == {}
    headers = build_probe_headers(api_key="abc123")
    assert headers == {"apikey": "abc123"}


def test_probe_request_for_endpoint_splits_base_url():
    request = ProbeRequest.for_endpoint(
        "http://localhost:8000",
        "/auth/v1/token?grant_type=password",
        method="post",
        api_key="abc123",
        json_body={"email": "test@example.com", "password": "testpassword123"},
    )
    assert request.method == "POST"
    assert request.host == "localhost"
    assert request.port == 8000
    assert request.path == "/auth/v1/token?grant_type=password"
    assert request.url == "http://localhost:8000/auth/v1/token?grant_type=password"
    assert request.endpoint == "localhost:8000/auth/v1/token?grant_type=password"
    assert json.loads(request.body) == {"email": "test@example.com", "password": "testpassword123"}
    assert request.headers["Content-Length"] == str(len(request.body))
    assert "Authorization" not in request.headers


def test_probe_request_for_endpoint_keeps_base_path_and_default_port():
    request = ProbeRequest.for_endpoint("https://gw.example/prefix/", "rest/v1/profiles", access_token="tok")
    assert request.port == 443
    assert request.path == "/prefix/rest/v1/profiles"
    assert request.body is None
    assert "Content-Length" not in request.headers
    assert request.headers["Authorization"] == "Bearer tok"


def test_probe_request_is_immutable():
    request = ProbeRequest(method="GET", host="localhost", port=8000, path="/health", headers={"apikey": "k"})
    with pytest.raises(AttributeError):
        request.path = "/other"  # type: ignore[misc]
    with pytest.raises(TypeError):
        request.headers["apikey"] = "changed"  # type: ignore[index]


def test_interpret_body_falls_back_to_text():
    assert interpret_body('{"a": 1}') == ({"a": 1}, True)
    assert interpret_body("<html>bad gateway</html>") == ("<html>bad gateway</html>", False)
    assert interpret_body("") == ("", False)


def test_probe_result_field_and_labels():
    result = ProbeResult.from_response("h:1/p", 200, '{"access_token": "t"}')
    assert result.ok is True
    assert result.field("access_token") == "t"
    assert result.status_label == "200"

    text = ProbeResult.from_response("h:1/p", 502, "Bad Gateway")
    assert text.field("access_token") is None
    assert text.data == "Bad Gateway"

    failure = ProbeResult.from_exception("h:1/p", asyncio.TimeoutError())
    assert failure.ok is False
    assert failure.timed_out is True
    assert failure.status_label == "TIMEOUT"
    assert failure.error == "Timeout"
    assert failure.to_dict()["error_category"] == "TIMEOUT"


def _client_with(handler, settings: HttpSettings | None = None) -> HttpxClient:
    settings = settings or HttpSettings(timeout=1.0, user_agent="UA/1.0")
    return HttpxClient(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_httpx_client_sends_headers_and_parses_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"id": "user-1"})

    client = _client_with(handler)
    probe = ProbeRequest.for_endpoint(
        "http://localhost:8000",
        "/auth/v1/signup",
        method="POST",
        api_key="abc123",
        json_body={"email": "test@example.com", "password": "testpassword123"},
    )
    result = await client.send(probe)
    await client.aclose()

    assert result.status_code == 200
    assert result.is_json is True
    assert result.data == {"id": "user-1"}
    assert result.error is None
    sent = seen["request"]
    assert sent.method == "POST"
    assert str(sent.url) == "http://localhost:8000/auth/v1/signup"
    assert sent.headers["apikey"] == "abc123"
    assert sent.headers["User-Agent"] == "UA/1.0"
    assert sent.headers["Content-Length"] == str(len(probe.body))
    assert json.loads(sent.content) == {"email": "test@example.com", "password": "testpassword123"}


@pytest.mark.asyncio
async def test_httpx_client_reports_non_json_body_with_status():
    client = _client_with(lambda request: httpx.Response(502, text="Bad Gateway"))
    result = await client.send(ProbeRequest(method="GET", host="localhost", port=8000, path="/auth/v1/user"))
    assert result.status_code == 502
    assert result.is_json is False
    assert result.data == "Bad Gateway"
    assert result.error is None


@pytest.mark.asyncio
async def test_httpx_client_timeout_returns_empty_result():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client_with(handler)
    result = await client.send(ProbeRequest(method="GET", host="localhost", port=9999, path="/health"))

    assert result.error_category == ErrorCategory.TIMEOUT
    assert result.status_code is None
    assert result.data is None
    assert result.is_json is False


@pytest.mark.asyncio
async def test_httpx_client_bounds_total_wait():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={})

    client = _client_with(handler)
    result = await client.send(ProbeRequest(method="GET", host="localhost", port=9999, path="/health", timeout=0.05))

    assert result.timed_out is True
    assert result.data is None
    assert result.elapsed < 5


@pytest.mark.asyncio
async def test_httpx_client_connection_error_is_a_result():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    client = _client_with(handler)
    result = await client.send(ProbeRequest(method="GET", host="localhost", port=54321, path="/auth/v1/health"))

    assert result.error_category == ErrorCategory.CONNECTION_ERROR
    assert result.error == "Connection refused"
    assert result.endpoint == "localhost:54321/auth/v1/health"


def test_create_default_http_client_uses_settings():
    settings = HttpSettings(timeout=2.5)
    client = create_default_http_client(settings)
    assert isinstance(client, HttpxClient)
    assert client.settings is settings


@pytest.mark.asyncio
async def test_stub_client_matches_url_then_path():
    stub = StubHttpClient({"/health": ProbeResult(endpoint="x", status_code=200)})
    stub.add("http://localhost:1/other", ProbeResult(endpoint="y", status_code=204))

    assert (await stub.send(ProbeRequest(method="GET", host="localhost", port=9, path="/health"))).status_code == 200
    assert (await stub.send(ProbeRequest(method="GET", host="localhost", port=1, path="/other"))).status_code == 204
    missing = await stub.send(ProbeRequest(method="GET", host="localhost", port=1, path="/nope"))
    assert missing.error_category == ErrorCategory.CONNECTION_ERROR
    assert stub.paths() == ["/health", "/other", "/nope"]
    await stub.aclose()
    assert stub.closed is True
