"""Tests for the markdown reverse-proxy server."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer, make_mocked_request

from auto_md.core.middleware import MARKDOWN_CONTENT_TYPE, MARKER_HEADER, MARKER_VALUE
from auto_md.core.serve.proxy import (
    UPSTREAM_KEY,
    _build_upstream_url,
    _filter_headers,
    _forward_headers,
    create_proxy_app,
    run_proxy,
)

# ---------------------------------------------------------------------------
# Helper fixtures
# ---------------------------------------------------------------------------

SIMPLE_HTML = "<html><body><h1>Hello</h1><p>World</p></body></html>"
AGENT = {"User-Agent": "Mozilla/5.0 (compatible; GPTBot/1.2)"}
BROWSER = {"User-Agent": "Mozilla/5.0", "Accept": "text/html"}


@pytest.fixture
def proxy_app():
    """Create a proxy app pointing at a dummy upstream."""
    return create_proxy_app("http://upstream.test")


@pytest.fixture
async def proxy_client(proxy_app):
    """Create an aiohttp test client for the proxy app."""
    server = TestServer(proxy_app)
    client = TestClient(server)
    await client.start_server()
    yield client
    await client.close()


def _make_httpx_response(
    *,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
    text: str = "",
    content: bytes | None = None,
) -> MagicMock:
    """Build a mock httpx.Response with the given attributes."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = httpx.Headers(headers or {})
    resp.text = text
    resp.content = content if content is not None else text.encode()
    return resp


def _patch_client(**request_kwargs):
    """Patch httpx.AsyncClient so that ``request`` behaves as configured."""
    patcher = patch("auto_md.core.serve.proxy.httpx.AsyncClient")
    mock_cls = patcher.start()
    instance = AsyncMock()
    instance.request = AsyncMock(**request_kwargs)
    instance.__aenter__ = AsyncMock(return_value=instance)
    instance.__aexit__ = AsyncMock(return_value=False)
    mock_cls.return_value = instance
    return patcher, instance


@pytest.fixture
def upstream():
    """Yield a callable that installs a fake upstream for the test."""
    patchers = []

    def _install(**request_kwargs):
        patcher, instance = _patch_client(**request_kwargs)
        patchers.append(patcher)
        return instance

    yield _install
    for patcher in patchers:
        patcher.stop()


# ---------------------------------------------------------------------------
# Unit tests: helpers
# ---------------------------------------------------------------------------


class TestBuildUpstreamUrl:
    """Tests for the _build_upstream_url helper."""

    def test_simple_path(self):
        assert _build_upstream_url("http://example.com", "/page", "") == "http://example.com/page"

    def test_with_query_string(self):
        result = _build_upstream_url("http://example.com", "/search", "q=hello")
        assert result == "http://example.com/search?q=hello"

    def test_trailing_slash_on_upstream(self):
        assert _build_upstream_url("http://example.com/", "/page", "") == "http://example.com/page"

    def test_empty_path(self):
        assert _build_upstream_url("http://example.com", "", "") == "http://example.com"


class TestFilterHeaders:
    """Tests for the _filter_headers helper."""

    def test_removes_hop_by_hop(self):
        headers = httpx.Headers({
            "Content-Type": "text/html",
            "Transfer-Encoding": "chunked",
            "Connection": "keep-alive",
            "Content-Encoding": "gzip",
        })
        filtered = _filter_headers(headers)
        assert filtered["content-type"] == "text/html"
        assert "Transfer-Encoding" not in filtered
        assert "Connection" not in filtered
        assert "Content-Encoding" not in filtered

    def test_keeps_repeated_headers(self):
        headers = httpx.Headers([("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")])
        filtered = _filter_headers(headers)
        assert filtered.getall("Set-Cookie") == ["a=1", "b=2"]

    def test_empty_headers(self):
        assert len(_filter_headers(httpx.Headers({}))) == 0


class TestForwardHeaders:
    def test_drops_host_and_encoding(self):
        request = make_mocked_request(
            "GET", "/", headers={"Host": "proxy.test", "Accept-Encoding": "br", "X-Id": "1"},
        )
        forwarded = _forward_headers(request)
        assert "Host" not in forwarded
        assert "Accept-Encoding" not in forwarded
        assert forwarded["X-Id"] == "1"

    def test_default_user_agent(self):
        request = make_mocked_request("GET", "/")
        assert _forward_headers(request)["User-Agent"].startswith("auto-md-proxy")

    def test_client_user_agent_kept(self):
        request = make_mocked_request("GET", "/", headers={"User-Agent": "Claude-User"})
        assert _forward_headers(request)["User-Agent"] == "Claude-User"


# ---------------------------------------------------------------------------
# Integration tests: proxy handler via test client
# ---------------------------------------------------------------------------


async def test_markdown_response_for_agent(proxy_client, upstream):
    """Agent user agent + HTML upstream -> markdown conversion."""
    upstream(return_value=_make_httpx_response(
        headers={"Content-Type": "text/html; charset=utf-8"}, text=SIMPLE_HTML,
    ))
    resp = await proxy_client.get("/page", headers=AGENT)

    assert resp.status == 200
    assert resp.headers["Content-Type"] == MARKDOWN_CONTENT_TYPE
    assert resp.headers[MARKER_HEADER] == MARKER_VALUE
    body = await resp.text()
    assert "# Hello" in body
    assert "<h1>" not in body


async def test_accept_markdown_converts(proxy_client, upstream):
    upstream(return_value=_make_httpx_response(
        headers={"Content-Type": "text/html"}, text=SIMPLE_HTML,
    ))
    resp = await proxy_client.get("/page", headers={"Accept": "text/markdown"})
    assert resp.headers[MARKER_HEADER] == MARKER_VALUE


async def test_passthrough_for_browser(proxy_client, upstream):
    """Browsers get the upstream HTML bytes unchanged."""
    upstream(return_value=_make_httpx_response(
        headers={"Content-Type": "text/html"}, text=SIMPLE_HTML,
    ))
    resp = await proxy_client.get("/page", headers=BROWSER)

    assert resp.status == 200
    assert await resp.read() == SIMPLE_HTML.encode()
    assert MARKER_HEADER not in resp.headers


async def test_passthrough_json_for_agent(proxy_client, upstream):
    """JSON upstream is passed through even for agents."""
    upstream(return_value=_make_httpx_response(
        headers={"Content-Type": "application/json"}, text='{"key": "value"}',
    ))
    resp = await proxy_client.get("/api/data", headers=AGENT)

    assert '"key"' in await resp.text()
    assert MARKER_HEADER not in resp.headers


async def test_passthrough_image_binary(proxy_client, upstream):
    image_bytes = b"\x89PNG\r\n\x1a\nfakepng"
    upstream(return_value=_make_httpx_response(
        headers={"Content-Type": "image/png"}, content=image_bytes,
    ))
    resp = await proxy_client.get("/image.png", headers=AGENT)

    assert await resp.read() == image_bytes


async def test_upstream_timeout_returns_502(proxy_client, upstream):
    upstream(side_effect=httpx.TimeoutException("timed out"))
    resp = await proxy_client.get("/slow-page")

    assert resp.status == 502
    assert "Bad Gateway" in await resp.text()


async def test_upstream_connection_error_returns_502(proxy_client, upstream):
    upstream(side_effect=httpx.ConnectError("Connection refused"))
    resp = await proxy_client.get("/down", headers=AGENT)

    assert resp.status == 502
    assert MARKER_HEADER not in resp.headers


async def test_upstream_status_preserved(proxy_client, upstream):
    upstream(return_value=_make_httpx_response(
        status_code=404,
        headers={"Content-Type": "text/html"},
        text="<html><body>Not Found</body></html>",
    ))
    resp = await proxy_client.get("/missing")
    assert resp.status == 404


async def test_upstream_500_converted_for_agent(proxy_client, upstream):
    upstream(return_value=_make_httpx_response(
        status_code=500,
        headers={"Content-Type": "text/html"},
        text="<html><body><h1>Server Error</h1></body></html>",
    ))
    resp = await proxy_client.get("/error", headers=AGENT)

    assert resp.status == 500
    assert "# Server Error" in await resp.text()
    assert resp.headers[MARKER_HEADER] == MARKER_VALUE


async def test_empty_html_upstream(proxy_client, upstream):
    upstream(return_value=_make_httpx_response(
        headers={"Content-Type": "text/html"}, text="",
    ))
    resp = await proxy_client.get("/empty", headers=AGENT)

    assert resp.status == 200
    assert (await resp.text()).strip() == ""


async def test_paths_and_query_forwarded(proxy_client, upstream):
    calls = []

    async def capture(method, url, **kwargs):
        calls.append((method, url))
        return _make_httpx_response(headers={"Content-Type": "text/html"}, text=SIMPLE_HTML)

    upstream(side_effect=capture)
    await proxy_client.get("/page-a")
    await proxy_client.get("/deep/nested/path")
    await proxy_client.get("/search?q=hello&page=2")
    await proxy_client.post("/form", data=b"x=1")

    assert calls == [
        ("GET", "http://upstream.test/page-a"),
        ("GET", "http://upstream.test/deep/nested/path"),
        ("GET", "http://upstream.test/search?q=hello&page=2"),
        ("POST", "http://upstream.test/form"),
    ]


async def test_request_body_forwarded(proxy_client, upstream):
    instance = upstream(return_value=_make_httpx_response(
        headers={"Content-Type": "text/plain"}, text="ok",
    ))
    await proxy_client.post("/submit", data=b"payload")

    assert instance.request.call_args.kwargs["content"] == b"payload"


async def test_custom_upstream_headers_preserved(proxy_client, upstream):
    upstream(return_value=_make_httpx_response(
        headers={
            "Content-Type": "text/html",
            "X-Custom-Header": "custom-value",
            "X-Request-Id": "abc-123",
        },
        text=SIMPLE_HTML,
    ))
    resp = await proxy_client.get("/page", headers=AGENT)

    assert resp.headers["X-Custom-Header"] == "custom-value"
    assert resp.headers["X-Request-Id"] == "abc-123"


async def test_markdown_conversion_strips_scripts(proxy_client, upstream):
    upstream(return_value=_make_httpx_response(
        headers={"Content-Type": "text/html"},
        text="<html><body><script>alert('xss')</script><h1>Clean Content</h1></body></html>",
    ))
    resp = await proxy_client.get("/page", headers=AGENT)
    body = await resp.text()

    assert "alert" not in body
    assert "Clean Content" in body


async def test_upstream_empty_content_type(proxy_client, upstream):
    """No Content-Type from upstream -> passthrough."""
    upstream(return_value=_make_httpx_response(headers={}, text="raw data"))
    resp = await proxy_client.get("/raw", headers=AGENT)

    assert MARKER_HEADER not in resp.headers
    assert await resp.read() == b"raw data"


async def test_proxy_options_reach_middleware(upstream):
    app = create_proxy_app("http://upstream.test", allowed_content_types=["text/plain"])
    client = TestClient(TestServer(app))
    await client.start_server()
    try:
        upstream(return_value=_make_httpx_response(
            headers={"Content-Type": "text/html"}, text=SIMPLE_HTML,
        ))
        resp = await client.get("/", headers=AGENT)
        assert MARKER_HEADER not in resp.headers
    finally:
        await client.close()


# ---------------------------------------------------------------------------
# create_proxy_app / run_proxy
# ---------------------------------------------------------------------------


class TestCreateProxyApp:
    """Tests for the create_proxy_app factory."""

    def test_returns_aiohttp_app(self):
        assert isinstance(create_proxy_app("http://example.com"), web.Application)

    def test_stores_upstream_in_app(self):
        app = create_proxy_app("http://my-upstream:3000")
        assert app[UPSTREAM_KEY] == "http://my-upstream:3000"

    def test_installs_middleware(self):
        app = create_proxy_app("http://example.com")
        assert len(app.middlewares) == 1


class TestRunProxy:
    """Tests for the run_proxy convenience function."""

    def test_run_proxy_calls_run_app(self):
        with patch("auto_md.core.serve.proxy.web.run_app") as mock_run:
            with patch("auto_md.core.serve.proxy.create_proxy_app") as mock_create:
                mock_app = MagicMock()
                mock_create.return_value = mock_app
                run_proxy("http://example.com", port=9090, host="127.0.0.1")

            mock_create.assert_called_once_with("http://example.com")
            mock_run.assert_called_once_with(mock_app, host="127.0.0.1", port=9090)
