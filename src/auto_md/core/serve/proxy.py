"""Reverse proxy that puts the auto-markdown middleware in front of any site.

Requests are forwarded to the upstream unchanged.  Responses come back
through :func:`auto_md.auto_markdown`, so agent clients receive Markdown
for HTML pages while browsers get the upstream bytes as-is.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from aiohttp import web
from multidict import CIMultiDict

from auto_md.core.middleware import auto_markdown

logger = logging.getLogger(__name__)

_PROXY_USER_AGENT = "auto-md-proxy/1.0"
_HOP_BY_HOP = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "content-encoding",
    "content-length",
})
# Not forwarded upstream; httpx negotiates its own encoding.
_REQUEST_SKIP = _HOP_BY_HOP | {"host", "accept-encoding"}
UPSTREAM_KEY = web.AppKey("upstream", str)


def _build_upstream_url(upstream: str, path: str, query_string: str) -> str:
    """Construct the full upstream URL from base, path, and query string."""
    url = upstream.rstrip("/") + path
    if query_string:
        url += "?" + query_string
    return url


def _filter_headers(headers: httpx.Headers) -> CIMultiDict[str]:
    """Drop hop-by-hop headers from the upstream response, keeping repeats."""
    return CIMultiDict(
        (k, v) for k, v in headers.multi_items() if k.lower() not in _HOP_BY_HOP
    )


def _forward_headers(request: web.Request) -> dict[str, str]:
    """Client request headers to pass upstream."""
    headers = {
        k: v for k, v in request.headers.items() if k.lower() not in _REQUEST_SKIP
    }
    headers.setdefault("User-Agent", _PROXY_USER_AGENT)
    return headers


async def _proxy_handler(request: web.Request) -> web.Response:
    """Handle a single proxied request."""
    upstream = request.app[UPSTREAM_KEY]
    url = _build_upstream_url(upstream, request.path, request.query_string)
    body = await request.read() if request.can_read_body else None

    try:
        async with httpx.AsyncClient(timeout=30, follow_redirects=True) as client:
            upstream_resp = await client.request(
                request.method,
                url,
                headers=_forward_headers(request),
                content=body,
            )
    except (httpx.TimeoutException, httpx.ConnectError) as exc:
        logger.warning("Upstream %s unavailable: %r", url, exc)
        return web.Response(status=502, text="Bad Gateway: upstream unavailable")

    return web.Response(
        status=upstream_resp.status_code,
        body=upstream_resp.content,
        headers=_filter_headers(upstream_resp.headers),
    )


def create_proxy_app(upstream: str, **options: Any) -> web.Application:
    """Create an aiohttp application that proxies to *upstream*.

    Args:
        upstream: The base URL of the upstream server (e.g. ``http://localhost:3000``).
        **options: Passed to :func:`auto_md.auto_markdown`.

    Returns:
        A configured :class:`aiohttp.web.Application`.
    """
    app = web.Application(middlewares=[auto_markdown(**options)])
    app[UPSTREAM_KEY] = upstream
    app.router.add_route("*", "/{path_info:.*}", _proxy_handler)
    return app


def run_proxy(
    upstream: str,
    port: int = 8080,
    host: str = "0.0.0.0",
) -> None:
    """Start the markdown reverse-proxy server.

    Args:
        upstream: The base URL of the upstream server.
        port: Port to listen on (default 8080).
        host: Host/interface to bind (default ``0.0.0.0``).
    """
    app = create_proxy_app(upstream)
    web.run_app(app, host=host, port=port)
