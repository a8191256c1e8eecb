"""Small demo site showing the middleware on a regular aiohttp app."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

from aiohttp import web

from auto_md.core.middleware import auto_markdown

DEFAULT_DEMO_PORT = 8787

INDEX_HTML = """
<main>
  <h1>Welcome to the Markdown demo</h1>
  <p>This page is served as HTML for browsers.</p>
  <p>Requests that look like AI agents receive a Markdown rendition.</p>
</main>
"""

DOCS_HTML = """
<main>
  <h2>Endpoints</h2>
  <ul>
    <li><strong>GET /</strong> - Greeting page demonstrating Markdown conversion.</li>
    <li><strong>GET /docs</strong> - This very documentation list.</li>
    <li><strong>GET /status</strong> - JSON response that is left untouched.</li>
  </ul>
</main>
"""


async def index(request: web.Request) -> web.Response:
    return web.Response(text=INDEX_HTML, content_type="text/html")


async def docs(request: web.Request) -> web.Response:
    return web.Response(text=DOCS_HTML, content_type="text/html")


async def status(request: web.Request) -> web.Response:
    return web.json_response(
        {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
    )


def create_demo_app(**options: Any) -> web.Application:
    """Build the demo application; *options* go to :func:`auto_markdown`."""
    app = web.Application(middlewares=[auto_markdown(**options)])
    app.router.add_get("/", index)
    app.router.add_get("/docs", docs)
    app.router.add_get("/status", status)
    return app


def demo_port_from_env(environ: dict[str, str] | None = None) -> int:
    """Read the demo port from ``$PORT``, falling back to 8787."""
    env = os.environ if environ is None else environ
    raw = env.get("PORT")
    if not raw:
        return DEFAULT_DEMO_PORT
    try:
        return int(raw)
    except ValueError:
        return DEFAULT_DEMO_PORT


def run_demo(host: str = "127.0.0.1", port: int | None = None) -> None:
    """Serve the demo app until interrupted."""
    web.run_app(
        create_demo_app(),
        host=host,
        port=port if port is not None else demo_port_from_env(),
    )
