"""CLI commands that run the proxy and demo servers."""

from __future__ import annotations

from typing import Optional

import typer
from aiohttp import web
from rich.console import Console

from auto_md.core.middleware import DEFAULT_CONTENT_TYPES
from auto_md.core.serve.demo import create_demo_app, demo_port_from_env
from auto_md.core.serve.proxy import create_proxy_app

console = Console()


def register(app: typer.Typer) -> None:
    """Register the ``serve`` and ``demo`` commands on the given Typer app."""

    @app.command()
    def serve(
        upstream: str = typer.Option(
            ..., "--upstream", "-u", help="Upstream server URL to proxy",
        ),
        port: int = typer.Option(
            8080, "--port", "-p", help="Port to listen on",
        ),
        host: str = typer.Option(
            "0.0.0.0", "--host", "-H", help="Host/interface to bind",
        ),
        content_type: Optional[list[str]] = typer.Option(
            None, "--content-type", "-t",
            help="Response content type eligible for conversion (repeatable)",
        ),
    ) -> None:
        """Start a reverse proxy that serves HTML as markdown for LLM clients."""
        allowed = tuple(content_type) if content_type else DEFAULT_CONTENT_TYPES
        console.print(
            f"[bold green]Proxy[/bold green] {upstream} -> "
            f"[cyan]{host}:{port}[/cyan]  "
            f"(agents get markdown for {', '.join(allowed)})"
        )
        proxy_app = create_proxy_app(upstream, allowed_content_types=allowed)
        web.run_app(proxy_app, host=host, port=port, print=None)

    @app.command()
    def demo(
        port: Optional[int] = typer.Option(
            None, "--port", "-p", help="Port to listen on (default: $PORT or 8787)",
        ),
        host: str = typer.Option(
            "127.0.0.1", "--host", "-H", help="Host/interface to bind",
        ),
    ) -> None:
        """Run a demo site that answers agents with markdown."""
        port = port if port is not None else demo_port_from_env()
        console.print(f"Listening on [cyan]http://{host}:{port}[/cyan]")
        console.print("Try curl with a Claude user agent to see Markdown:")
        console.print(f"  curl -H 'User-Agent: Claude-User' http://{host}:{port}/")
        web.run_app(create_demo_app(), host=host, port=port, print=None)
