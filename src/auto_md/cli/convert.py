"""One-shot conversion and detection commands."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from auto_md.core.detect import DEFAULT_AGENT_MATCHERS
from auto_md.core.header_matcher import is_match_header
from auto_md.core.markdown_engine import MarkdownEngineConfig, convert_html_to_markdown
from auto_md.core.utils import resolve_base_url

console = Console()
err_console = Console(stderr=True)


def _parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise typer.BadParameter(f"expected 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


def register(app: typer.Typer) -> None:
    """Register the ``convert`` and ``detect`` commands on the given Typer app."""

    @app.command()
    def convert(
        path: Path = typer.Argument(
            ..., exists=True, dir_okay=False, readable=True, help="HTML file to convert",
        ),
        base_url: Optional[str] = typer.Option(
            None, "--base-url", "-b", help="Absolute URL used to resolve relative links",
        ),
        strip_images: bool = typer.Option(
            False, "--strip-images", help="Leave images out of the output",
        ),
    ) -> None:
        """Convert an HTML file to markdown and print it."""
        resolved = None
        if base_url is not None:
            resolved = resolve_base_url(base_url)
            if resolved is None:
                err_console.print(
                    f"[yellow]Ignoring --base-url {base_url!r}: not an absolute URL[/yellow]"
                )
        html = path.read_text(encoding="utf-8")
        markdown = convert_html_to_markdown(
            html,
            base_url=resolved,
            config=MarkdownEngineConfig(strip_images=strip_images),
        )
        typer.echo(markdown, nl=False)

    @app.command()
    def detect(
        header: list[str] = typer.Option(
            ..., "--header", "-h", help="Request header as 'Name: value' (repeatable)",
        ),
    ) -> None:
        """Show whether the default matchers treat these headers as an agent."""
        headers = dict(_parse_header(raw) for raw in header)

        table = Table(title="Request headers")
        table.add_column("Header", style="bold")
        table.add_column("Value")
        for name, value in headers.items():
            table.add_row(name, value)
        console.print(table)

        if is_match_header(headers, DEFAULT_AGENT_MATCHERS):
            console.print("[bold green]agent[/bold green]: HTML would be served as markdown")
        else:
            console.print("[bold]browser[/bold]: responses pass through unchanged")
            raise typer.Exit(code=1)
