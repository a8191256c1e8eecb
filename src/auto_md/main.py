"""Typer entry point for the ``auto-md`` command."""

from __future__ import annotations

import logging

import typer

from auto_md import __version__
from auto_md.cli import convert, serve

app = typer.Typer(
    help="Serve HTML as markdown to AI agents.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"auto-md {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging",
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Serve HTML as markdown to AI agents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


serve.register(app)
convert.register(app)
