"""Main Typer application — entry point for the ``apitester`` CLI."""

from __future__ import annotations

import typer

from apitester import __version__
from apitester.cli.run import run_cmd

app = typer.Typer(
    name="apitester",
    help="Benchmark an HTTP endpoint with concurrent GET requests.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run a load test against a URL.")(run_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"apitester {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """api-tester — benchmark an HTTP endpoint with concurrent GET requests."""
