"""Main Typer application: entry point for the ``reviewload`` CLI."""

from __future__ import annotations

import typer

from reviewload import __version__
from reviewload.cli.run import run_cmd

app = typer.Typer(
    name="reviewload",
    help="Load-test the PR reviewer service through its team and review workflows.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Provision fixtures and run the staged load test.")(run_cmd)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"reviewload {__version__}")
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
    """reviewload: staged load tests for the PR reviewer service."""
