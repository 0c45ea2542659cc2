"""Main Typer application and entry point for the ``loadburst`` CLI."""

from __future__ import annotations

import typer

from loadburst.cli.run import run_cmd

app = typer.Typer(
    name="loadburst",
    help="Batch HTTP load generator for CRUD services.",
    add_completion=False,
    rich_markup_mode="rich",
)

app.command(
    "run",
    help="Run a load test: loadburst [TARGET_URL] [CONCURRENCY] [DURATION].",
)(run_cmd)


def main() -> None:
    """Console script entry point."""
    app()
