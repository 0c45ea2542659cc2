"""The ``loadburst`` command: run a load test with live terminal output."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.markup import escape

from loadburst import __version__
from loadburst._internal.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_DURATION,
    RunConfig,
    load_config,
)
from loadburst._internal.errors import LoadBurstError
from loadburst._internal.logging import setup_logging
from loadburst.cli.report import print_banner, print_report, progress_line, write_json_report
from loadburst.engine.runner import LoadTestRunner

if TYPE_CHECKING:
    from loadburst.dsl.http_client import RequestMetric
    from loadburst.metrics.models import ProgressSnapshot

console = Console()
err_console = Console(stderr=True)


class _ProgressDisplay:
    """Single progress line, started on the first snapshot and updated in place."""

    def __init__(self, target: Console) -> None:
        self._console = target
        self._live: Live | None = None

    def update(self, snapshot: ProgressSnapshot) -> None:
        if self._live is None:
            self._live = Live(
                progress_line(snapshot),
                console=self._console,
                auto_refresh=False,
                transient=False,
            )
            self._live.start(refresh=True)
            return
        self._live.update(progress_line(snapshot), refresh=True)

    def stop(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"loadburst {__version__}")
        raise typer.Exit


def _finite(value: float | None) -> float | None:
    """Reject NaN and infinity, which pass Click's range checks."""
    if value is not None and not math.isfinite(value):
        msg = f"{value} is not a finite number."
        raise typer.BadParameter(msg)
    return value


def run_cmd(
    target_url: str | None = typer.Argument(
        None,
        help="Target URL [default: $LOADBURST_TARGET_URL or http://localhost:3000].",
        show_default=False,
    ),
    concurrency: int = typer.Argument(
        DEFAULT_CONCURRENCY,
        help="Requests kept in flight per batch.",
        min=1,
    ),
    duration: float = typer.Argument(
        DEFAULT_DURATION,
        help="Measured duration in seconds.",
        min=0.0,
        callback=_finite,
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Per-request timeout in seconds [default: $LOADBURST_TIMEOUT or 30].",
        min=0.001,
        callback=_finite,
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Also write the final report as JSON to this file.",
        dir_okay=False,
    ),
    fail_on_error_rate: float | None = typer.Option(
        None,
        "--fail-on-error-rate",
        help="Exit non-zero if the failure rate exceeds this threshold (e.g., 0.05).",
        min=0.0,
        max=1.0,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit log records as one-line JSON.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Hammer a CRUD service with a weighted endpoint mix and report the results."""
    setup_logging(level=logging.DEBUG if verbose else logging.WARNING, json_format=json_logs)

    try:
        env = load_config()
        config = RunConfig(
            target_url=target_url or env.default_target_url,
            concurrency=concurrency,
            duration_seconds=duration,
            request_timeout=timeout if timeout is not None else env.request_timeout,
            progress_interval=env.progress_interval,
        )
    except LoadBurstError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    display = _ProgressDisplay(console)

    def _on_probe(metric: RequestMetric) -> None:
        console.print(
            f"[green]Connection successful![/green] ({metric.name} -> {metric.status_code})"
        )
        console.print("Running load test...")
        console.print()

    test_runner = LoadTestRunner(config, on_progress=display.update, on_probe=_on_probe)
    print_banner(
        console,
        config.target_url,
        config.concurrency,
        config.duration_seconds,
        test_runner.selection_table,
    )
    console.print("Testing connection...")

    try:
        result = test_runner.run()
    except LoadBurstError as exc:
        display.stop()
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        # Only reachable before the measured phase installs its own handlers.
        display.stop()
        err_console.print("[yellow]Test interrupted before measurement started[/yellow]")
        raise typer.Exit(code=0) from None

    display.stop()
    if result.interrupted:
        console.print()
        console.print("[yellow]Test interrupted by user[/yellow]")
    print_report(console, result)

    if output is not None:
        write_json_report(result, output)
        console.print(f"[green]Report written:[/green] {output}")

    if fail_on_error_rate is not None and result.final.failure_rate > fail_on_error_rate:
        err_console.print(
            f"[red]FAIL:[/red] Failure rate {result.final.failure_rate * 100:.2f}% "
            f"exceeds threshold {fail_on_error_rate * 100:.2f}%"
        )
        raise typer.Exit(code=1)
