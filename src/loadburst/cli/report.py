"""Rendering of the progress line and the final report."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.text import Text

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console

    from loadburst.engine.selector import WeightedSelectionTable
    from loadburst.metrics.models import ProgressSnapshot, RunReport

_RULE_WIDTH = 50
_INDENT = "   "


def progress_line(snapshot: ProgressSnapshot) -> Text:
    """Build the single in-place progress line."""
    return Text(
        f"Requests: {snapshot.total_requests} | "
        f"RPS: {snapshot.requests_per_second:.2f} | "
        f"Avg: {snapshot.average_response_time_ms:.2f}ms | "
        f"Success: {snapshot.success_count} | "
        f"Failed: {snapshot.failure_count}",
        style="bold cyan",
    )


def print_banner(
    console: Console,
    target_url: str,
    concurrency: int,
    duration: float,
    table: WeightedSelectionTable,
) -> None:
    """Print the startup banner, including each endpoint's share of the mix."""
    console.print("[bold]Starting Load Test[/bold]")
    console.print(f"Target: {escape(target_url)}")
    console.print(f"Concurrent Requests: {concurrency}")
    console.print(f"Duration: {duration:g} seconds")
    console.print("Endpoints:")
    for endpoint in table.endpoints:
        share = table.probability(endpoint)
        if share > 0:
            console.print(f"{_INDENT}{escape(endpoint.name)} ({share * 100:.0f}%)")
    console.print()


def _pct(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


def print_report(console: Console, report: RunReport) -> None:
    """Print the final report for a run.

    Sections: configuration, performance metrics, response times, response
    codes, errors (only when a transport failure occurred) and endpoints.
    """
    final = report.final
    total = final.total_requests

    console.print()
    console.print("[bold]Load Test Results[/bold]")
    console.print("=" * _RULE_WIDTH)

    console.print("[bold]Test Configuration:[/bold]")
    console.print(f"{_INDENT}Target URL: {escape(report.config.target_url)}")
    console.print(f"{_INDENT}Concurrent Requests: {report.config.concurrency}")
    console.print(
        f"{_INDENT}Test Duration: {report.config.duration_seconds:g}s "
        f"(actual: {report.duration_seconds:.2f}s)"
    )
    console.print()

    console.print("[bold]Performance Metrics:[/bold]")
    console.print(f"{_INDENT}Total Requests: {total}")
    console.print(f"{_INDENT}Requests/Second: {report.requests_per_second:.2f}")
    console.print(f"{_INDENT}Success Rate: {final.success_rate * 100:.2f}%")
    console.print(f"{_INDENT}Successful Requests: {final.success_count}")
    console.print(f"{_INDENT}Failed Requests: {final.failure_count}")
    console.print()

    minimum = (
        "N/A" if final.min_response_time_ms is None else f"{final.min_response_time_ms:.2f}ms"
    )
    console.print("[bold]Response Times:[/bold]")
    console.print(f"{_INDENT}Average: {final.average_response_time_ms:.2f}ms")
    console.print(f"{_INDENT}Minimum: {minimum}")
    console.print(f"{_INDENT}Maximum: {final.max_response_time_ms:.2f}ms")
    if total:
        console.print(
            f"{_INDENT}p50: {final.latency_p50:.2f}ms | "
            f"p95: {final.latency_p95:.2f}ms | "
            f"p99: {final.latency_p99:.2f}ms"
        )
    console.print()

    if final.status_codes:
        console.print("[bold]Response Codes:[/bold]")
        for code, count in sorted(final.status_codes.items()):
            console.print(f"{_INDENT}{code}: {count} ({_pct(count, total):.1f}%)")
        console.print()

    if final.errors:
        console.print("[bold red]Errors:[/bold red]")
        for kind, count in sorted(final.errors.items(), key=lambda item: (-item[1], item[0])):
            console.print(f"{_INDENT}{kind}: {count} ({_pct(count, total):.1f}%)")
        console.print()

    if final.endpoints:
        console.print("[bold]Endpoints:[/bold]")
        for ep in sorted(final.endpoints.values(), key=lambda e: e.name):
            console.print(
                f"{_INDENT}{escape(ep.name)}: {ep.request_count} requests, "
                f"{ep.failure_count} failed, avg {ep.average_latency_ms:.2f}ms"
            )
        console.print()


def write_json_report(report: RunReport, path: Path) -> None:
    """Write ``report`` as indented JSON to ``path``, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2) + "\n")
