"""``apitester run`` — benchmark a URL and print a summary table."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from apitester._internal.config import load_config
from apitester._internal.errors import ApiTesterError, ConfigError, InvalidURLError, SetupError
from apitester.client.http_client import parse_url
from apitester.engine.runner import LoadTestRunner

if TYPE_CHECKING:
    from apitester._internal.config import RunConfig
    from apitester.metrics.models import RunResult

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_url(value: str) -> str:
    """Typer callback: reject anything that is not an absolute http(s) URL.

    Args:
        value: Raw URL argument.

    Returns:
        The unchanged URL.

    Raises:
        typer.BadParameter: If the URL is unusable.
    """
    try:
        parse_url(value)
    except InvalidURLError as exc:
        msg = f'"{value}" is not a valid URL ({exc})'
        raise typer.BadParameter(msg) from exc
    return value


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _print_banner(config: RunConfig) -> None:
    err_console.print(
        Panel(
            f"[bold]URL:[/bold]             {escape(config.url)}\n"
            f"[bold]Total calls:[/bold]     {config.total_calls}\n"
            f"[bold]Threads:[/bold]         {config.num_threads}\n"
            f"[bold]Sleep time:[/bold]      {config.sleep_time_ms}ms\n"
            f"[bold]Request timeout:[/bold] {config.request_timeout_ms}ms\n"
            f"[bold]Connect timeout:[/bold] {config.connect_timeout * 1000:.0f}ms\n"
            f"[bold]Reuse connects:[/bold]  {'yes' if config.reuse_connections else 'no'}",
            title="api-tester",
            border_style="cyan",
        )
    )


def _print_summary(result: RunResult) -> None:
    """Print the final summary table after the run.

    Args:
        result: Aggregated run result.
    """
    table = Table(
        title="Test Complete",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if result.has_samples:
        avg_latency = f"{result.mean_latency_ms:.2f} ms"
    else:
        avg_latency = "n/a (no successful calls)"

    table.add_row("Total thread count", str(result.num_workers))
    table.add_row("Total test time", f"{result.total_time_seconds:.2f} s")
    table.add_row("Average response time", avg_latency)
    table.add_row("Average requests per second", f"{result.requests_per_second:.2f}")
    table.add_row("Successful calls", f"{result.sample_count} / {result.total_calls}")
    table.add_row("Failed calls", str(result.failed_calls))

    console.print(table)

    if result.completed:
        console.print("[green]All threads have finished.[/green]")
    else:
        console.print("[yellow]Some threads terminated prematurely.[/yellow]")


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    url: str = typer.Argument(
        ...,
        help="Server URL (http or https).",
        callback=_validate_url,
    ),
    total_calls: int | None = typer.Option(
        None,
        "--total-calls",
        "-n",
        help="Total number of calls across all threads. Default is 10000.",
        min=0,
    ),
    threads: int | None = typer.Option(
        None,
        "--threads",
        "-t",
        help="Number of threads. Default is 16.",
        min=1,
    ),
    sleep_time: int | None = typer.Option(
        None,
        "--sleep-time",
        "-s",
        help="Sleep time in milliseconds between calls within a thread. Default is 0.",
        min=0,
    ),
    request_timeout: int | None = typer.Option(
        None,
        "--request-timeout",
        help="HTTP request timeout in milliseconds. Default is 10000.",
        min=1,
    ),
    connect_timeout: int | None = typer.Option(
        None,
        "--connect-timeout",
        help="HTTP connect timeout in milliseconds. Default is 3x the request timeout.",
        min=1,
    ),
    reuse_connections: bool = typer.Option(
        False,
        "--reuse-connections",
        help="Attempt to reuse connections if the server allows it.",
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
        help="Emit log lines as JSON objects.",
    ),
) -> None:
    """Send GET requests to URL from many threads and report throughput."""
    try:
        config = load_config(
            url,
            total_calls=total_calls,
            num_threads=threads,
            sleep_time_ms=sleep_time,
            request_timeout_ms=request_timeout,
            connect_timeout_ms=connect_timeout,
            reuse_connections=True if reuse_connections else None,
        )
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        err_console.print("Try 'apitester run --help' for help.")
        raise typer.Exit(code=2) from exc

    _print_banner(config)

    log_level = logging.DEBUG if verbose else logging.INFO
    runner = LoadTestRunner(config, log_level=log_level, json_logs=json_logs)

    try:
        result = runner.run()
    except SetupError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except ApiTesterError as exc:
        err_console.print(f"[red]Load test failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)
