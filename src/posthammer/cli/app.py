"""Typer application: the ``posthammer`` command."""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from posthammer import __version__
from posthammer._internal.config import build_config
from posthammer._internal.errors import ConfigError
from posthammer.engine.dispatcher import dispatch
from posthammer.engine.protocol import DispatchResult, OutcomeStatus, WorkerOutcome

console = Console()

app = typer.Typer(
    name="posthammer",
    help="Fire concurrent sequential POST requests at one endpoint.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"posthammer {__version__}")
        raise typer.Exit


def _print_outcome(outcome: WorkerOutcome) -> None:
    """Print one line for a finished worker."""
    if outcome.status is OutcomeStatus.SUCCEEDED:
        console.print(
            f"[green]Worker {outcome.worker_index} complete after "
            f"{outcome.requests_completed} requests[/green]",
            highlight=False,
        )
    elif outcome.status is OutcomeStatus.FAILED:
        console.print(
            f"[red]Worker {outcome.worker_index} failed after "
            f"{outcome.requests_completed} requests:[/red] "
            f"{escape(outcome.error_message or '')}",
            highlight=False,
        )
    else:
        console.print(
            f"[magenta]Worker {outcome.worker_index} faulted:[/magenta] "
            f"{escape(outcome.error_message or '')}",
            highlight=False,
        )


def _print_summary(result: DispatchResult) -> None:
    """Print the final summary table.

    Args:
        result: Completed dispatch result.
    """
    table = Table(
        title="Run Complete",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Workers", str(len(result.outcomes)))
    table.add_row("Succeeded", str(result.succeeded))
    table.add_row("Failed", str(result.failed))
    table.add_row("Faulted", str(result.faulted))
    table.add_row("Requests Completed", str(result.requests_completed))
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")

    console.print(table)


@app.command()
def main(
    worker_count: int = typer.Argument(
        ...,
        help="Number of workers to run simultaneously.",
        min=1,
    ),
    requests_per_worker: int = typer.Argument(
        ...,
        help="Number of requests to perform PER worker.",
        min=0,
    ),
    target_uri: str = typer.Argument(
        ...,
        help="URI of the endpoint to POST to.",
    ),
    share_worker_connection: bool = typer.Option(
        False,
        "--share-worker-connection",
        "-s",
        help="Use a single connection client shared between workers.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Total timeout per request in seconds (default: aiohttp's default).",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit structured JSON log lines on stderr.",
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
    """Run WORKER_COUNT workers, each sending REQUESTS_PER_WORKER POSTs to TARGET_URI."""
    try:
        config = build_config(
            worker_count,
            requests_per_worker,
            target_uri,
            share_connection=share_worker_connection,
            request_timeout=timeout,
        )
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=1) from exc

    console.print(
        Panel(
            f"[bold]Target:[/bold]   {escape(config.target_uri)}\n"
            f"[bold]Workers:[/bold]  {config.worker_count}\n"
            f"[bold]Requests:[/bold] {config.requests_per_worker} per worker\n"
            f"[bold]Client:[/bold]   "
            f"{'shared' if config.share_connection else 'one per worker'}",
            title="posthammer",
            border_style="cyan",
        ),
        highlight=False,
    )

    exit_code = dispatch(
        config,
        on_outcome=_print_outcome,
        on_complete=_print_summary,
        log_level=logging.DEBUG if verbose else logging.INFO,
        json_logs=json_logs,
    )
    raise typer.Exit(code=exit_code)
