# Copyright (c) Syntropy Systems
"""simfork verdict command."""

from typing import Optional

import typer
from rich.console import Console

from simfork.client import ReportingClient
from simfork.constants import EXIT_VERDICT_FAILED
from simfork.errors import VerdictUnavailableError
from simfork.log import configure_logging
from simfork.models.reporting import RunIdentity
from simfork.verdict import check_verdict

console = Console()


def verdict(
    url: str = typer.Option(
        ...,
        "--url", "-u",
        envvar="SIMFORK_REPORTING_URL",
        help="Base URL of the benchmarking service",
    ),
    application: str = typer.Option(
        ...,
        "--application", "-a",
        envvar="SIMFORK_APPLICATION",
        help="Application under test",
    ),
    test_run_id: str = typer.Option(
        ...,
        "--test-run-id", "-t",
        envvar="SIMFORK_TEST_RUN_ID",
        help="Test run to fetch the verdict for",
    ),
    attempts: Optional[int] = typer.Option(
        None,
        "--attempts",
        min=1,
        help="Number of attempts before giving up (default: 12)",
    ),
    delay: Optional[float] = typer.Option(
        None,
        "--delay",
        min=0.0,
        help="Seconds between attempts (default: 10)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
) -> None:
    """Fetch the verdict for a finished run and fail if any check fails."""
    configure_logging(verbose)

    identity = RunIdentity(application=application, test_run_id=test_run_id)
    with ReportingClient(url, identity) as client:
        if attempts is not None:
            client.verdict_max_attempts = attempts
        if delay is not None:
            client.verdict_retry_delay = delay
        try:
            raw = client.poll_verdict()
        except VerdictUnavailableError as e:
            console.print(f"[red]Verdict unavailable:[/red] {e}")
            raise typer.Exit(EXIT_VERDICT_FAILED) from e

    result = check_verdict(raw)
    if not result.passed:
        console.print("[red]Verdict failed[/red]")
        console.print(result.message, markup=False)
        raise typer.Exit(EXIT_VERDICT_FAILED)
    console.print("[green]Verdict passed[/green]")
    console.print(result.message, markup=False)
