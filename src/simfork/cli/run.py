# Copyright (c) Syntropy Systems
"""simfork run command."""
from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from simfork.config import ReportingConfig, SimforkConfig, load_config
from simfork.constants import (
    EXIT_ASSERTIONS_FAILED,
    EXIT_ERROR,
    EXIT_VERDICT_FAILED,
)
from simfork.errors import (
    ConfigError,
    SimulationAssertionsFailedError,
    VerdictFailedError,
    VerdictUnavailableError,
    WorkflowError,
)
from simfork.log import configure_logging
from simfork.workflow import Workflow, WorkflowResult

console = Console()


def run(  # noqa: PLR0913
    simulation: Optional[List[str]] = typer.Option(
        None,
        "--simulation", "-s",
        help="Discovered simulation to run (repeatable, overrides the config list)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        envvar="SIMFORK_CONFIG",
        help="Path to a config file (default: nearest .simfork/config.yaml)",
    ),
    simulation_class: Optional[str] = typer.Option(
        None,
        "--simulation-class",
        help="Run only this simulation class",
    ),
    reports_only: Optional[str] = typer.Option(
        None,
        "--reports-only",
        help="Only generate reports for the results in this folder",
    ),
    no_reports: bool = typer.Option(
        False,
        "--no-reports",
        help="Run simulations without generating reports",
    ),
    run_multiple: bool = typer.Option(
        False,
        "--run-multiple",
        help="Allow running more than one simulation",
    ),
    continue_on_assertion_failure: Optional[bool] = typer.Option(
        None,
        "--continue-on-assertion-failure/--stop-on-assertion-failure",
        help="Keep running the remaining simulations after an assertion failure",
    ),
    fail_on_error: Optional[bool] = typer.Option(
        None,
        "--fail-on-error/--no-fail-on-error",
        help="Exit non-zero when the simulations fail",
    ),
    disable_compiler: bool = typer.Option(
        False,
        "--disable-compiler",
        help="Skip compiling the simulations",
    ),
    skip: bool = typer.Option(
        False,
        "--skip",
        envvar="SIMFORK_SKIP",
        help="Do nothing",
    ),
    run_description: Optional[str] = typer.Option(
        None,
        "--run-description",
        help="Short description of the run to include in the report",
    ),
    reporting: Optional[bool] = typer.Option(
        None,
        "--reporting/--no-reporting",
        envvar="SIMFORK_REPORTING_ENABLED",
        help="Report the run to the benchmarking service",
    ),
    reporting_url: Optional[str] = typer.Option(
        None,
        "--reporting-url",
        envvar="SIMFORK_REPORTING_URL",
        help="Base URL of the benchmarking service",
    ),
    test_run_id: Optional[str] = typer.Option(
        None,
        "--test-run-id",
        envvar="SIMFORK_TEST_RUN_ID",
        help="Test run id reported to the benchmarking service",
    ),
    assert_results: Optional[bool] = typer.Option(
        None,
        "--assert-results/--no-assert-results",
        envvar="SIMFORK_ASSERT_RESULTS",
        help="Fail when the benchmarking service verdict fails",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show debug output",
    ),
) -> None:
    """Compile and run simulations in forked JVMs.

    Examples:

        # Run the simulations listed in .simfork/config.yaml
        simfork run

        # Run two discovered simulations, continuing after assertion failures
        simfork run -s com.acme.Smoke -s com.acme.Soak --run-multiple \\
            --continue-on-assertion-failure
    """
    configure_logging(verbose)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(EXIT_ERROR) from e

    config = _apply_overrides(
        config,
        simulation_class=simulation_class,
        reports_only=reports_only,
        no_reports=no_reports,
        run_multiple=run_multiple,
        continue_on_assertion_failure=continue_on_assertion_failure,
        fail_on_error=fail_on_error,
        disable_compiler=disable_compiler,
        skip=skip,
        run_description=run_description,
    )
    config.reporting = _apply_reporting_overrides(
        config,
        reporting=reporting,
        reporting_url=reporting_url,
        test_run_id=test_run_id,
        assert_results=assert_results,
    )

    try:
        result = Workflow(config).execute(simulation or None)
    except WorkflowError as e:
        cause = e.__cause__
        if isinstance(cause, SimulationAssertionsFailedError):
            console.print(f"[red]Assertions failed:[/red] {cause}")
            raise typer.Exit(EXIT_ASSERTIONS_FAILED) from e
        console.print(f"[red]Run failed:[/red] {cause or e}")
        raise typer.Exit(EXIT_ERROR) from e
    except (VerdictUnavailableError, VerdictFailedError) as e:
        console.print(f"[red]Verdict failed:[/red] {e}")
        raise typer.Exit(EXIT_VERDICT_FAILED) from e
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(EXIT_ERROR) from e

    _print_result(result)


def _apply_overrides(config: SimforkConfig, **overrides: object) -> SimforkConfig:
    """Apply command line flags that were actually given."""
    changes: dict[str, object] = {}
    if overrides["simulation_class"] is not None:
        changes["simulation_class"] = overrides["simulation_class"]
    if overrides["reports_only"] is not None:
        changes["reports_only"] = overrides["reports_only"]
    if overrides["run_description"] is not None:
        changes["run_description"] = overrides["run_description"]
    if overrides["continue_on_assertion_failure"] is not None:
        changes["continue_on_assertion_failure"] = overrides["continue_on_assertion_failure"]
    if overrides["fail_on_error"] is not None:
        changes["fail_on_error"] = overrides["fail_on_error"]
    # Plain flags only switch things on
    for flag, name in (
        ("no_reports", "no_reports"),
        ("run_multiple", "run_multiple_simulations"),
        ("disable_compiler", "disable_compiler"),
        ("skip", "skip"),
    ):
        if overrides[flag]:
            changes[name] = True
    return dataclasses.replace(config, **changes)


def _apply_reporting_overrides(
    config: SimforkConfig,
    reporting: bool | None,
    reporting_url: str | None,
    test_run_id: str | None,
    assert_results: bool | None,
) -> ReportingConfig:
    changes: dict[str, object] = {}
    if reporting is not None:
        changes["enabled"] = reporting
    if reporting_url is not None:
        changes["url"] = reporting_url
    if test_run_id is not None:
        changes["test_run_id"] = test_run_id
    if assert_results is not None:
        changes["assert_results"] = assert_results
    return dataclasses.replace(config.reporting, **changes)


def _print_result(result: WorkflowResult) -> None:
    """Print the outcome so a tolerated failure never looks like a clean run."""
    if result.status == "skipped":
        console.print("[dim]Skipped[/dim]")
        return

    attempted = result.iteration.attempted if result.iteration else 0
    if result.status == "passed":
        console.print(f"[green]All simulations passed[/green] ({attempted} run)")
    elif result.status == "assertions_failed":
        console.print(
            f"[yellow]Assertions failed (build not failed):[/yellow] {result.error}"
        )
    else:
        console.print(f"[yellow]Run errored (build not failed):[/yellow] {result.error}")

    if result.verdict is not None:
        console.print(f"[green]Verdict:[/green] {result.verdict.message}")
