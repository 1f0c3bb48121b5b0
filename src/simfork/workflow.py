# Copyright (c) Syntropy Systems
"""The build-time workflow: compile, run the simulations, report the run."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from simfork.client import ReportingClient
from simfork.compiler import CompileStep, compiler_jvm_args
from simfork.errors import (
    ConfigError,
    NoSimulationsError,
    SimforkError,
    SimulationAssertionsFailedError,
    WorkflowError,
)
from simfork.iteration import IterationResult, MultiRunIterator
from simfork.runner import ProcessRunner
from simfork.simulation import SimulationArgs, SimulationRunner, gatling_jvm_args
from simfork.verdict import Verdict, assert_verdict

if TYPE_CHECKING:
    from simfork.config import SimforkConfig
    from simfork.log import RunLogger

logger = logging.getLogger(__name__)

WorkflowStatus = Literal["passed", "skipped", "assertions_failed", "errored"]


@dataclass
class WorkflowResult:
    """What happened during a workflow that did not raise."""

    status: WorkflowStatus
    error: SimforkError | None = None
    iteration: IterationResult | None = None
    verdict: Verdict | None = None


def select_simulations(config: SimforkConfig, discovered: Sequence[str]) -> list[str]:
    """Pick the simulations to run.

    An explicit simulation class wins over the discovered names, which are
    filtered by the include and exclude lists.

    Raises:
        NoSimulationsError: If nothing is left, or several simulations are
            left while running multiple simulations is not enabled

    """
    if config.simulation_class is not None:
        return [config.simulation_class]

    simulations = [
        name
        for name in discovered
        if (not config.includes or name in config.includes)
        and name not in config.excludes
    ]

    if not simulations:
        msg = "No simulations to run"
        raise NoSimulationsError(msg)

    if len(simulations) > 1 and not config.run_multiple_simulations:
        msg = (
            "More than 1 simulation to run, need to specify one, "
            "or enable run_multiple_simulations"
        )
        raise NoSimulationsError(msg)

    return simulations


def build_reporter(config: SimforkConfig, log: RunLogger | None = None) -> ReportingClient:
    """Create the reporting client, disabled unless reporting is enabled.

    Raises:
        ConfigError: If reporting is enabled without a service URL

    """
    reporting = config.reporting
    if not reporting.enabled:
        return ReportingClient.disabled(reporting.identity())
    if not reporting.url:
        msg = "Reporting is enabled but no reporting url is configured"
        raise ConfigError(msg)
    return ReportingClient(
        reporting.url,
        reporting.identity(),
        variables=reporting.variables,
        annotations=reporting.annotations,
        timeout=reporting.timeout,
        keep_alive_interval=reporting.keep_alive_interval,
        verdict_max_attempts=reporting.verdict_max_attempts,
        verdict_retry_delay=reporting.verdict_retry_delay,
        log=log,
    )


class Workflow:
    """Runs the compile and simulation phase under the reporting scope."""

    def __init__(
        self,
        config: SimforkConfig,
        *,
        process_runner: ProcessRunner | None = None,
        reporter: ReportingClient | None = None,
        log: RunLogger | None = None,
    ) -> None:
        self.config = config
        self.process_runner = process_runner or ProcessRunner(
            kill_grace_period=config.kill_grace_period,
        )
        self.reporter = reporter
        self._log = log or logger

    def compile_step(self) -> CompileStep:
        config = self.config
        return CompileStep(
            compiler_classpath=config.compiler_classpath,
            test_classpath=config.test_classpath,
            simulations_folder=config.simulations_folder,
            compiled_classes_folder=config.compiled_classes_folder,
            jvm_args=compiler_jvm_args(
                config.compiler_jvm_args, config.include_default_compiler_jvm_args
            ),
            plugin_archive=config.plugin_archive,
            java_executable=config.java_executable,
            timeout=config.fork_timeout,
            runner=self.process_runner,
        )

    def simulation_runner(self) -> SimulationRunner:
        config = self.config
        return SimulationRunner(
            args=SimulationArgs(
                data_folder=config.data_folder,
                results_folder=config.results_folder,
                bodies_folder=config.bodies_folder,
                simulations_folder=config.simulations_folder,
                run_description=config.run_description,
                no_reports=config.no_reports,
                reports_only=config.reports_only,
                output_name=config.output_name,
            ),
            test_classpath=config.test_classpath,
            jvm_args=gatling_jvm_args(config.jvm_args, config.include_default_jvm_args),
            propagate_system_properties=config.propagate_system_properties,
            system_properties=list(config.system_properties.items()),
            java_executable=config.java_executable,
            timeout=config.fork_timeout,
            runner=self.process_runner,
        )

    def _run_phase(self, discovered: Sequence[str]) -> IterationResult:
        if not self.config.disable_compiler:
            self.compile_step().run()

        if self.config.reports_only is not None:
            targets: list[str | None] = [None]
        else:
            targets = list(select_simulations(self.config, discovered))

        iterator = MultiRunIterator(
            self.simulation_runner(),
            continue_on_assertion_failure=self.config.continue_on_assertion_failure,
            log=self._log,
        )
        return iterator.iterate(targets)

    def execute(self, simulations: Sequence[str] | None = None) -> WorkflowResult:
        """Run the whole workflow.

        Args:
            simulations: Discovered simulation names (defaults to the configured list)

        Returns:
            The result when the workflow does not fail the build

        Raises:
            WorkflowError: If the run failed and fail_on_error is set
            VerdictUnavailableError: If the verdict could not be retrieved
            VerdictFailedError: If the verdict reports failing checks

        """
        config = self.config
        if config.skip:
            self._log.info("Skipping simfork")
            return WorkflowResult(status="skipped")

        discovered = list(simulations) if simulations is not None else config.simulations
        owns_reporter = self.reporter is None
        reporter = self.reporter or build_reporter(config, self._log)

        config.results_folder.mkdir(parents=True, exist_ok=True)

        iteration: IterationResult | None = None
        error: SimforkError | None = None
        try:
            try:
                with reporter.keep_alive():
                    iteration = self._run_phase(discovered)
                    iteration.raise_for_outcome(self._log)
            except SimforkError as e:
                error = e
            finally:
                reporter.finish()

            if error is not None:
                if config.fail_on_error:
                    msg = f"Simulation run failed: {error}"
                    raise WorkflowError(msg) from error
                self._log.warning(
                    "There were some errors while running your simulation, but "
                    "fail_on_error was set to false, so the build won't fail: %s",
                    error,
                )

            verdict = self._check_verdict(reporter)
        finally:
            if owns_reporter:
                reporter.close()

        if error is None:
            status: WorkflowStatus = "passed"
        elif isinstance(error, SimulationAssertionsFailedError):
            status = "assertions_failed"
        else:
            status = "errored"
        return WorkflowResult(status=status, error=error, iteration=iteration, verdict=verdict)

    def _check_verdict(self, reporter: ReportingClient) -> Verdict | None:
        reporting = self.config.reporting
        if not reporter.enabled:
            return None
        if not reporting.assert_results:
            self._log.info("Verdict assertions disabled.")
            return None
        raw = reporter.poll_verdict()
        return assert_verdict(raw, self._log)
