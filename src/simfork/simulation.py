# Copyright (c) Syntropy Systems
"""Running a single load-test simulation in a forked process."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from simfork.constants import GATLING_JVM_ARGS, GATLING_MAIN_CLASS
from simfork.errors import (
    GenericProcessError,
    ProcessTimeoutError,
    SimulationAssertionsFailedError,
)
from simfork.models.process import ProcessSpec
from simfork.runner import ProcessRunner

logger = logging.getLogger(__name__)


def gatling_jvm_args(extra: Sequence[str], include_defaults: bool) -> list[str]:
    """User JVM arguments, followed by the defaults when requested."""
    args = list(extra)
    if include_defaults:
        args.extend(GATLING_JVM_ARGS)
    return args


@dataclass(frozen=True)
class SimulationArgs:
    """Folder layout and switches passed to every simulation run."""

    data_folder: Path
    results_folder: Path
    bodies_folder: Path
    simulations_folder: Path
    run_description: str = ""
    no_reports: bool = False
    reports_only: str | None = None
    output_name: str | None = None

    def for_target(self, target: str | None) -> list[str]:
        """Build the program arguments for one target (None = reports only)."""
        args = [
            "-df", str(self.data_folder.resolve()),
            "-rf", str(self.results_folder.resolve()),
            "-bdf", str(self.bodies_folder.resolve()),
            "-sf", str(self.simulations_folder.resolve()),
            "-rd", self.run_description,
        ]
        if self.no_reports:
            args.append("-nr")
        if target is not None:
            args.extend(["-s", target])
        if self.reports_only is not None:
            args.extend(["-ro", self.reports_only])
        if self.output_name is not None:
            args.extend(["-on", self.output_name])
        return args


@dataclass
class SimulationRunner:
    """Forks the load-testing tool for one simulation at a time."""

    args: SimulationArgs
    test_classpath: Sequence[str]
    jvm_args: Sequence[str] = ()
    propagate_system_properties: bool = True
    system_properties: Sequence[tuple[str, str]] = ()
    java_executable: str = "java"
    timeout: float | None = None
    runner: ProcessRunner = field(default_factory=ProcessRunner)

    def spec(self, target: str | None) -> ProcessSpec:
        return ProcessSpec(
            main_entry_point=GATLING_MAIN_CLASS,
            classpath=tuple(self.test_classpath),
            jvm_arguments=tuple(self.jvm_args),
            program_arguments=tuple(self.args.for_target(target)),
            propagate_environment=self.propagate_system_properties,
            java_executable=self.java_executable,
            system_properties=tuple(self.system_properties),
        )

    def run(self, target: str | None) -> None:
        """Run one simulation.

        Args:
            target: Fully-qualified simulation name, or None for reports only

        Raises:
            SimulationAssertionsFailedError: The run completed but its assertions failed
            ProcessTimeoutError: The run exceeded its timeout
            GenericProcessError: The run exited with any other non-zero code
            LaunchError: The JVM could not be started

        """
        label = target or "reports only"
        logger.info("Running simulation: %s", label)
        outcome = self.runner.run(self.spec(target), timeout=self.timeout)

        if outcome.is_success:
            logger.info("Simulation %s completed", label)
            return

        msg = f"Simulation {label} {outcome.describe()}"
        if outcome.kind == "assertions_failed":
            logger.warning(msg)
            raise SimulationAssertionsFailedError(msg, outcome, target)
        logger.error(msg)
        if outcome.is_timeout:
            raise ProcessTimeoutError(msg, outcome, target)
        raise GenericProcessError(msg, outcome, target)
