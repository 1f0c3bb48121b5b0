# Copyright (c) Syntropy Systems
"""Exception hierarchy for simfork."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from simfork.models.process import ProcessOutcome


class SimforkError(Exception):
    """Base class for all simfork errors."""


class ConfigError(SimforkError):
    """Invalid or missing configuration."""


class LaunchError(SimforkError):
    """The child process could not be started."""


class ProcessError(SimforkError):
    """A forked process finished with a non-success outcome.

    Attributes:
        outcome: The classified outcome of the process
        target: The simulation being run, if any

    """

    outcome: ProcessOutcome
    target: str | None

    def __init__(
        self,
        message: str,
        outcome: ProcessOutcome,
        target: str | None = None,
    ) -> None:
        super().__init__(message)
        self.outcome = outcome
        self.target = target

    @property
    def exit_code(self) -> int | None:
        """Exit code of the process (None on timeout)."""
        return self.outcome.exit_code


class ProcessTimeoutError(ProcessError):
    """The process exceeded its allotted time and was terminated."""


class GenericProcessError(ProcessError):
    """The process exited with a non-zero code other than 2."""


class SimulationAssertionsFailedError(ProcessError):
    """The simulation ran to completion but its assertions failed (exit code 2)."""


class CompilationError(ProcessError):
    """The simulation compiler did not succeed."""


class NoSimulationsError(SimforkError):
    """No runnable simulation could be selected."""


class ReportingTransportError(SimforkError):
    """HTTP failure while talking to the reporting service."""


class VerdictUnavailableError(SimforkError):
    """The verdict could not be retrieved within the retry budget."""


class VerdictFailedError(SimforkError):
    """One or more checks of the verdict are failing."""


class WorkflowError(SimforkError):
    """The workflow failed; the triggering error is attached as __cause__."""
