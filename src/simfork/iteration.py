# Copyright (c) Syntropy Systems
"""Running a sequence of simulations under the continue-on-assertion-failure policy.

Simulations run strictly one after another: they share result and report
folders. A run whose assertions fail is recoverable; any other error stops
the sequence at once.

With ``continue_on_assertion_failure`` every target is attempted, but the
first recorded assertion failure is still raised once the sequence ends.
An assertion failure on the last target is raised immediately when nothing
failed before it, whatever the policy.
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from simfork.errors import SimforkError, SimulationAssertionsFailedError

if TYPE_CHECKING:
    from simfork.log import RunLogger

logger = logging.getLogger(__name__)


class _TargetRunner(Protocol):
    def run(self, target: str | None) -> None:
        ...


class Action(enum.Enum):
    """What the iterator does after a target's assertions failed."""

    RAISE = "raise"
    CONTINUE = "continue"


@dataclass
class IterationResult:
    """Outcome of iterating over the targets.

    Attributes:
        attempted: Number of targets that were run
        last_assertion_failure: Pending failure, kept only under the continue policy
        fatal: Error that stopped the iteration immediately

    """

    attempted: int = 0
    last_assertion_failure: SimulationAssertionsFailedError | None = None
    fatal: SimforkError | None = None

    @property
    def ok(self) -> bool:
        return self.fatal is None and self.last_assertion_failure is None

    def raise_for_outcome(self, log: RunLogger | None = None) -> None:
        """Raise the error that decides the overall result, if any."""
        if self.fatal is not None:
            raise self.fatal
        if self.last_assertion_failure is not None:
            (log or logger).warning(
                "There were assertion failures while running your simulations, "
                "but continue_on_assertion_failure was set, so all %d simulations ran.",
                self.attempted,
            )
            raise self.last_assertion_failure


class IterationPolicy:
    """State machine deciding how failures affect the remaining targets."""

    def __init__(self, continue_on_assertion_failure: bool) -> None:
        self.continue_on_assertion_failure = continue_on_assertion_failure
        self.result = IterationResult()

    def on_attempt(self) -> None:
        self.result.attempted += 1

    def on_assertion_failure(
        self,
        error: SimulationAssertionsFailedError,
        is_last: bool,
    ) -> Action:
        pending = self.result.last_assertion_failure
        if pending is None and is_last:
            self.result.fatal = error
            return Action.RAISE
        if not self.continue_on_assertion_failure:
            self.result.fatal = error
            return Action.RAISE
        if pending is None:
            self.result.last_assertion_failure = error
        return Action.CONTINUE

    def on_error(self, error: SimforkError) -> Action:
        self.result.fatal = error
        return Action.RAISE


class MultiRunIterator:
    """Drives a simulation runner across a list of targets."""

    def __init__(
        self,
        runner: _TargetRunner,
        continue_on_assertion_failure: bool = False,
        log: RunLogger | None = None,
    ) -> None:
        self.runner = runner
        self.continue_on_assertion_failure = continue_on_assertion_failure
        self._log = log or logger

    def iterate(self, targets: Sequence[str | None]) -> IterationResult:
        """Run the targets and return the result without raising."""
        policy = IterationPolicy(self.continue_on_assertion_failure)
        count = len(targets)
        for index, target in enumerate(targets):
            policy.on_attempt()
            try:
                self.runner.run(target)
            except SimulationAssertionsFailedError as e:
                is_last = index == count - 1
                if policy.on_assertion_failure(e, is_last) is Action.RAISE:
                    break
                if is_last:
                    self._log.warning(
                        "Assertions failed for %s (%d/%d), already recording an earlier failure",
                        target, index + 1, count,
                    )
                else:
                    self._log.warning(
                        "Assertions failed for %s (%d/%d), continuing with the next simulation",
                        target, index + 1, count,
                    )
            except SimforkError as e:
                policy.on_error(e)
                self._log.error(
                    "Simulation %s failed (%d/%d), skipping the remaining simulations",
                    target, index + 1, count,
                )
                break
        return policy.result

    def run_all(self, targets: Sequence[str | None]) -> IterationResult:
        """Run the targets and raise the deciding error, if any.

        Raises:
            SimulationAssertionsFailedError: A target's assertions failed
            SimforkError: Any fatal error from a target

        """
        result = self.iterate(targets)
        result.raise_for_outcome(self._log)
        return result
