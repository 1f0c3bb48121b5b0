# Copyright (c) Syntropy Systems
"""Value types describing a forked process and its outcome."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

OutcomeKind = Literal["success", "assertions_failed", "errored"]

EXIT_SUCCESS = 0
EXIT_ASSERTIONS_FAILED = 2


@dataclass(frozen=True)
class ProcessSpec:
    """Everything needed to fork one JVM process.

    Built once per invocation and never mutated.
    """

    main_entry_point: str
    classpath: tuple[str, ...] = ()
    jvm_arguments: tuple[str, ...] = ()
    program_arguments: tuple[str, ...] = ()
    propagate_environment: bool = False
    java_executable: str = "java"
    env: tuple[tuple[str, str], ...] = ()
    system_properties: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ProcessOutcome:
    """Classified result of a finished process."""

    kind: OutcomeKind
    exit_code: int | None = None
    cause: str | None = None

    @classmethod
    def from_exit_code(cls, exit_code: int) -> ProcessOutcome:
        """Map an exit code: 0 succeeds, 2 means assertions failed, all else errors."""
        if exit_code == EXIT_SUCCESS:
            return cls("success", exit_code)
        if exit_code == EXIT_ASSERTIONS_FAILED:
            return cls("assertions_failed", exit_code)
        if exit_code < 0:
            return cls("errored", exit_code, cause=f"killed by signal {-exit_code}")
        return cls("errored", exit_code, cause=f"exit code {exit_code}")

    @classmethod
    def timeout(cls, exit_code: int | None = None) -> ProcessOutcome:
        """Outcome of a process terminated because it ran too long."""
        return cls("errored", exit_code, cause="timeout")

    @property
    def is_success(self) -> bool:
        return self.kind == "success"

    @property
    def is_timeout(self) -> bool:
        return self.kind == "errored" and self.cause == "timeout"

    def describe(self) -> str:
        """Human readable summary used in log and error messages."""
        if self.kind == "success":
            return "succeeded"
        if self.kind == "assertions_failed":
            return "assertions failed (exit code 2)"
        return f"errored ({self.cause})"
