# Copyright (c) Syntropy Systems
"""Compilation of simulation sources in a forked compiler process."""
from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import TYPE_CHECKING

from simfork.constants import COMPILER_JVM_ARGS, COMPILER_MAIN_CLASS
from simfork.errors import CompilationError
from simfork.models.process import ProcessSpec
from simfork.runner import ProcessRunner

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


def compiler_jvm_args(extra: Sequence[str], include_defaults: bool) -> list[str]:
    """User compiler JVM arguments, followed by the defaults when requested."""
    args = list(extra)
    if include_defaults:
        args.extend(COMPILER_JVM_ARGS)
    return args


class CompileStep:
    """Compiles the simulations before any of them runs.

    Any outcome other than success is fatal.
    """

    def __init__(
        self,
        compiler_classpath: Sequence[str],
        test_classpath: Sequence[str],
        simulations_folder: Path,
        compiled_classes_folder: Path,
        jvm_args: Sequence[str] = (),
        plugin_archive: str | None = None,
        java_executable: str = "java",
        timeout: float | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        self.compiler_classpath = list(compiler_classpath)
        self.test_classpath = list(test_classpath)
        self.simulations_folder = simulations_folder
        self.compiled_classes_folder = compiled_classes_folder
        self.jvm_args = list(jvm_args)
        self.plugin_archive = plugin_archive
        self.java_executable = java_executable
        self.timeout = timeout
        self.runner = runner or ProcessRunner()

    def classpath(self) -> list[str]:
        """Compiler dependencies, then the test classpath, then the plugin archive."""
        entries = [*self.compiler_classpath, *self.test_classpath]
        if self.plugin_archive:
            entries.append(self.plugin_archive)
        return entries

    def arguments(self) -> list[str]:
        return [
            "-ccp", os.pathsep.join(self.test_classpath),
            "-sf", str(self.simulations_folder.resolve()),
            "-bf", str(self.compiled_classes_folder.resolve()),
        ]

    def spec(self) -> ProcessSpec:
        return ProcessSpec(
            main_entry_point=COMPILER_MAIN_CLASS,
            classpath=tuple(self.classpath()),
            jvm_arguments=tuple(self.jvm_args),
            program_arguments=tuple(self.arguments()),
            propagate_environment=False,
            java_executable=self.java_executable,
        )

    def run(self) -> None:
        """Compile the simulations.

        Raises:
            CompilationError: If the compiler did not succeed
            LaunchError: If the compiler could not be started

        """
        logger.info("Compiling simulations in %s", self.simulations_folder)
        outcome = self.runner.run(self.spec(), timeout=self.timeout)
        if not outcome.is_success:
            msg = f"Compilation failed: {outcome.describe()}"
            logger.error(msg)
            raise CompilationError(msg, outcome)
        logger.info("Compilation succeeded")
