# Copyright (c) Syntropy Systems
"""Forked JVM process runner with orphan prevention."""
from __future__ import annotations

import contextlib
import ctypes
import logging
import os
import signal
import subprocess
import sys
import time
from threading import Thread
from typing import IO, TYPE_CHECKING

from simfork.errors import LaunchError
from simfork.models.process import ProcessOutcome, ProcessSpec

if TYPE_CHECKING:
    from pathlib import Path

    from simfork.log import RunLogger

logger = logging.getLogger(__name__)
process_logger = logging.getLogger("simfork.process")

# Variables kept when the parent environment is not propagated
MINIMAL_ENV_KEYS = ("PATH", "JAVA_HOME", "HOME", "LANG")

# Seconds to wait for remaining output once the child has exited
OUTPUT_DRAIN_TIMEOUT = 2.0


def setup_pdeathsig() -> None:
    """Set PDEATHSIG so child dies when parent dies.

    This prevents orphan JVMs when the build is killed.
    Only works on Linux.
    """
    if sys.platform != "linux":
        return
    try:
        libc = ctypes.CDLL("libc.so.6", use_errno=True)
        pr_set_pdeathsig = 1
        libc.prctl(pr_set_pdeathsig, signal.SIGKILL)
    except (AttributeError, OSError):
        # Can't set PDEATHSIG, continue without it
        return


def build_command(spec: ProcessSpec) -> list[str]:
    """Build the argv for a process spec.

    The classpath entries are joined with the platform path separator.
    """
    argv = [spec.java_executable, *spec.jvm_arguments]
    if spec.propagate_environment:
        argv.extend(f"-D{key}={value}" for key, value in spec.system_properties)
    if spec.classpath:
        argv.extend(["-cp", os.pathsep.join(spec.classpath)])
    argv.append(spec.main_entry_point)
    argv.extend(spec.program_arguments)
    return argv


def build_env(spec: ProcessSpec) -> dict[str, str]:
    """Build the child environment for a process spec."""
    if spec.propagate_environment:
        env = os.environ.copy()
    else:
        env = {key: os.environ[key] for key in MINIMAL_ENV_KEYS if key in os.environ}
    env.update(dict(spec.env))
    return env


class ProcessRunner:
    """Runs one forked process at a time and classifies its exit.

    Features:
    - Uses start_new_session=True for a reliable process group
    - Sets PDEATHSIG on Linux to prevent orphans
    - Forwards merged stdout/stderr to the logger (and optionally a file)
    - Terminates the process group gracefully, then forcefully, on timeout
    """

    kill_grace_period: float
    output_path: Path | None
    _log: RunLogger
    _process: subprocess.Popen[str] | None
    _reader: Thread | None
    _output_file: IO[str] | None

    def __init__(
        self,
        kill_grace_period: float = 10.0,
        output_path: Path | None = None,
        log: RunLogger | None = None,
    ) -> None:
        """Initialize a process runner.

        Args:
            kill_grace_period: Seconds to wait after SIGTERM before SIGKILL
            output_path: Optional file that receives a copy of child output
            log: Sink for child output lines (defaults to ``simfork.process``)

        """
        self.kill_grace_period = kill_grace_period
        self.output_path = output_path
        self._log = log or process_logger
        self._process = None
        self._reader = None
        self._output_file = None

    def run(self, spec: ProcessSpec, timeout: float | None = None) -> ProcessOutcome:
        """Run the process to completion and classify its exit.

        Args:
            spec: The process to fork
            timeout: Seconds before the process is terminated (None = no limit)

        Returns:
            The classified outcome

        Raises:
            LaunchError: If the process could not be started

        """
        argv = build_command(spec)
        logger.debug("Forking: %s", " ".join(argv))
        process = self._start(argv, build_env(spec))

        try:
            exit_code = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "Process %s exceeded %ss, terminating", spec.main_entry_point, timeout
            )
            exit_code = self.kill(grace_period=self.kill_grace_period)
            self._cleanup()
            return ProcessOutcome.timeout(exit_code)

        self._cleanup()
        outcome = ProcessOutcome.from_exit_code(exit_code)
        logger.debug("Process %s %s", spec.main_entry_point, outcome.describe())
        return outcome

    def _start(self, argv: list[str], env: dict[str, str]) -> subprocess.Popen[str]:
        if self.output_path is not None:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self._output_file = self.output_path.open("w")

        try:
            process = subprocess.Popen(  # noqa: S603
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                env=env,
                text=True,
                bufsize=1,
                start_new_session=True,  # Creates new process group
                preexec_fn=setup_pdeathsig if sys.platform == "linux" else None,  # noqa: PLW1509
            )
        except OSError as e:
            self._cleanup()
            msg = f"Unable to launch {argv[0]}: {e}"
            raise LaunchError(msg) from e

        self._process = process
        self._reader = Thread(
            target=self._forward_output, args=(process, self._output_file), daemon=True
        )
        self._reader.start()
        return process

    def _forward_output(
        self, process: subprocess.Popen[str], output_file: IO[str] | None
    ) -> None:
        """Forward child output lines to the log sink until EOF, then close the pipe."""
        stdout = process.stdout
        if stdout is None:
            return
        try:
            for line in stdout:
                self._log.info(line.rstrip("\n"))
                if output_file is not None:
                    with contextlib.suppress(ValueError):
                        _ = output_file.write(line)
        finally:
            with contextlib.suppress(OSError):
                stdout.close()

    def kill(self, grace_period: float = 10.0) -> int:
        """Kill the process.

        First sends SIGTERM to the process group, waits for grace_period,
        then sends SIGKILL if still alive.

        Args:
            grace_period: Seconds to wait after SIGTERM before SIGKILL

        Returns:
            Exit code (negative signal number if killed)

        """
        if self._process is None:
            return 0

        # Already finished?
        if self._process.poll() is not None:
            return self._process.returncode

        try:
            pgid = os.getpgid(self._process.pid)
        except (OSError, ProcessLookupError):
            # Process already gone
            return self._process.wait()

        with contextlib.suppress(OSError, ProcessLookupError):
            os.killpg(pgid, signal.SIGTERM)

        deadline = time.time() + grace_period
        while time.time() < deadline:
            if self._process.poll() is not None:
                return self._process.returncode
            time.sleep(0.1)

        # Still alive - SIGKILL
        with contextlib.suppress(OSError, ProcessLookupError):
            os.killpg(pgid, signal.SIGKILL)

        with contextlib.suppress(subprocess.TimeoutExpired):
            _ = self._process.wait(timeout=5.0)

        if self._process.returncode is None:
            return -signal.SIGKILL
        return self._process.returncode

    def _cleanup(self) -> None:
        """Release the reader thread, pipe and output file."""
        reader = self._reader
        self._reader = None
        if reader is not None:
            reader.join(timeout=OUTPUT_DRAIN_TIMEOUT)
            if reader.is_alive():
                # A leftover process still holds the pipe; the reader closes it at EOF
                logger.warning(
                    "Output of process %s is still open after exit, detaching reader",
                    self.pid,
                )
        self._process = None
        if self._output_file:
            with contextlib.suppress(Exception):
                self._output_file.close()
            self._output_file = None

    @property
    def pid(self) -> int | None:
        """Get the process ID of the running child."""
        if self._process is None:
            return None
        return self._process.pid
