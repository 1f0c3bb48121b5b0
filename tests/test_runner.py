# Copyright (c) Syntropy Systems
"""Tests for forking and classifying processes."""
from __future__ import annotations

import contextlib
import os
import signal
import time
from pathlib import Path

import pytest

from simfork.errors import LaunchError
from simfork.models.process import ProcessOutcome, ProcessSpec
from simfork.runner import ProcessRunner, build_command, build_env

from .helpers import FakeJava, RecordingLog


class TestExitCodeMapping:
    """Tests for mapping exit codes to outcomes."""

    def test_zero_is_success(self) -> None:
        outcome = ProcessOutcome.from_exit_code(0)
        assert outcome.kind == "success"
        assert outcome.is_success

    def test_two_is_assertions_failed(self) -> None:
        outcome = ProcessOutcome.from_exit_code(2)
        assert outcome.kind == "assertions_failed"
        assert not outcome.is_success

    @pytest.mark.parametrize("code", [1, 3, 42, 127, 255, -9, -15])
    def test_everything_else_is_errored(self, code: int) -> None:
        outcome = ProcessOutcome.from_exit_code(code)
        assert outcome.kind == "errored"
        assert outcome.exit_code == code
        assert not outcome.is_timeout

    def test_timeout_outcome(self) -> None:
        outcome = ProcessOutcome.timeout(-15)
        assert outcome.kind == "errored"
        assert outcome.is_timeout
        assert "timeout" in outcome.describe()


class TestBuildCommand:
    """Tests for assembling the java command line."""

    def test_order_of_arguments(self) -> None:
        spec = ProcessSpec(
            main_entry_point="com.example.Main",
            classpath=("a.jar", "b.jar"),
            jvm_arguments=("-Xmx1G",),
            program_arguments=("-s", "Sim"),
            java_executable="/opt/java/bin/java",
        )

        assert build_command(spec) == [
            "/opt/java/bin/java",
            "-Xmx1G",
            "-cp", f"a.jar{os.pathsep}b.jar",
            "com.example.Main",
            "-s", "Sim",
        ]

    def test_system_properties_only_when_propagating(self) -> None:
        spec = ProcessSpec(
            main_entry_point="Main",
            system_properties=(("env", "staging"),),
            propagate_environment=True,
        )
        assert "-Denv=staging" in build_command(spec)

        spec = ProcessSpec(
            main_entry_point="Main",
            system_properties=(("env", "staging"),),
            propagate_environment=False,
        )
        assert "-Denv=staging" not in build_command(spec)

    def test_environment_propagation(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SIMFORK_TEST_MARKER", "1")

        propagated = build_env(ProcessSpec("Main", propagate_environment=True))
        minimal = build_env(ProcessSpec("Main", env=(("EXTRA", "x"),)))

        assert propagated["SIMFORK_TEST_MARKER"] == "1"
        assert "SIMFORK_TEST_MARKER" not in minimal
        assert minimal["EXTRA"] == "x"
        assert "PATH" in minimal


class TestProcessRunner:
    """Tests for running real child processes."""

    def _spec(self, fake_java: FakeJava, main: str = "com.example.Main") -> ProcessSpec:
        return ProcessSpec(
            main_entry_point=main,
            classpath=("lib/a.jar",),
            program_arguments=("--flag",),
            java_executable=str(fake_java.path),
        )

    def test_success(self, fake_java: FakeJava) -> None:
        outcome = ProcessRunner().run(self._spec(fake_java))

        assert outcome.is_success
        assert fake_java.calls() == [["-cp", "lib/a.jar", "com.example.Main", "--flag"]]

    def test_assertions_failed(self, fake_java: FakeJava) -> None:
        fake_java.set("com.example.Main", 2)

        outcome = ProcessRunner().run(self._spec(fake_java))

        assert outcome.kind == "assertions_failed"
        assert outcome.exit_code == 2

    def test_other_exit_code_errors(self, fake_java: FakeJava) -> None:
        fake_java.set("com.example.Main", 3)

        outcome = ProcessRunner().run(self._spec(fake_java))

        assert outcome.kind == "errored"
        assert outcome.exit_code == 3

    def test_output_forwarded_to_log(
        self, fake_java: FakeJava, recording_log: RecordingLog
    ) -> None:
        _ = ProcessRunner(log=recording_log).run(self._spec(fake_java))

        lines = recording_log.messages("info")
        assert "running com.example.Main" in lines
        assert "stderr line" in lines

    def test_output_copied_to_file(self, fake_java: FakeJava, temp_dir: Path) -> None:
        output_path = temp_dir / "logs" / "output.log"

        _ = ProcessRunner(output_path=output_path).run(self._spec(fake_java))

        assert "running com.example.Main" in output_path.read_text()

    def test_missing_executable_is_launch_error(self, temp_dir: Path) -> None:
        spec = ProcessSpec("Main", java_executable=str(temp_dir / "no-such-java"))

        with pytest.raises(LaunchError, match="Unable to launch"):
            _ = ProcessRunner().run(spec)

    def test_non_executable_is_launch_error(self, temp_dir: Path) -> None:
        script = temp_dir / "java"
        _ = script.write_text("#!/bin/sh\nexit 0\n")
        script.chmod(0o644)

        with pytest.raises(LaunchError):
            _ = ProcessRunner().run(ProcessSpec("Main", java_executable=str(script)))

    def test_timeout_terminates_process(self, fake_java: FakeJava) -> None:
        fake_java.set("com.example.Main", "sleep:30")
        runner = ProcessRunner(kill_grace_period=1.0)

        start = time.time()
        outcome = runner.run(self._spec(fake_java), timeout=0.5)
        elapsed = time.time() - start

        assert outcome.is_timeout
        assert elapsed < 10
        assert runner.pid is None

    def test_runner_is_reusable(self, fake_java: FakeJava) -> None:
        runner = ProcessRunner()
        fake_java.set("first.Main", 2)

        first = runner.run(self._spec(fake_java, "first.Main"))
        second = runner.run(self._spec(fake_java, "second.Main"))

        assert first.kind == "assertions_failed"
        assert second.is_success

    def test_leftover_background_process_does_not_block(self, temp_dir: Path) -> None:
        pid_file = temp_dir / "background.pid"
        script = temp_dir / "java"
        _ = script.write_text(f"#!/bin/sh\nsleep 20 &\necho $! > {pid_file}\necho hi\nexit 0\n")
        script.chmod(0o755)
        runner = ProcessRunner()

        try:
            start = time.time()
            outcome = runner.run(ProcessSpec("Main", java_executable=str(script)))
            elapsed = time.time() - start
        finally:
            if pid_file.exists():
                with contextlib.suppress(OSError, ValueError):
                    os.kill(int(pid_file.read_text().strip()), signal.SIGKILL)

        assert outcome.is_success
        assert elapsed < 6
        assert runner.pid is None
