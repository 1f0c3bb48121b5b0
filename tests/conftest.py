# Copyright (c) Syntropy Systems
"""Pytest fixtures for simfork tests."""
from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from .helpers import FakeJava, RecordingLog

# Store original cwd at module load time
_original_cwd = Path.cwd()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_java(temp_dir: Path) -> FakeJava:
    """An executable fake java in a temporary bin directory."""
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()
    return FakeJava(bin_dir)


@pytest.fixture
def recording_log() -> RecordingLog:
    return RecordingLog()


@pytest.fixture
def simfork_project(temp_dir: Path, fake_java: FakeJava) -> Generator[Path, None, None]:
    """Create a temporary simfork project wired to the fake java."""
    config_dir = temp_dir / ".simfork"
    config_dir.mkdir()
    for folder in ("src/test/scala", "src/test/resources/data", "src/test/resources/bodies"):
        (temp_dir / folder).mkdir(parents=True)

    config = {
        "java_executable": str(fake_java.path),
        "simulations": ["sims.Smoke"],
        "test_classpath": ["target/test-classes", "lib/gatling.jar"],
        "compiler_classpath": ["lib/zinc.jar"],
        "kill_grace_period": 1,
    }
    _ = (config_dir / "config.yaml").write_text(json.dumps(config))

    # Change to temp directory
    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)
