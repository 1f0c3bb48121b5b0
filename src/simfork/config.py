# Copyright (c) Syntropy Systems
"""Configuration management for simfork."""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import yaml

from simfork.constants import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    KEEP_ALIVE_INTERVAL_SECONDS,
    VERDICT_MAX_ATTEMPTS,
    VERDICT_RETRY_DELAY_SECONDS,
)
from simfork.errors import ConfigError
from simfork.models.reporting import RunIdentity

logger = logging.getLogger(__name__)


@dataclass
class ReportingConfig:
    """Settings for the benchmarking service."""

    enabled: bool = False
    url: str = ""
    application: str = "UNKNOWN_APPLICATION"
    test_type: str = "UNKNOWN_TEST_TYPE"
    test_environment: str = "UNKNOWN_TEST_ENVIRONMENT"
    test_run_id: str = "UNKNOWN_TEST_RUN_ID"
    ci_build_results_url: str = ""
    application_release: str = ""
    rampup_time_seconds: int = 0
    constant_load_time_seconds: int = 0

    # Poll the verdict after the run and fail if any check fails
    assert_results: bool = False

    annotations: str = ""
    variables: dict[str, str] = field(default_factory=dict)

    keep_alive_interval: float = KEEP_ALIVE_INTERVAL_SECONDS
    verdict_max_attempts: int = VERDICT_MAX_ATTEMPTS
    verdict_retry_delay: float = VERDICT_RETRY_DELAY_SECONDS
    timeout: float = 30.0

    def identity(self) -> RunIdentity:
        """Build the run identity shared by every reporting call."""
        return RunIdentity.from_load_times(
            self.rampup_time_seconds,
            self.constant_load_time_seconds,
            application=self.application,
            test_type=self.test_type,
            test_environment=self.test_environment,
            test_run_id=self.test_run_id,
            application_release=self.application_release,
            ci_build_results_url=self.ci_build_results_url,
        )


@dataclass
class SimforkConfig:
    """Configuration for simfork."""

    # Disable simfork entirely
    skip: bool = False

    # Skip the compile step when sources are compiled elsewhere
    disable_compiler: bool = False

    # Run simulations without generating reports
    no_reports: bool = False

    # Only generate reports for the results in this folder
    reports_only: str | None = None

    # Run this simulation instead of the discovered ones
    simulation_class: str | None = None

    # Discovered simulation names, in run order
    simulations: list[str] = field(default_factory=list)
    includes: list[str] = field(default_factory=list)
    excludes: list[str] = field(default_factory=list)
    run_multiple_simulations: bool = False

    continue_on_assertion_failure: bool = False
    fail_on_error: bool = True

    propagate_system_properties: bool = True
    system_properties: dict[str, str] = field(default_factory=dict)

    simulations_folder: Path = Path("src/test/scala")
    data_folder: Path = Path("src/test/resources/data")
    bodies_folder: Path = Path("src/test/resources/bodies")
    results_folder: Path = Path("target/gatling")
    compiled_classes_folder: Path = Path("target/test-classes")

    run_description: str = ""
    output_name: str | None = None

    jvm_args: list[str] = field(default_factory=list)
    include_default_jvm_args: bool = False
    compiler_jvm_args: list[str] = field(default_factory=list)
    include_default_compiler_jvm_args: bool = False

    test_classpath: list[str] = field(default_factory=list)
    compiler_classpath: list[str] = field(default_factory=list)
    plugin_archive: str | None = None

    java_executable: str = "java"

    # Seconds before a forked process is terminated (None = no limit)
    fork_timeout: float | None = None

    # Grace period before SIGKILL after SIGTERM (seconds)
    kill_grace_period: float = 10.0

    reporting: ReportingConfig = field(default_factory=ReportingConfig)

    def resolve_paths(self, root: Path) -> SimforkConfig:
        """Return a copy whose relative folders are anchored at root."""
        updates: dict[str, Path] = {}
        for name in _PATH_FIELDS:
            value = cast("Path", getattr(self, name))
            if not value.is_absolute():
                updates[name] = root / value
        return dataclasses.replace(self, **updates)


_PATH_FIELDS = (
    "simulations_folder",
    "data_folder",
    "bodies_folder",
    "results_folder",
    "compiled_classes_folder",
)


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    raise TypeError


def _as_str(value: object) -> str:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    raise TypeError


def _as_optional_str(value: object) -> str | None:
    return None if value is None else _as_str(value)


def _as_int(value: object) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    raise TypeError


def _as_float(value: object) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise TypeError


def _as_optional_float(value: object) -> float | None:
    return None if value is None else _as_float(value)


def _as_str_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list):
        return [_as_str(item) for item in cast("list[object]", value)]
    raise TypeError


def _as_str_map(value: object) -> dict[str, str]:
    if isinstance(value, dict):
        data = cast("dict[object, object]", value)
        return {str(key): _as_str(item) for key, item in data.items()}
    raise TypeError


def _as_path(value: object) -> Path:
    if isinstance(value, str):
        return Path(value)
    raise TypeError


_REPORTING_FIELDS: dict[str, Callable[[object], object]] = {
    "enabled": _as_bool,
    "url": _as_str,
    "application": _as_str,
    "test_type": _as_str,
    "test_environment": _as_str,
    "test_run_id": _as_str,
    "ci_build_results_url": _as_str,
    "application_release": _as_str,
    "rampup_time_seconds": _as_int,
    "constant_load_time_seconds": _as_int,
    "assert_results": _as_bool,
    "annotations": _as_str,
    "variables": _as_str_map,
    "keep_alive_interval": _as_float,
    "verdict_max_attempts": _as_int,
    "verdict_retry_delay": _as_float,
    "timeout": _as_float,
}

_CONFIG_FIELDS: dict[str, Callable[[object], object]] = {
    "skip": _as_bool,
    "disable_compiler": _as_bool,
    "no_reports": _as_bool,
    "reports_only": _as_optional_str,
    "simulation_class": _as_optional_str,
    "simulations": _as_str_list,
    "includes": _as_str_list,
    "excludes": _as_str_list,
    "run_multiple_simulations": _as_bool,
    "continue_on_assertion_failure": _as_bool,
    "fail_on_error": _as_bool,
    "propagate_system_properties": _as_bool,
    "system_properties": _as_str_map,
    "simulations_folder": _as_path,
    "data_folder": _as_path,
    "bodies_folder": _as_path,
    "results_folder": _as_path,
    "compiled_classes_folder": _as_path,
    "run_description": _as_str,
    "output_name": _as_optional_str,
    "jvm_args": _as_str_list,
    "include_default_jvm_args": _as_bool,
    "compiler_jvm_args": _as_str_list,
    "include_default_compiler_jvm_args": _as_bool,
    "test_classpath": _as_str_list,
    "compiler_classpath": _as_str_list,
    "plugin_archive": _as_optional_str,
    "java_executable": _as_str,
    "fork_timeout": _as_optional_float,
    "kill_grace_period": _as_float,
}


def _apply(
    target: object,
    data: dict[str, object],
    fields: dict[str, Callable[[object], object]],
    section: str,
) -> None:
    """Copy known keys of data onto target, ignoring values of the wrong type."""
    for key, value in data.items():
        convert = fields.get(key)
        if convert is None:
            continue
        try:
            setattr(target, key, convert(value))
        except TypeError:
            logger.warning("Ignoring invalid value for %s%s: %r", section, key, value)


def find_config_dir(start_path: Path | None = None) -> Path | None:
    """Find the nearest .simfork directory by walking up from start_path.

    Returns None if no .simfork directory is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        config_dir = current / CONFIG_DIR_NAME
        if config_dir.is_dir():
            return config_dir
        current = current.parent

    # Check root
    config_dir = current / CONFIG_DIR_NAME
    if config_dir.is_dir():
        return config_dir

    return None


def get_global_config_dir() -> Path:
    """Get the global simfork config directory (~/.simfork)."""
    return Path.home() / CONFIG_DIR_NAME


def locate_config_file(config_dir: Path | None = None) -> Path | None:
    """Locate the config file to load.

    Looks for config in:
    1. Provided config_dir
    2. Nearest .simfork directory walking up
    3. ~/.simfork/config.yaml
    """
    if config_dir is not None:
        return config_dir / CONFIG_FILE_NAME

    found_dir = find_config_dir()
    if found_dir is not None:
        return found_dir / CONFIG_FILE_NAME

    global_config = get_global_config_dir() / CONFIG_FILE_NAME
    if global_config.exists():
        return global_config

    return None


def load_config(
    config_path: Path | None = None,
    config_dir: Path | None = None,
) -> SimforkConfig:
    """Load configuration from a YAML file, falling back to defaults.

    Relative folders are resolved against the project root: the directory
    holding the .simfork directory, or the current directory when no file
    is found or the file is the global one.

    Raises:
        ConfigError: If an explicitly given file is missing or not valid YAML

    """
    config = SimforkConfig()

    if config_path is not None and not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise ConfigError(msg)

    path = config_path or locate_config_file(config_dir)
    if path is None or not path.exists():
        return config.resolve_paths(Path.cwd())

    try:
        with path.open() as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        msg = f"Invalid config file {path}: {e}"
        raise ConfigError(msg) from e

    if not isinstance(raw, dict):
        msg = f"Invalid config file {path}: expected a mapping"
        raise ConfigError(msg)
    data = cast("dict[str, object]", raw)

    _apply(config, data, _CONFIG_FIELDS, "")
    reporting = data.get("reporting")
    if isinstance(reporting, dict):
        _apply(
            config.reporting,
            cast("dict[str, object]", reporting),
            _REPORTING_FIELDS,
            "reporting.",
        )

    return config.resolve_paths(_project_root(path))


def _project_root(path: Path) -> Path:
    """Directory that relative folders of the config file at path resolve against.

    The global config is shared by all projects, so its folders resolve
    against the current directory.
    """
    parent = path.parent
    if parent.resolve() == get_global_config_dir().resolve():
        return Path.cwd()
    return parent.parent if parent.name == CONFIG_DIR_NAME else parent


def default_config_data() -> dict[str, object]:
    """Config values written by ``simfork init``."""
    defaults = SimforkConfig()
    return {
        "simulations_folder": str(defaults.simulations_folder),
        "data_folder": str(defaults.data_folder),
        "bodies_folder": str(defaults.bodies_folder),
        "results_folder": str(defaults.results_folder),
        "compiled_classes_folder": str(defaults.compiled_classes_folder),
        "simulations": [],
        "run_multiple_simulations": defaults.run_multiple_simulations,
        "continue_on_assertion_failure": defaults.continue_on_assertion_failure,
        "fail_on_error": defaults.fail_on_error,
        "test_classpath": [],
        "compiler_classpath": [],
        "reporting": {
            "enabled": False,
            "url": "",
            "application": defaults.reporting.application,
            "test_type": defaults.reporting.test_type,
            "test_environment": defaults.reporting.test_environment,
            "assert_results": False,
        },
    }
