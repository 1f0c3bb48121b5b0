# Copyright (c) Syntropy Systems
"""simfork doctor command."""

import shutil
from pathlib import Path

from rich.console import Console

from simfork.config import find_config_dir, load_config
from simfork.constants import CONFIG_FILE_NAME
from simfork.errors import ConfigError

console = Console()


def doctor() -> None:
    """Check simfork setup and diagnose issues.

    Verifies:
    - config file exists and parses
    - java executable is available
    - simulation folders exist
    - reporting settings are complete
    """
    issues: list[str] = []
    warnings: list[str] = []

    config_dir = find_config_dir()
    if config_dir is None:
        console.print("[yellow]\u26a0[/yellow] No .simfork directory found, using defaults")
        console.print("  Run [bold]simfork init[/bold] to initialize a project")
        warnings.append("No config")
    else:
        console.print(f"[green]\u2713[/green] simfork directory: {config_dir}")

    try:
        config = load_config(config_dir / CONFIG_FILE_NAME if config_dir else None)
    except ConfigError as e:
        console.print(f"[red]\u2717[/red] {e}")
        console.print("\n[red]Found 1 issue(s)[/red]")
        return

    # Check java
    java = shutil.which(config.java_executable)
    if java is None and not Path(config.java_executable).is_file():
        console.print(f"[red]\u2717[/red] java not found: {config.java_executable}")
        issues.append("Java missing")
    else:
        console.print(f"[green]\u2713[/green] java: {java or config.java_executable}")

    # Check folders
    for label, folder in (
        ("simulations", config.simulations_folder),
        ("data", config.data_folder),
        ("bodies", config.bodies_folder),
    ):
        if folder.is_dir():
            console.print(f"[green]\u2713[/green] {label} folder: {folder}")
        else:
            console.print(f"[yellow]\u26a0[/yellow] {label} folder missing: {folder}")
            warnings.append(f"{label} folder missing")

    if not config.test_classpath:
        console.print("[yellow]\u26a0[/yellow] test_classpath is empty")
        warnings.append("Empty test classpath")

    # Check reporting
    reporting = config.reporting
    if not reporting.enabled:
        console.print("[dim]-[/dim] Reporting: disabled")
    elif not reporting.url:
        console.print("[red]\u2717[/red] Reporting enabled but no url configured")
        issues.append("Reporting url missing")
    else:
        console.print(f"[green]\u2713[/green] Reporting: {reporting.url}")
        if reporting.test_run_id.startswith("UNKNOWN"):
            console.print("[yellow]\u26a0[/yellow] Reporting: test_run_id not set")
            warnings.append("test_run_id not set")

    # Summary
    console.print()
    if issues:
        console.print(f"[red]Found {len(issues)} issue(s)[/red]")
        for issue in issues:
            console.print(f"  - {issue}")
    elif warnings:
        console.print(f"[yellow]Found {len(warnings)} warning(s)[/yellow]")
        for warning in warnings:
            console.print(f"  - {warning}")
    else:
        console.print("[green]All checks passed[/green]")
