# Copyright (c) Syntropy Systems
"""simfork init command."""

from pathlib import Path

import typer
import yaml
from rich.console import Console

from simfork.config import default_config_data
from simfork.constants import CONFIG_DIR_NAME, CONFIG_FILE_NAME

console = Console()


def init(
    path: Path = typer.Argument(
        Path(),
        help="Directory to initialize (default: current directory)",
    ),
) -> None:
    """Initialize a new simfork project.

    Creates a .simfork directory with a default configuration.
    """
    target = path.resolve()
    config_dir = target / CONFIG_DIR_NAME

    if config_dir.exists():
        console.print(f"[yellow]Already initialized:[/yellow] {config_dir}")
        return

    config_dir.mkdir(parents=True)

    config_path = config_dir / CONFIG_FILE_NAME
    with config_path.open("w") as f:
        yaml.safe_dump(default_config_data(), f, default_flow_style=False, sort_keys=False)

    console.print(f"[green]Initialized simfork project:[/green] {config_dir}")
    console.print(f"  [dim]config:[/dim] {config_path}")
