# Copyright (c) Syntropy Systems
"""Main CLI entry point for simfork."""

import typer

from simfork.cli.doctor import doctor
from simfork.cli.init_cmd import init
from simfork.cli.run import run
from simfork.cli.verdict import verdict

app = typer.Typer(
    name="simfork",
    help=(
        "Fork load-test simulations during a build and report the run "
        "to a benchmarking service."
    ),
    no_args_is_help=True,
    add_completion=False,
)

# Register commands
_ = app.command()(init)
_ = app.command()(run)
_ = app.command()(verdict)
_ = app.command()(doctor)


if __name__ == "__main__":
    app()
