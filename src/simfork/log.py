# Copyright (c) Syntropy Systems
"""Logging setup for simfork."""
from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "simfork"


class RunLogger(Protocol):
    """Minimal logging capability components depend on.

    Any ``logging.Logger`` satisfies it, as does a test double.
    """

    def debug(self, msg: str, *args: object) -> None:
        ...

    def info(self, msg: str, *args: object) -> None:
        ...

    def warning(self, msg: str, *args: object) -> None:
        ...

    def error(self, msg: str, *args: object) -> None:
        ...


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Attach a rich handler to the simfork logger.

    Calling it again replaces the previously installed handler.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
