# Copyright (c) Syntropy Systems
"""Data models for simfork."""

from .process import ProcessOutcome, ProcessSpec
from .reporting import RunIdentity, TestRunEvent, VerdictCheck, VerdictDocument

__all__ = [
    "ProcessOutcome",
    "ProcessSpec",
    "RunIdentity",
    "TestRunEvent",
    "VerdictCheck",
    "VerdictDocument",
]
