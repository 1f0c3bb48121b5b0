# Copyright (c) Syntropy Systems
"""Interpretation of the verdict document returned by the benchmarking service."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from simfork.errors import VerdictFailedError
from simfork.models.reporting import VerdictCheck, VerdictDocument

if TYPE_CHECKING:
    from simfork.log import RunLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Verdict:
    """Pass/fail decision with a message listing the relevant deep links."""

    passed: bool
    message: str
    document: VerdictDocument


def _checks(document: VerdictDocument) -> list[tuple[str, VerdictCheck]]:
    # Order of the lines in both messages
    return [
        ("Requirements", document.requirements),
        ("Benchmark to previous test run", document.benchmark_previous),
        ("Benchmark to baseline test run", document.benchmark_baseline),
    ]


def check_verdict(raw: str, log: RunLogger | None = None) -> Verdict:
    """Decide whether a raw verdict document passes.

    Any literal ``false`` in the document fails the verdict. The message then
    lists every check that is explicitly false; otherwise it lists every
    check that is explicitly true. Checks without a result are left out.
    """
    log = log or logger
    document = VerdictDocument.parse(raw)
    for name, check in _checks(document):
        log.info("%s result: %s", name, check.result)

    if "false" in raw:
        lines = ["One or more assertions are failing:"]
        lines.extend(
            f"{name} failed: {check.deeplink}"
            for name, check in _checks(document)
            if check.result is False
        )
        return Verdict(passed=False, message="\n".join(lines), document=document)

    lines = ["All assertions are OK:"]
    lines.extend(
        f"{name}: {check.deeplink}"
        for name, check in _checks(document)
        if check.result is True
    )
    return Verdict(passed=True, message="\n".join(lines), document=document)


def assert_verdict(raw: str, log: RunLogger | None = None) -> Verdict:
    """Check the verdict and raise when it fails.

    Raises:
        VerdictFailedError: If any check is failing

    """
    log = log or logger
    verdict = check_verdict(raw, log)
    if not verdict.passed:
        log.error(verdict.message)
        raise VerdictFailedError(verdict.message)
    log.info(verdict.message)
    return verdict
