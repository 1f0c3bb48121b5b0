# Copyright (c) Syntropy Systems
"""Pydantic models for the reporting service payloads."""

from __future__ import annotations

import json
from collections.abc import Mapping
from contextlib import suppress

from pydantic import Field, StrictBool, StrictStr, ValidationError

from .base import FrozenModel, SimforkBaseModel


class RunIdentity(FrozenModel):
    """Immutable facts describing a run, reused by every reporting call."""

    application: str = "UNKNOWN_APPLICATION"
    test_type: str = "UNKNOWN_TEST_TYPE"
    test_environment: str = "UNKNOWN_TEST_ENVIRONMENT"
    test_run_id: str = "UNKNOWN_TEST_RUN_ID"
    application_release: str = ""
    ci_build_results_url: str = ""
    rampup_seconds: int = 0
    duration_seconds: int = 0

    @classmethod
    def from_load_times(
        cls,
        rampup_seconds: int,
        constant_load_seconds: int,
        **fields: str,
    ) -> RunIdentity:
        """Build an identity whose planned duration is ramp-up plus constant load."""
        return cls(
            rampup_seconds=rampup_seconds,
            duration_seconds=rampup_seconds + constant_load_seconds,
            **fields,
        )


class RunVariable(SimforkBaseModel):
    """A placeholder/value pair attached to a test run."""

    placeholder: str
    value: str


class TestRunEvent(SimforkBaseModel):
    """Body of a POST to ``{base_url}/test``."""

    __test__ = False

    test_run_id: str = Field(alias="testRunId")
    test_type: str = Field(alias="testType")
    test_environment: str = Field(alias="testEnvironment")
    application: str
    application_release: str = Field(alias="applicationRelease")
    ci_build_results_url: str = Field(alias="CIBuildResultsUrl")
    ramp_up: str = Field(alias="rampUp")
    duration: str
    completed: bool
    variables: list[RunVariable] | None = None
    annotations: str | None = None

    @classmethod
    def for_identity(
        cls,
        identity: RunIdentity,
        completed: bool,
        variables: Mapping[str, str] | None = None,
        annotations: str | None = None,
    ) -> TestRunEvent:
        """Build the event body; empty variables and annotations are left out."""
        return cls(
            test_run_id=identity.test_run_id,
            test_type=identity.test_type,
            test_environment=identity.test_environment,
            application=identity.application,
            application_release=identity.application_release,
            ci_build_results_url=identity.ci_build_results_url,
            ramp_up=str(identity.rampup_seconds),
            duration=str(identity.duration_seconds),
            completed=completed,
            variables=[
                RunVariable(placeholder=name, value=str(value))
                for name, value in variables.items()
            ]
            if variables
            else None,
            annotations=annotations or None,
        )

    def to_json(self) -> dict[str, object]:
        """Serialize with wire names, omitting unset optional keys."""
        return self.model_dump(by_alias=True, exclude_none=True)


class VerdictCheck(SimforkBaseModel):
    """One named check of the verdict document."""

    result: StrictBool | None = None
    deeplink: StrictStr | None = None


class VerdictDocument(SimforkBaseModel):
    """Parsed verdict returned by the benchmarking service.

    Any check missing from the raw response stays empty rather than
    defaulting to a failing result.
    """

    requirements: VerdictCheck = Field(default_factory=VerdictCheck)
    benchmark_previous: VerdictCheck = Field(default_factory=VerdictCheck)
    benchmark_baseline: VerdictCheck = Field(default_factory=VerdictCheck)

    @classmethod
    def parse(cls, raw: str) -> VerdictDocument:
        """Parse a raw response body, suppressing any extraction error."""
        data: object = None
        with suppress(ValueError, TypeError):
            data = json.loads(raw)

        return cls(
            requirements=_read_check(data, "requirements"),
            benchmark_previous=_read_check(data, "benchmarkPreviousTestRun"),
            benchmark_baseline=_read_check(data, "benchmarkBaselineTestRun"),
        )


def _read_check(data: object, key: str) -> VerdictCheck:
    if not isinstance(data, dict):
        return VerdictCheck()
    node = data.get(key)
    if not isinstance(node, dict):
        return VerdictCheck()

    check = VerdictCheck()
    with suppress(ValidationError):
        check = check.model_copy(
            update={"result": VerdictCheck(result=node.get("result")).result},
        )
    with suppress(ValidationError):
        check = check.model_copy(
            update={"deeplink": VerdictCheck(deeplink=node.get("deeplink")).deeplink},
        )
    return check
