# Copyright (c) Syntropy Systems
"""Tests for parsing and judging verdict documents."""
from __future__ import annotations

import json

import pytest

from simfork.errors import VerdictFailedError
from simfork.models.reporting import VerdictDocument
from simfork.verdict import assert_verdict, check_verdict

from .helpers import RecordingLog

REQ_LINK = "https://perfana.example.com/requirements/42"
PREV_LINK = "https://perfana.example.com/previous/42"
BASE_LINK = "https://perfana.example.com/baseline/42"


def _document(**checks: dict[str, object]) -> str:
    return json.dumps(checks)


class TestVerdictDocument:
    """Tests for extracting the three checks."""

    def test_all_checks(self) -> None:
        document = VerdictDocument.parse(_document(
            requirements={"result": True, "deeplink": REQ_LINK},
            benchmarkPreviousTestRun={"result": False, "deeplink": PREV_LINK},
            benchmarkBaselineTestRun={"result": True, "deeplink": BASE_LINK},
        ))

        assert document.requirements.result is True
        assert document.requirements.deeplink == REQ_LINK
        assert document.benchmark_previous.result is False
        assert document.benchmark_baseline.deeplink == BASE_LINK

    def test_absent_checks_are_empty_not_false(self) -> None:
        document = VerdictDocument.parse(_document(
            requirements={"result": False, "deeplink": REQ_LINK},
        ))

        assert document.benchmark_previous.result is None
        assert document.benchmark_previous.deeplink is None
        assert document.benchmark_baseline.result is None

    def test_wrong_types_are_suppressed(self) -> None:
        document = VerdictDocument.parse(_document(
            requirements={"result": "yes", "deeplink": 12},
            benchmarkPreviousTestRun=["not", "an", "object"],
        ))

        assert document.requirements.result is None
        assert document.requirements.deeplink is None
        assert document.benchmark_previous.result is None

    @pytest.mark.parametrize("raw", ["", "null", "not json", "[1, 2]", '"text"'])
    def test_unparseable_body(self, raw: str) -> None:
        document = VerdictDocument.parse(raw)

        assert document.requirements.result is None
        assert document.benchmark_baseline.result is None


class TestCheckVerdict:
    """Tests for the pass/fail decision and its message."""

    def test_requirements_failure_only(self) -> None:
        verdict = check_verdict(_document(
            requirements={"result": False, "deeplink": REQ_LINK},
        ), RecordingLog())

        assert not verdict.passed
        assert f"Requirements failed: {REQ_LINK}" in verdict.message
        assert "Benchmark" not in verdict.message

    def test_failure_lists_only_false_checks(self) -> None:
        verdict = check_verdict(_document(
            requirements={"result": True, "deeplink": REQ_LINK},
            benchmarkPreviousTestRun={"result": False, "deeplink": PREV_LINK},
            benchmarkBaselineTestRun={"result": False, "deeplink": BASE_LINK},
        ), RecordingLog())

        assert not verdict.passed
        assert REQ_LINK not in verdict.message
        assert f"Benchmark to previous test run failed: {PREV_LINK}" in verdict.message
        assert f"Benchmark to baseline test run failed: {BASE_LINK}" in verdict.message

    def test_success_lists_true_checks(self) -> None:
        verdict = check_verdict(_document(
            requirements={"result": True, "deeplink": REQ_LINK},
            benchmarkBaselineTestRun={"result": True, "deeplink": BASE_LINK},
        ), RecordingLog())

        assert verdict.passed
        assert verdict.message.startswith("All assertions are OK")
        assert REQ_LINK in verdict.message
        assert BASE_LINK in verdict.message
        assert "previous" not in verdict.message

    def test_literal_false_anywhere_fails(self) -> None:
        verdict = check_verdict(_document(
            requirements={"result": True, "deeplink": "https://example.com/false"},
        ), RecordingLog())

        assert not verdict.passed
        assert "Requirements" not in verdict.message

    def test_empty_document_passes_with_no_links(self) -> None:
        verdict = check_verdict("{}", RecordingLog())

        assert verdict.passed
        assert verdict.message == "All assertions are OK:"

    def test_check_results_are_logged(self) -> None:
        log = RecordingLog()

        _ = check_verdict(_document(requirements={"result": True}), log)

        assert "Requirements result: True" in log.messages("info")


class TestAssertVerdict:
    """Tests for raising on a failing verdict."""

    def test_raises_on_failure(self) -> None:
        log = RecordingLog()

        with pytest.raises(VerdictFailedError, match="Requirements failed"):
            _ = assert_verdict(_document(
                requirements={"result": False, "deeplink": REQ_LINK},
            ), log)

        assert any(REQ_LINK in m for m in log.messages("error"))

    def test_returns_passing_verdict(self) -> None:
        verdict = assert_verdict(_document(requirements={"result": True}), RecordingLog())

        assert verdict.passed
