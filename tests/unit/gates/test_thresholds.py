"""Tests for the aggregate coverage threshold gate."""

from __future__ import annotations

from pathlib import Path

import pytest

from covgate.config import load_config
from covgate.coverage.types import CoverageReport
from covgate.errors import InvalidConfigurationError, MissingArtifactError
from covgate.gates.aggregate import (
    SubsystemMeasurement,
    evaluate_thresholds,
    measure_report,
    run_threshold_gate,
)


def test_empty_report_is_zero_percent_and_fails_any_positive_minimum() -> None:
    measurement = measure_report("rust", CoverageReport.from_lines({}), 1.0)

    assert measurement.line_pct == 0.0
    assert measurement.lines_found == 0
    assert not measurement.passed


def test_one_failing_subsystem_fails_the_gate() -> None:
    result = evaluate_thresholds([
        SubsystemMeasurement(name="A", line_pct=65.0, min_pct=70.0, source="lcov"),
        SubsystemMeasurement(name="B", line_pct=35.0, min_pct=30.0, source="summary"),
    ])

    assert result.status == "failed"
    assert result.violations == ["A line coverage below threshold: 65.00% < 70%"]
    assert result.summary is not None
    assert result.summary["B"] == {"line_pct": 35.0, "min_pct": 30.0, "source": "summary"}


def test_exact_minimum_passes() -> None:
    result = evaluate_thresholds([SubsystemMeasurement(name="rust", line_pct=70.0, min_pct=70.0, source="lcov")])

    assert result.passed
    assert result.message == "ok: coverage thresholds satisfied"


def test_summary_rounds_percentages_and_reports_counts() -> None:
    report = CoverageReport.from_lines({"crates/a/src/lib.rs": {1: 1, 2: 0, 3: 0}})

    result = evaluate_thresholds([measure_report("rust", report, 30.0)])

    assert result.summary == {
        "rust": {"line_pct": 33.33, "min_pct": 30.0, "source": "lcov", "lines_found": 3, "lines_hit": 1}
    }


def test_run_threshold_gate_reads_configured_artifacts(coverage_repo: Path) -> None:
    config = load_config(coverage_repo, env={})

    result = run_threshold_gate(config)

    assert result.passed
    assert result.summary is not None
    assert result.summary["rust"]["line_pct"] == 75.0
    assert result.summary["ui"]["line_pct"] == 40.0


def test_run_threshold_gate_honors_environment_minimums(coverage_repo: Path) -> None:
    config = load_config(coverage_repo, env={"UI_COVERAGE_MIN_PCT": "41"})

    result = run_threshold_gate(config)

    assert not result.passed
    assert result.violations == ["ui line coverage below threshold: 40.00% < 41%"]


def test_invalid_threshold_is_reported_before_missing_artifacts(tmp_path: Path) -> None:
    config = load_config(tmp_path, env={"RUST_COVERAGE_MIN_PCT": "seventy"})

    with pytest.raises(InvalidConfigurationError, match="RUST_COVERAGE_MIN_PCT"):
        run_threshold_gate(config)


def test_missing_artifact_fails(tmp_path: Path) -> None:
    config = load_config(tmp_path, env={})

    with pytest.raises(MissingArtifactError, match="rust.lcov"):
        run_threshold_gate(config)
