"""Tests for diff coverage computation and the diff gate."""

from __future__ import annotations

from pathlib import Path

import pytest

from covgate.config import load_config
from covgate.coverage.types import CoverageReport
from covgate.diff.types import ChangeSet
from covgate.errors import InvalidConfigurationError, MissingArtifactError
from covgate.gates.diff_coverage import (
    DiffCoverageStats,
    FileClassifier,
    compute_diff_coverage,
    evaluate_diff_gate,
    run_diff_gate,
)

LIB = "crates/core/src/lib.rs"


@pytest.fixture
def classifier(tmp_path: Path) -> FileClassifier:
    return FileClassifier.from_config(load_config(tmp_path, env={}))


def _changes(**files: set[int]) -> ChangeSet:
    return ChangeSet(files={path: frozenset(lines) for path, lines in files.items()})


def test_unrecorded_changed_lines_are_not_measured(classifier: FileClassifier) -> None:
    report = CoverageReport.from_lines({LIB: {1: 0, 2: 3, 5: 0}})
    change_set = ChangeSet(files={LIB: frozenset({1, 2, 3})})

    stats = compute_diff_coverage(change_set, report, classifier)

    assert stats.measured == 2
    assert stats.covered == 1
    assert stats.pct == 50.0
    assert stats.uncovered == (f"{LIB}:1",)


@pytest.mark.parametrize(
    ("path", "tracked"),
    [
        ("crates/core/src/lib.rs", True),
        ("src-tauri/src/main.rs", True),
        ("ui/src/components/Button.tsx", True),
        ("ui/src/components/Button.test.tsx", False),
        ("ui/src/__tests__/button.ts", False),
        ("ui/src/main.tsx", False),
        ("crates/core/src/tests.rs", False),
        ("crates/core/tests/integration.rs", False),
        ("src-tauri/src/parser_test.rs", False),
        ("crates/core/src/fixtures/data.rs", False),
        ("src-tauri/src/fixtures/sample.rs", False),
        ("ui/src/fixtures/user.ts", False),
        ("ui/src/api/__fixtures__/payload.ts", False),
        ("ui/src/styles.css", False),
        ("scripts/build.js", False),
        ("docs/guide.md", False),
    ],
)
def test_classifier_selects_production_sources(classifier: FileClassifier, path: str, tracked: bool) -> None:
    assert classifier.is_tracked(path) is tracked


def test_excluded_files_are_ignored(classifier: FileClassifier) -> None:
    report = CoverageReport.from_lines({"crates/core/tests/it.rs": {1: 0}})
    change_set = ChangeSet(files={"crates/core/tests/it.rs": frozenset({1})})

    stats = compute_diff_coverage(change_set, report, classifier)

    assert stats.measured == 0
    assert stats.skipped_files == ()


def test_files_missing_from_report_are_skipped(classifier: FileClassifier) -> None:
    report = CoverageReport.from_lines({LIB: {1: 1}})
    change_set = ChangeSet(files={LIB: frozenset({1}), "ui/src/New.tsx": frozenset({1, 2})})

    stats = compute_diff_coverage(change_set, report, classifier)
    result = evaluate_diff_gate(stats, 80.0, base_ref="HEAD~1")

    assert stats.skipped_files == ("ui/src/New.tsx",)
    assert result.passed
    assert result.notes == [
        "note: skipped changed files without direct lcov mappings:",
        "- ui/src/New.tsx",
    ]


def test_no_measured_lines_passes_without_percentage() -> None:
    result = evaluate_diff_gate(DiffCoverageStats(measured=0, covered=0), 80.0, base_ref="origin/main")

    assert result.passed
    assert result.summary is None
    assert result.message == "ok: no measured changed lines for diff coverage (base=origin/main)"


def test_below_threshold_fails_with_bounded_locations() -> None:
    uncovered = tuple(f"{LIB}:{n}" for n in range(1, 61))
    stats = DiffCoverageStats(measured=100, covered=40, uncovered=uncovered)

    result = evaluate_diff_gate(stats, 80.0, base_ref="HEAD~1", max_listed=50)

    assert result.status == "failed"
    assert result.violations == ["diff coverage below threshold: 40.00% < 80%"]
    assert len(result.locations) == 50
    assert result.locations[0] == f"{LIB}:1"
    assert result.summary == {
        "base_ref": "HEAD~1",
        "measured_changed_lines": 100,
        "covered_changed_lines": 40,
        "diff_coverage_pct": 40.0,
        "min_pct": 80.0,
    }


def test_threshold_is_inclusive() -> None:
    result = evaluate_diff_gate(DiffCoverageStats(measured=5, covered=4), 80.0)

    assert result.passed
    assert result.message == "ok: diff coverage threshold satisfied"


def test_run_diff_gate_with_diff_text(coverage_repo: Path) -> None:
    config = load_config(coverage_repo, env={})
    diff = (
        "+++ b/src/App.tsx\n"
        "@@ -9,0 +10,2 @@\n"
        "+covered\n"
        "+uncovered\n"
    )

    result = run_diff_gate(config, diff_text=diff)

    assert result.status == "failed"
    assert result.locations == ["ui/src/App.tsx:11"]
    assert result.summary is not None
    assert result.summary["base_ref"] == "<diff-file>"
    assert result.summary["diff_coverage_pct"] == 50.0


def test_run_diff_gate_respects_environment_minimum(coverage_repo: Path) -> None:
    config = load_config(coverage_repo, env={"DIFF_COVERAGE_MIN_PCT": "50"})
    diff = "+++ b/crates/core/src/lib.rs\n@@ -3,0 +3,2 @@\n+a\n+b\n"

    result = run_diff_gate(config, base_ref_override="origin/main", diff_text=diff)

    assert result.passed
    assert result.summary is not None
    assert result.summary["base_ref"] == "origin/main"
    assert result.summary["min_pct"] == 50.0


def test_run_diff_gate_invalid_minimum(coverage_repo: Path) -> None:
    config = load_config(coverage_repo, env={"DIFF_COVERAGE_MIN_PCT": "high"})

    with pytest.raises(InvalidConfigurationError):
        run_diff_gate(config, diff_text="")


def test_run_diff_gate_requires_every_artifact(coverage_repo: Path) -> None:
    (coverage_repo / "coverage" / "ui" / "lcov.info").unlink()
    config = load_config(coverage_repo, env={})

    with pytest.raises(MissingArtifactError, match="lcov.info"):
        run_diff_gate(config)
