"""Tests for precomputed coverage summary documents."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from covgate.coverage.summary import extract_lines_pct, load_summary_pct
from covgate.errors import (
    EXIT_FAILED,
    EXIT_INVALID_CONFIG,
    ArtifactFormatError,
    InvalidConfigurationError,
    MissingArtifactError,
)


def _summary(pct: object) -> dict[str, object]:
    return {"total": {"lines": {"total": 20, "covered": 7, "pct": pct}}}


def test_extract_lines_pct_reads_total_lines_pct() -> None:
    assert extract_lines_pct(_summary(35.5)) == 35.5
    assert extract_lines_pct(_summary(100)) == 100.0


@pytest.mark.parametrize("value", ["Unknown", None, True, float("nan"), float("inf"), [], {}])
def test_extract_lines_pct_rejects_non_numeric(value: object) -> None:
    with pytest.raises(InvalidConfigurationError) as exc_info:
        extract_lines_pct(_summary(value))

    assert exc_info.value.exit_code == EXIT_INVALID_CONFIG


def test_extract_lines_pct_requires_the_field() -> None:
    with pytest.raises(InvalidConfigurationError, match="total.lines.pct"):
        extract_lines_pct({"total": {"statements": {"pct": 50}}})

    with pytest.raises(InvalidConfigurationError):
        extract_lines_pct([])


def test_load_summary_pct_reads_file(tmp_path: Path) -> None:
    path = tmp_path / "coverage-summary.json"
    path.write_text(json.dumps(_summary(42.25)), encoding="utf-8")

    assert load_summary_pct(path) == 42.25


def test_load_summary_pct_missing_file(tmp_path: Path) -> None:
    with pytest.raises(MissingArtifactError) as exc_info:
        load_summary_pct(tmp_path / "coverage-summary.json")

    assert exc_info.value.exit_code == EXIT_FAILED


def test_load_summary_pct_undecodable_file(tmp_path: Path) -> None:
    path = tmp_path / "coverage-summary.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ArtifactFormatError) as exc_info:
        load_summary_pct(path)

    assert exc_info.value.exit_code == EXIT_FAILED
