"""Diff coverage: coverage restricted to the lines a change touches."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from covgate.coverage.lcov import load_lcov_file
from covgate.coverage.types import merge_reports
from covgate.diff.base_ref import resolve_base_ref
from covgate.diff.parser import parse_unified_diff
from covgate.gates.types import GATE_DIFF_COVERAGE, GateResult
from covgate.git.changes import collect_diff_text, make_ref_probe

if TYPE_CHECKING:
    from covgate.config import GateConfig
    from covgate.coverage.types import CoverageReport
    from covgate.diff.types import ChangeSet

logger = logging.getLogger(__name__)

DEFAULT_MAX_UNCOVERED_LISTED = 50


@dataclass(frozen=True)
class FileClassifier:
    """Selects trackable, non-test production source files.

    A path is tracked when its extension is listed, it sits under a source
    root, and it matches none of the exclusion globs registered for any
    prefix it starts with.
    """

    source_roots: tuple[str, ...]
    tracked_extensions: frozenset[str]
    exclude: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: GateConfig) -> FileClassifier:
        return cls(
            source_roots=config.source_roots,
            tracked_extensions=frozenset(config.diff_coverage.tracked_extensions),
            exclude=config.diff_coverage.exclude,
        )

    def is_tracked(self, path: str) -> bool:
        if PurePosixPath(path).suffix not in self.tracked_extensions:
            return False
        if not any(path == root or path.startswith(f"{root}/") for root in self.source_roots):
            return False

        for prefix, patterns in self.exclude.items():
            if not path.startswith(prefix):
                continue
            if any(fnmatchcase(path, pattern) for pattern in patterns):
                return False
        return True


@dataclass(frozen=True)
class DiffCoverageStats:
    """Intersection of a change set with a coverage report."""

    measured: int
    covered: int
    uncovered: tuple[str, ...] = ()
    skipped_files: tuple[str, ...] = ()

    @property
    def pct(self) -> float | None:
        if self.measured == 0:
            return None
        return (self.covered / self.measured) * 100


def compute_diff_coverage(
    change_set: ChangeSet,
    report: CoverageReport,
    classifier: FileClassifier,
) -> DiffCoverageStats:
    """Count measured and covered changed lines.

    Changed lines with no coverage record are unmeasurable (comments, blank
    lines, declarations) and count toward neither total. Changed files absent
    from the report entirely are returned as ``skipped_files``; that usually
    means stale coverage data, not an untested file.
    """
    measured = 0
    covered = 0
    uncovered: list[str] = []
    skipped: list[str] = []

    for path in change_set.paths():
        if not classifier.is_tracked(path):
            continue
        changed = change_set.lines_for(path)
        if not changed:
            continue

        lines = report.lines_for(path)
        if lines is None:
            skipped.append(path)
            continue

        for line in sorted(changed):
            if line not in lines:
                continue
            measured += 1
            if lines[line] > 0:
                covered += 1
            else:
                uncovered.append(f"{path}:{line}")

    return DiffCoverageStats(
        measured=measured,
        covered=covered,
        uncovered=tuple(uncovered),
        skipped_files=tuple(skipped),
    )


def evaluate_diff_gate(
    stats: DiffCoverageStats,
    min_pct: float,
    *,
    base_ref: str = "",
    max_listed: int = DEFAULT_MAX_UNCOVERED_LISTED,
) -> GateResult:
    """Apply the diff-coverage threshold to computed stats."""
    notes: list[str] = []
    if stats.skipped_files:
        notes.append("note: skipped changed files without direct lcov mappings:")
        notes.extend(f"- {path}" for path in stats.skipped_files)

    pct = stats.pct
    if pct is None:
        return GateResult(
            gate=GATE_DIFF_COVERAGE,
            status="passed",
            message=f"ok: no measured changed lines for diff coverage (base={base_ref})",
            notes=notes,
        )

    summary = {
        "base_ref": base_ref,
        "measured_changed_lines": stats.measured,
        "covered_changed_lines": stats.covered,
        "diff_coverage_pct": round(pct, 2),
        "min_pct": min_pct,
    }

    if pct < min_pct:
        return GateResult(
            gate=GATE_DIFF_COVERAGE,
            status="failed",
            message=f"diff coverage below threshold: {pct:.2f}% < {min_pct:g}%",
            summary=summary,
            violations=[f"diff coverage below threshold: {pct:.2f}% < {min_pct:g}%"],
            locations=list(stats.uncovered[:max_listed]),
            notes=notes,
        )

    return GateResult(
        gate=GATE_DIFF_COVERAGE,
        status="passed",
        message="ok: diff coverage threshold satisfied",
        summary=summary,
        notes=notes,
    )


def run_diff_gate(
    config: GateConfig,
    *,
    base_ref_override: str | None = None,
    diff_text: str | None = None,
) -> GateResult:
    """Resolve the base ref, collect the diff, merge coverage, and evaluate.

    Args:
        config: Resolved configuration
        base_ref_override: Explicit ref; wins over every other chain step
        diff_text: Pre-generated diff; skips the git query when given

    Raises:
        InvalidConfigurationError: Non-numeric diff threshold
        MissingArtifactError: Missing lcov artifact or git diff failure
    """
    min_pct = config.diff_min_pct()
    normalizer = config.normalizer()

    # Every artifact must exist before any git work happens.
    artifacts = [config.resolve(path) for path in config.diff_coverage.artifacts]
    reports = [load_lcov_file(path, normalizer) for path in artifacts]
    merged = merge_reports(reports)

    if diff_text is None:
        resolution = resolve_base_ref(
            config.env,
            make_ref_probe(config.repo_root),
            settings=config.base_ref,
            override=base_ref_override,
        )
        base_ref = resolution.ref
        logger.info("diff coverage base ref %s (%s)", base_ref, resolution.source)
        diff_text = collect_diff_text(config.repo_root, base_ref, config.source_roots)
    else:
        base_ref = (base_ref_override or "").strip() or "<diff-file>"

    change_set = parse_unified_diff(diff_text, normalizer)
    stats = compute_diff_coverage(change_set, merged, FileClassifier.from_config(config))
    return evaluate_diff_gate(
        stats,
        min_pct,
        base_ref=base_ref,
        max_listed=config.diff_coverage.max_uncovered_listed,
    )
