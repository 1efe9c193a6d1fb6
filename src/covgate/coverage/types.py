"""Coverage report types."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoverageRecord:
    """Hit count for a single source line."""

    path: str
    line: int
    hits: int


@dataclass(frozen=True)
class CoverageTotals:
    """Found/hit line counts and the derived percentage."""

    lines_found: int
    lines_hit: int

    @property
    def pct(self) -> float:
        # An empty report must never look like it satisfies a threshold.
        if self.lines_found == 0:
            return 0.0
        return (self.lines_hit / self.lines_found) * 100


@dataclass(frozen=True)
class CoverageReport:
    """Per-file line hit counts keyed by canonical repo-relative path."""

    files: Mapping[str, Mapping[int, int]] = field(default_factory=dict)

    @classmethod
    def from_lines(cls, files: dict[str, dict[int, int]]) -> CoverageReport:
        """Freeze a freshly parsed ``{path: {line: hits}}`` mapping."""
        frozen = {path: MappingProxyType(dict(lines)) for path, lines in files.items()}
        return cls(files=MappingProxyType(frozen))

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def __len__(self) -> int:
        return len(self.files)

    def lines_for(self, path: str) -> Mapping[int, int] | None:
        """Return the line map for path, or None when the file was not instrumented."""
        return self.files.get(path)

    def records(self) -> Iterator[CoverageRecord]:
        """Iterate records in deterministic (path, line) order."""
        for path in sorted(self.files):
            lines = self.files[path]
            for line in sorted(lines):
                yield CoverageRecord(path=path, line=line, hits=lines[line])

    def totals(self) -> CoverageTotals:
        """Count lines present in the report and lines executed at least once."""
        found = 0
        hit = 0
        for lines in self.files.values():
            found += len(lines)
            hit += sum(1 for hits in lines.values() if hits > 0)
        return CoverageTotals(lines_found=found, lines_hit=hit)

    def merge(self, other: CoverageReport) -> CoverageReport:
        """Union of per-file maps; on a path collision ``other`` wins."""
        merged: dict[str, Mapping[int, int]] = dict(self.files)
        for path, lines in other.files.items():
            if path in merged:
                logger.warning("coverage path collision while merging reports: %s (later report wins)", path)
            merged[path] = lines
        return CoverageReport(files=MappingProxyType(merged))


def merge_reports(reports: list[CoverageReport]) -> CoverageReport:
    """Merge reports in load order."""
    merged = CoverageReport.from_lines({})
    for report in reports:
        merged = merged.merge(report)
    return merged
