"""Coverage artifact parsing."""

from covgate.coverage.lcov import load_lcov_file, parse_lcov
from covgate.coverage.summary import extract_lines_pct, load_summary_pct
from covgate.coverage.types import CoverageRecord, CoverageReport, CoverageTotals, merge_reports

__all__ = [
    "CoverageRecord",
    "CoverageReport",
    "CoverageTotals",
    "extract_lines_pct",
    "load_lcov_file",
    "load_summary_pct",
    "merge_reports",
    "parse_lcov",
]
