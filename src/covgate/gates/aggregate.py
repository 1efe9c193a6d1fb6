"""Aggregate line-coverage threshold gate."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from covgate.coverage.lcov import load_lcov_file
from covgate.coverage.summary import load_summary_pct
from covgate.gates.types import GATE_COVERAGE, GateResult

if TYPE_CHECKING:
    from covgate.config import GateConfig
    from covgate.coverage.types import CoverageReport


@dataclass(frozen=True)
class SubsystemMeasurement:
    """Computed coverage for one subsystem against its minimum."""

    name: str
    line_pct: float
    min_pct: float
    source: str
    lines_found: int | None = None
    lines_hit: int | None = None

    @property
    def passed(self) -> bool:
        return self.line_pct >= self.min_pct


def measure_report(name: str, report: CoverageReport, min_pct: float, source: str = "lcov") -> SubsystemMeasurement:
    """Measure a parsed report; zero found lines yields 0%."""
    totals = report.totals()
    return SubsystemMeasurement(
        name=name,
        line_pct=totals.pct,
        min_pct=min_pct,
        source=source,
        lines_found=totals.lines_found,
        lines_hit=totals.lines_hit,
    )


def measure_summary(name: str, pct: float, min_pct: float) -> SubsystemMeasurement:
    """Wrap a precomputed summary percentage."""
    return SubsystemMeasurement(name=name, line_pct=pct, min_pct=min_pct, source="summary")


def evaluate_thresholds(measurements: list[SubsystemMeasurement]) -> GateResult:
    """Compare every subsystem against its minimum; any failure fails the gate."""
    summary: dict[str, dict[str, object]] = {}
    violations: list[str] = []

    for m in measurements:
        entry: dict[str, object] = {
            "line_pct": round(m.line_pct, 2),
            "min_pct": m.min_pct,
            "source": m.source,
        }
        if m.lines_found is not None:
            entry["lines_found"] = m.lines_found
            entry["lines_hit"] = m.lines_hit
        summary[m.name] = entry

        if not m.passed:
            violations.append(
                f"{m.name} line coverage below threshold: {m.line_pct:.2f}% < {_fmt_pct(m.min_pct)}%"
            )

    if violations:
        return GateResult(
            gate=GATE_COVERAGE,
            status="failed",
            message=f"coverage thresholds violated ({len(violations)} of {len(measurements)} subsystems)",
            summary=summary,
            violations=violations,
        )

    return GateResult(
        gate=GATE_COVERAGE,
        status="passed",
        message="ok: coverage thresholds satisfied",
        summary=summary,
    )


def run_threshold_gate(config: GateConfig) -> GateResult:
    """Load every configured subsystem artifact and evaluate thresholds.

    Thresholds are resolved before any artifact is read so a misconfigured
    job fails with exit 2 regardless of artifact state.

    Raises:
        InvalidConfigurationError: Non-numeric threshold or summary value
        MissingArtifactError: A subsystem artifact does not exist
    """
    minimums = {sub.name: config.subsystem_min_pct(sub) for sub in config.subsystems}
    normalizer = config.normalizer()

    measurements: list[SubsystemMeasurement] = []
    for sub in config.subsystems:
        artifact = config.resolve(sub.artifact)
        if sub.format == "summary":
            measurements.append(measure_summary(sub.name, load_summary_pct(artifact), minimums[sub.name]))
        else:
            report = load_lcov_file(artifact, normalizer)
            measurements.append(measure_report(sub.name, report, minimums[sub.name]))

    return evaluate_thresholds(measurements)


def _fmt_pct(value: float) -> str:
    return f"{value:g}"
