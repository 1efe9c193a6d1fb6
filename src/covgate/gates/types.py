"""Gate result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

GateStatus = Literal["passed", "failed"]

GATE_COVERAGE = "coverage"
GATE_DIFF_COVERAGE = "diff_coverage"
GATE_WAIVERS = "waivers"
GATE_CHANGE_POLICY = "change_policy"


@dataclass
class GateResult:
    """Outcome of a single gate invocation.

    Attributes:
        gate: Gate identifier (coverage, diff_coverage, waivers, change_policy)
        status: "passed" or "failed"
        message: One-line human status
        summary: Machine-parsable summary; None when a gate has nothing to report
        violations: Failure messages, one per violated rule
        locations: Offending locations (file:line) or field names, already bounded
        notes: Informational lines printed ahead of the status
        audit: Durable audit lines printed after a passing status
        remediation: Operator guidance printed after a failure
    """

    gate: str
    status: GateStatus
    message: str
    summary: dict[str, Any] | None = None
    violations: list[str] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    audit: list[str] = field(default_factory=list)
    remediation: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == "passed"
