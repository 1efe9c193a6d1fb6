"""Gate decision procedures."""

from covgate.gates.aggregate import evaluate_thresholds, run_threshold_gate
from covgate.gates.change_policy import evaluate_change_policy, run_change_policy_gate
from covgate.gates.diff_coverage import compute_diff_coverage, evaluate_diff_gate, run_diff_gate
from covgate.gates.types import GateResult
from covgate.gates.waivers import evaluate_waivers, run_waiver_gate

__all__ = [
    "GateResult",
    "compute_diff_coverage",
    "evaluate_change_policy",
    "evaluate_diff_gate",
    "evaluate_thresholds",
    "evaluate_waivers",
    "run_change_policy_gate",
    "run_diff_gate",
    "run_threshold_gate",
    "run_waiver_gate",
]
