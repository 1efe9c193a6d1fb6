"""Git operations for covgate."""

from covgate.git.changes import collect_changed_names, collect_diff_text, make_ref_probe
from covgate.git.exec import ExecError, ExecResult, run_git

__all__ = [
    "ExecError",
    "ExecResult",
    "collect_changed_names",
    "collect_diff_text",
    "make_ref_probe",
    "run_git",
]
