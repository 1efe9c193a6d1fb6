"""Subprocess runner for the read-only git queries behind the diff gates."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Untranslated, pager-free output so parsing never depends on the caller's locale.
GIT_ENV_OVERRIDES: Mapping[str, str] = {"GIT_PAGER": "cat", "LC_ALL": "C"}
MISSING_BINARY_RETURNCODE = 127


@dataclass(frozen=True)
class ExecResult:
    """Captured outcome of one subprocess."""

    argv: tuple[str, ...]
    cwd: Path
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def render(self) -> str:
        return " ".join(self.argv)


class ExecError(RuntimeError):
    """A checked command exited non-zero or could not be started."""

    def __init__(self, result: ExecResult):
        detail = (result.stderr or result.stdout).strip()
        summary = f"`{result.render()}` exited {result.returncode}"
        super().__init__(f"{summary}: {detail}" if detail else summary)
        self.result = result


def run_command(
    argv: list[str],
    *,
    cwd: Path,
    check: bool = True,
    env_overrides: Mapping[str, str] | None = None,
) -> ExecResult:
    """Run argv once in cwd. A missing executable reports return code 127."""
    env = {**os.environ, **(env_overrides or {})}
    logger.debug("exec: %s (cwd=%s)", " ".join(argv), cwd)
    try:
        completed = subprocess.run(argv, cwd=cwd, env=env, capture_output=True, text=True, check=False)
        returncode, stdout, stderr = completed.returncode, completed.stdout, completed.stderr
    except FileNotFoundError as exc:
        returncode, stdout, stderr = MISSING_BINARY_RETURNCODE, "", str(exc)

    result = ExecResult(argv=tuple(argv), cwd=cwd, returncode=returncode, stdout=stdout, stderr=stderr)
    if check and not result.ok:
        raise ExecError(result)
    return result


def run_git(args: list[str], *, repo_root: Path, check: bool = True) -> ExecResult:
    """Run ``git <args>`` inside repo_root."""
    return run_command(["git", *args], cwd=repo_root, check=check, env_overrides=GIT_ENV_OVERRIDES)
