"""Thin git callers that feed the pure diff parsers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from covgate.errors import MissingArtifactError
from covgate.git.exec import ExecError, run_git

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from covgate.diff.base_ref import RefProbe, RemoteHeadLookup


def make_ref_probe(repo_root: Path) -> RefProbe:
    """Return a probe that checks whether a ref resolves in repo_root."""

    def _probe(ref: str) -> bool:
        result = run_git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], repo_root=repo_root, check=False)
        return result.returncode == 0

    return _probe


def make_remote_head_lookup(repo_root: Path) -> RemoteHeadLookup:
    """Return a lookup for a remote's default branch, as ``<remote>/<branch>``."""

    def _lookup(remote: str) -> str | None:
        result = run_git(["symbolic-ref", "--quiet", f"refs/remotes/{remote}/HEAD"], repo_root=repo_root, check=False)
        if not result.ok:
            return None
        return result.stdout.strip().removeprefix("refs/remotes/") or None

    return _lookup


def collect_diff_text(repo_root: Path, base_ref: str, source_roots: Sequence[str]) -> str:
    """Return ``git diff --unified=0`` output between base_ref and the working tree."""
    try:
        result = run_git(["diff", "--unified=0", "--no-color", base_ref, "--", *source_roots], repo_root=repo_root)
    except ExecError as exc:
        raise MissingArtifactError(f"unable to produce diff against {base_ref}: {exc}") from exc
    return result.stdout


def collect_changed_names(repo_root: Path, base_ref: str) -> str:
    """Return ``git diff --name-only <base>...HEAD`` output."""
    try:
        result = run_git(["diff", "--name-only", f"{base_ref}...HEAD"], repo_root=repo_root)
    except ExecError as exc:
        raise MissingArtifactError(f"unable to list changed files against {base_ref}: {exc}") from exc
    return result.stdout
