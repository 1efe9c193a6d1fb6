"""Deterministic base-reference resolution for diff coverage."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from covgate.diff.types import BaseRefResolution

logger = logging.getLogger(__name__)

RefProbe = Callable[[str], bool]
RemoteHeadLookup = Callable[[str], str | None]

PARENT_REF = "HEAD~1"
SELF_REF = "HEAD"


@dataclass(frozen=True)
class BaseRefSettings:
    """Knobs for the base-reference priority chain."""

    override_env: str = "DIFF_COVERAGE_BASE_REF"
    ci_env: str = "CI"
    target_branch_env: str = "GITHUB_BASE_REF"
    remote: str = "origin"
    primary_branch: str = "main"
    secondary_branch: str = "master"


def is_ci(env: Mapping[str, str], settings: BaseRefSettings) -> bool:
    return env.get(settings.ci_env, "").strip().lower() == "true"


def ci_candidates(env: Mapping[str, str], settings: BaseRefSettings) -> list[str]:
    """Remote target branch, then primary/secondary remote branches, then local ones."""
    candidates: list[str] = []
    target = env.get(settings.target_branch_env, "").strip()
    if target:
        candidates.append(f"{settings.remote}/{target}")
    candidates.extend([
        f"{settings.remote}/{settings.primary_branch}",
        f"{settings.remote}/{settings.secondary_branch}",
        settings.primary_branch,
        settings.secondary_branch,
    ])
    # Keep first occurrence only, order preserved.
    return list(dict.fromkeys(candidates))


def resolve_base_ref(
    env: Mapping[str, str],
    probe: RefProbe,
    settings: BaseRefSettings | None = None,
    override: str | None = None,
) -> BaseRefResolution:
    """Select the reference to diff against.

    Priority order (first success wins):
      1. Explicit override (argument, then environment); never probed
      2. Outside CI: the immediate parent ``HEAD~1``
      3. Inside CI: remote target branch, remote primary, remote secondary,
         local primary, local secondary
      4. The immediate parent ``HEAD~1``
      5. ``HEAD`` itself (empty change set)

    Each candidate is probed exactly once. A candidate that does not resolve
    is skipped in favour of the next one.

    Args:
        env: Environment mapping (usually ``os.environ``)
        probe: Returns True when a ref resolves (e.g. ``git rev-parse --verify``)
        settings: Chain configuration
        override: Explicit ref from the command line

    Returns:
        BaseRefResolution naming the ref, the step that produced it and
        every attempted candidate
    """
    settings = settings or BaseRefSettings()

    explicit = (override or "").strip() or env.get(settings.override_env, "").strip()
    if explicit:
        return BaseRefResolution(ref=explicit, source="override")

    attempted: list[str] = []

    def _try(candidate: str) -> bool:
        if candidate in attempted:
            return False
        attempted.append(candidate)
        ok = probe(candidate)
        logger.debug("base ref candidate %s: %s", candidate, "resolved" if ok else "unresolved")
        return ok

    if not is_ci(env, settings):
        if _try(PARENT_REF):
            return BaseRefResolution(ref=PARENT_REF, source="local", attempted=tuple(attempted))
    else:
        for candidate in ci_candidates(env, settings):
            if _try(candidate):
                return BaseRefResolution(ref=candidate, source="ci", attempted=tuple(attempted))

        if _try(PARENT_REF):
            return BaseRefResolution(ref=PARENT_REF, source="parent", attempted=tuple(attempted))

    return BaseRefResolution(ref=SELF_REF, source="self", attempted=tuple(attempted))


def resolve_branch_base_ref(
    env: Mapping[str, str],
    remote_head: RemoteHeadLookup,
    settings: BaseRefSettings | None = None,
    override: str | None = None,
) -> BaseRefResolution:
    """Select the branch point the change policy compares the whole branch to.

    Priority order:
      1. Explicit override from the command line
      2. ``<remote>/<target>`` when the CI target-branch variable is set
      3. The remote's default branch (``refs/remotes/<remote>/HEAD``)
      4. ``<remote>/<primary_branch>``

    Args:
        env: Environment mapping (usually ``os.environ``)
        remote_head: Returns the remote's default branch as ``<remote>/<name>``,
            or None when the remote has no HEAD symref
        settings: Chain configuration
        override: Explicit ref from the command line
    """
    settings = settings or BaseRefSettings()

    explicit = (override or "").strip()
    if explicit:
        return BaseRefResolution(ref=explicit, source="override")

    target = env.get(settings.target_branch_env, "").strip()
    if target:
        return BaseRefResolution(ref=f"{settings.remote}/{target}", source="ci")

    default_branch = remote_head(settings.remote)
    if default_branch:
        return BaseRefResolution(ref=default_branch, source="remote-head")

    fallback = f"{settings.remote}/{settings.primary_branch}"
    logger.debug("no %s/HEAD symref; falling back to %s", settings.remote, fallback)
    return BaseRefResolution(ref=fallback, source="default")
