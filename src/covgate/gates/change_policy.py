"""Change policy gate: production changes must ship with tests and docs."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from covgate.diff.base_ref import resolve_branch_base_ref
from covgate.diff.parser import parse_name_only
from covgate.errors import InvalidConfigurationError
from covgate.gates.types import GATE_CHANGE_POLICY, GateResult
from covgate.git.changes import collect_changed_names, make_remote_head_lookup

if TYPE_CHECKING:
    from covgate.config import ChangePolicyConfig, GateConfig


@dataclass(frozen=True)
class ChangePolicyRules:
    """Compiled file classification rules."""

    production: tuple[re.Pattern[str], ...]
    tests: tuple[re.Pattern[str], ...]
    docs: tuple[re.Pattern[str], ...]

    @classmethod
    def compile(cls, config: ChangePolicyConfig) -> ChangePolicyRules:
        return cls(
            production=_compile_all("production", config.production),
            tests=_compile_all("tests", config.tests),
            docs=_compile_all("docs", config.docs),
        )

    def is_test(self, path: str) -> bool:
        return any(p.search(path) for p in self.tests)

    def is_doc(self, path: str) -> bool:
        return any(p.search(path) for p in self.docs)

    def is_production(self, path: str) -> bool:
        return any(p.search(path) for p in self.production) and not self.is_test(path)


def _compile_all(section: str, patterns: Sequence[str]) -> tuple[re.Pattern[str], ...]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise InvalidConfigurationError(f"invalid change_policy.{section} pattern {pattern!r}: {exc}") from exc
    return tuple(compiled)


def evaluate_change_policy(files: Sequence[str], rules: ChangePolicyRules) -> GateResult:
    """Fail when production code changed without test or documentation updates."""
    production = sorted(f for f in files if rules.is_production(f))
    tests = sorted(f for f in files if rules.is_test(f))
    docs = sorted(f for f in files if rules.is_doc(f))

    summary = {
        "changed_files": len(files),
        "production_files": len(production),
        "test_files": len(tests),
        "doc_files": len(docs),
    }

    violations: list[str] = []
    if production and not tests:
        violations.append("Policy failure: production code changed without test updates.")
    if production and not docs:
        violations.append("Policy failure: production code changed without docs/OpenAPI updates.")

    if violations:
        return GateResult(
            gate=GATE_CHANGE_POLICY,
            status="failed",
            message="change policy violated",
            summary=summary,
            violations=violations,
            locations=production,
        )

    return GateResult(
        gate=GATE_CHANGE_POLICY,
        status="passed",
        message="Policy checks passed.",
        summary=summary,
    )


def run_change_policy_gate(
    config: GateConfig,
    *,
    base_ref_override: str | None = None,
) -> GateResult:
    """Check every file changed on the branch since it left the base branch."""
    rules = ChangePolicyRules.compile(config.change_policy)
    resolution = resolve_branch_base_ref(
        config.env,
        make_remote_head_lookup(config.repo_root),
        settings=config.base_ref,
        override=base_ref_override,
    )
    files = parse_name_only(collect_changed_names(config.repo_root, resolution.ref))
    result = evaluate_change_policy(files, rules)
    if result.summary is not None:
        result.summary["base_ref"] = resolution.ref
    return result
