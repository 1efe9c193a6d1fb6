"""Tests for the change policy gate."""

from __future__ import annotations

from pathlib import Path

import pytest

from covgate.config import ChangePolicyConfig, load_config
from covgate.errors import InvalidConfigurationError
from covgate.gates.change_policy import ChangePolicyRules, evaluate_change_policy


@pytest.fixture
def rules(tmp_path: Path) -> ChangePolicyRules:
    return ChangePolicyRules.compile(load_config(tmp_path, env={}).change_policy)


def test_production_change_alone_fails_both_rules(rules: ChangePolicyRules) -> None:
    result = evaluate_change_policy(["crates/core/src/lib.rs"], rules)

    assert result.status == "failed"
    assert result.violations == [
        "Policy failure: production code changed without test updates.",
        "Policy failure: production code changed without docs/OpenAPI updates.",
    ]
    assert result.locations == ["crates/core/src/lib.rs"]


def test_production_change_with_tests_and_docs_passes(rules: ChangePolicyRules) -> None:
    files = ["crates/core/src/lib.rs", "crates/core/src/tests.rs", "docs/sync.md"]

    result = evaluate_change_policy(files, rules)

    assert result.passed
    assert result.message == "Policy checks passed."
    assert result.summary == {"changed_files": 3, "production_files": 1, "test_files": 1, "doc_files": 1}


def test_missing_docs_only(rules: ChangePolicyRules) -> None:
    result = evaluate_change_policy(["ui/src/App.tsx", "ui/src/App.test.tsx"], rules)

    assert result.violations == ["Policy failure: production code changed without docs/OpenAPI updates."]


def test_test_files_are_not_production(rules: ChangePolicyRules) -> None:
    assert rules.is_test("ui/src/App.test.tsx")
    assert not rules.is_production("ui/src/App.test.tsx")
    assert rules.is_production("src-tauri/src/main.rs")
    assert rules.is_doc("openapi/v1.yaml")


def test_non_production_changes_pass(rules: ChangePolicyRules) -> None:
    assert evaluate_change_policy(["README.md", ".github/workflows/ci.yml"], rules).passed
    assert evaluate_change_policy([], rules).passed


def test_invalid_pattern_is_configuration_error() -> None:
    config = ChangePolicyConfig(production=("^(src",), tests=(), docs=())

    with pytest.raises(InvalidConfigurationError, match="change_policy.production"):
        ChangePolicyRules.compile(config)
