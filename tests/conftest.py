"""Pytest configuration and fixtures for covgate tests."""
from pathlib import Path

import pytest

from covgate.paths import PathAlias, PathNormalizer

REPO_ROOT = "/work/repo"


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    A coverage gate that reports 0% for its own test run would be a poor
    advertisement; fail loudly instead.
    """
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)
    if not cov_enabled:
        return

    coverage_files = list(Path.cwd().glob(".coverage*"))
    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'covgate' (the package) not 'src/covgate' (filesystem path).",
            returncode=1
        )


@pytest.fixture
def normalizer() -> PathNormalizer:
    """Normalizer matching the default source layout, anchored at /work/repo."""
    return PathNormalizer(
        repo_root=REPO_ROOT,
        source_roots=("crates", "src-tauri", "ui/src"),
        aliases=(PathAlias(prefix="src/", replacement="ui/src/"),),
    )


@pytest.fixture
def coverage_repo(tmp_path: Path) -> Path:
    """Repository root holding passing coverage artifacts for every gate."""
    coverage = tmp_path / "coverage"
    (coverage / "ui").mkdir(parents=True)
    (coverage / "rust.lcov").write_text(
        "SF:crates/core/src/lib.rs\n"
        "DA:1,1\n"
        "DA:2,1\n"
        "DA:3,1\n"
        "DA:4,0\n"
        "end_of_record\n",
        encoding="utf-8",
    )
    (coverage / "ui" / "coverage-summary.json").write_text(
        '{"total": {"lines": {"total": 10, "covered": 4, "pct": 40}}}\n',
        encoding="utf-8",
    )
    (coverage / "ui" / "lcov.info").write_text(
        "SF:src/App.tsx\n"
        "DA:10,2\n"
        "DA:11,0\n"
        "end_of_record\n",
        encoding="utf-8",
    )
    return tmp_path
