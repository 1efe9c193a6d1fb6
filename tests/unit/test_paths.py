"""Tests for canonical path normalization."""

from __future__ import annotations

from pathlib import Path

import pytest

from covgate.paths import PathAlias, PathNormalizer


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("/work/repo/crates/core/src/lib.rs", "crates/core/src/lib.rs"),
        ("crates/core/src/lib.rs", "crates/core/src/lib.rs"),
        ("./crates/core/src/lib.rs", "crates/core/src/lib.rs"),
        ("src/App.tsx", "ui/src/App.tsx"),
        ("/work/repo/src/App.tsx", "ui/src/App.tsx"),
        ("ui/src/App.tsx", "ui/src/App.tsx"),
        ("src-tauri/src/main.rs", "src-tauri/src/main.rs"),
        ("ui\\src\\App.tsx", "ui/src/App.tsx"),
        ("  crates/a/src/lib.rs  ", "crates/a/src/lib.rs"),
        ("scripts/build.js", "scripts/build.js"),
        ("/other/repo/crates/a.rs", "/other/repo/crates/a.rs"),
    ],
)
def test_normalize(normalizer: PathNormalizer, raw: str, expected: str) -> None:
    assert normalizer.normalize(raw) == expected


def test_normalize_empty(normalizer: PathNormalizer) -> None:
    assert normalizer.normalize("") == ""


def test_for_repo_uses_absolute_root(tmp_path: Path) -> None:
    normalizer = PathNormalizer.for_repo(tmp_path, ["/crates/"], [PathAlias("lib/", "crates/lib/")])

    assert normalizer.source_roots == ("crates",)
    assert normalizer.normalize(f"{tmp_path.resolve().as_posix()}/lib/a.rs") == "crates/lib/a.rs"
    assert normalizer.is_canonical("crates/lib/a.rs")
    assert not normalizer.is_canonical("crates-extra/a.rs")
