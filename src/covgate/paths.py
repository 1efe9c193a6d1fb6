"""Canonical path normalization shared by the coverage and diff parsers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class PathAlias:
    """Rewrite rule mapping a legacy path prefix onto its canonical prefix."""

    prefix: str
    replacement: str


@dataclass(frozen=True)
class PathNormalizer:
    """Turn tool-specific file paths into canonical repo-relative paths.

    Coverage tools and git disagree on how they spell the same file: LCOV from
    one toolchain carries absolute paths, another emits paths relative to its
    own package root. The normalizer maps both onto the form git uses so the
    two can be compared by plain string equality.

    Attributes:
        repo_root: Absolute repository root stripped from absolute paths
        source_roots: Canonical source roots; paths under these are left alone
        aliases: Ordered prefix rewrites applied to everything else
    """

    repo_root: str = ""
    source_roots: tuple[str, ...] = ()
    aliases: tuple[PathAlias, ...] = field(default_factory=tuple)

    @classmethod
    def for_repo(
        cls,
        repo_root: Path,
        source_roots: tuple[str, ...] | list[str],
        aliases: tuple[PathAlias, ...] | list[PathAlias] = (),
    ) -> PathNormalizer:
        """Build a normalizer anchored at an on-disk repository root."""
        return cls(
            repo_root=repo_root.resolve().as_posix(),
            source_roots=tuple(root.strip("/") for root in source_roots),
            aliases=tuple(aliases),
        )

    def is_canonical(self, path: str) -> bool:
        """Return True when path already lives under a canonical source root."""
        return any(path == root or path.startswith(f"{root}/") for root in self.source_roots)

    def normalize(self, raw_path: str) -> str:
        """Normalize a raw path from an LCOV ``SF:`` line or a diff header."""
        if not raw_path:
            return ""

        path = raw_path.strip().replace("\\", "/")

        root = self.repo_root.replace("\\", "/").rstrip("/")
        if root and path.startswith(f"{root}/"):
            path = path[len(root) + 1:]

        while path.startswith("./"):
            path = path[2:]

        if self.is_canonical(path):
            return path

        for alias in self.aliases:
            if path.startswith(alias.prefix):
                return alias.replacement + path[len(alias.prefix):]

        return path
