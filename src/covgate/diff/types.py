"""Change-set types derived from unified diffs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChangeHunk:
    """New-revision span of one diff hunk."""

    path: str
    new_start: int
    new_count: int = 1

    def lines(self) -> range:
        """Changed line numbers in new-revision numbering."""
        return range(self.new_start, self.new_start + self.new_count)


@dataclass(frozen=True)
class ChangeSet:
    """Changed new-revision line numbers keyed by canonical path."""

    files: Mapping[str, frozenset[int]] = field(default_factory=dict)
    hunks: tuple[ChangeHunk, ...] = ()

    def lines_for(self, path: str) -> frozenset[int]:
        return self.files.get(path, frozenset())

    def paths(self) -> list[str]:
        """Changed paths in sorted order."""
        return sorted(self.files)


@dataclass(frozen=True)
class BaseRefResolution:
    """Outcome of the base-reference priority chain.

    Attributes:
        ref: Selected git reference to diff against
        source: Which chain step produced it ("override", "local", "ci", "parent", "self")
        attempted: Every candidate probed, in order
    """

    ref: str
    source: str
    attempted: tuple[str, ...] = ()
