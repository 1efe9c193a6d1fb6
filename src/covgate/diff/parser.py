"""Unified diff parsing into change sets."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING

from covgate.diff.types import ChangeHunk, ChangeSet

if TYPE_CHECKING:
    from covgate.paths import PathNormalizer

logger = logging.getLogger(__name__)

NULL_DEVICE = "/dev/null"
OLD_FILE_PREFIX = "--- "
NEW_FILE_PREFIX = "+++ "
GIT_HEADER_PREFIX = "diff --git "

# @@ -<old-start>[,<old-count>] +<new-start>[,<new-count>] @@
_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


def _opens_file_section(lines: Sequence[str], index: int, old_remaining: int, new_remaining: int) -> bool:
    """Tell a ``+++`` file header apart from added content inside a hunk body.

    A header either follows its ``---`` partner or is followed directly by a
    hunk header while the current body still expects more than this line.
    """
    if not lines[index].startswith(NEW_FILE_PREFIX):
        return False
    if index > 0 and lines[index - 1].startswith(OLD_FILE_PREFIX):
        return True
    following = lines[index + 1] if index + 1 < len(lines) else ""
    closes_body = old_remaining == 0 and new_remaining == 1
    return following.startswith("@@") and not closes_body


def parse_unified_diff(diff_text: str, normalizer: PathNormalizer) -> ChangeSet:
    """Parse unified diff text into the set of changed new-revision lines per file.

    Every hunk contributes ``[new_start, new_start + new_count - 1]`` to its
    file; an omitted count means 1 and a zero count (pure deletion) adds
    nothing. A ``+++ /dev/null`` header drops the current file, so deleted
    files contribute no lines.

    Hunk bodies are consumed by their declared counts, which keeps added
    content such as ``++ x`` from being read as a header. Bodies may also be
    short or absent (headers-only diffs): ``diff --git``, a ``---``/``+++``
    pair and a ``+++`` line directly followed by a hunk header always start
    a new file section.

    Args:
        diff_text: Output of ``git diff`` (any context size)
        normalizer: Path normalizer shared with the coverage parser

    Returns:
        ChangeSet with deduplicated line numbers
    """
    files: dict[str, set[int]] = {}
    hunks: list[ChangeHunk] = []
    current: str | None = None
    old_remaining = 0
    new_remaining = 0

    lines = diff_text.splitlines()
    for index, raw in enumerate(lines):
        if raw.startswith(GIT_HEADER_PREFIX):
            old_remaining = new_remaining = 0
            continue

        if old_remaining > 0 or new_remaining > 0:
            if _opens_file_section(lines, index, old_remaining, new_remaining):
                old_remaining = new_remaining = 0
            elif raw.startswith("\\"):
                continue
            elif raw.startswith("+"):
                new_remaining -= 1
                continue
            elif raw.startswith("-"):
                old_remaining -= 1
                continue
            elif raw.startswith(" ") or raw == "":
                old_remaining -= 1
                new_remaining -= 1
                continue
            else:
                # Short hunk body; treat the line as a header.
                old_remaining = new_remaining = 0

        if raw.startswith(NEW_FILE_PREFIX):
            raw_path = raw[len(NEW_FILE_PREFIX):].strip()
            if raw_path == NULL_DEVICE:
                current = None
                continue
            if raw_path.startswith("b/"):
                raw_path = raw_path[2:]
            current = normalizer.normalize(raw_path) or None
            if current is not None:
                files.setdefault(current, set())
            continue

        if not raw.startswith("@@"):
            continue

        match = _HUNK_HEADER_RE.match(raw)
        if not match:
            logger.debug("malformed hunk header skipped: %r", raw)
            continue

        old_count = int(match.group(2)) if match.group(2) is not None else 1
        new_start = int(match.group(3))
        new_count = int(match.group(4)) if match.group(4) is not None else 1
        old_remaining = old_count
        new_remaining = new_count

        if current is None:
            continue

        hunk = ChangeHunk(path=current, new_start=new_start, new_count=new_count)
        hunks.append(hunk)
        files[current].update(hunk.lines())

    return ChangeSet(
        files={path: frozenset(numbers) for path, numbers in files.items()},
        hunks=tuple(hunks),
    )


def parse_name_only(output: str) -> list[str]:
    """Parse ``git diff --name-only`` output into sorted POSIX paths."""
    return sorted({line.strip().replace("\\", "/") for line in output.splitlines() if line.strip()})
