"""LCOV tracefile parsing."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from covgate.coverage.types import CoverageReport
from covgate.errors import MissingArtifactError

if TYPE_CHECKING:
    from pathlib import Path

    from covgate.paths import PathNormalizer

logger = logging.getLogger(__name__)

SOURCE_FILE_PREFIX = "SF:"
LINE_DATA_PREFIX = "DA:"
END_OF_RECORD = "end_of_record"

# DA:<line>,<hits>[,<checksum>]
_LINE_DATA_RE = re.compile(r"^DA:(\d+),(\d+)(?:,.*)?$")


def parse_lcov(text: str, normalizer: PathNormalizer) -> CoverageReport:
    """Parse LCOV text into a CoverageReport.

    ``SF:`` opens a file section, ``DA:`` attaches a line record to it and
    ``end_of_record`` closes it. Any other line is ignored. A malformed ``DA:``
    line is dropped on its own; the rest of the file still parses.

    Args:
        text: Raw LCOV tracefile contents
        normalizer: Path normalizer shared with the diff parser

    Returns:
        CoverageReport keyed by canonical path
    """
    files: dict[str, dict[int, int]] = {}
    current: dict[int, int] | None = None

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()

        if line.startswith(SOURCE_FILE_PREFIX):
            path = normalizer.normalize(line[len(SOURCE_FILE_PREFIX):])
            if not path:
                current = None
                continue
            current = files.setdefault(path, {})
            continue

        if line == END_OF_RECORD:
            current = None
            continue

        if not line.startswith(LINE_DATA_PREFIX):
            continue

        if current is None:
            logger.debug("lcov line %d: DA record outside a file section, skipped", lineno)
            continue

        match = _LINE_DATA_RE.match(line)
        if not match:
            logger.debug("lcov line %d: malformed DA record skipped: %r", lineno, line)
            continue

        current[int(match.group(1))] = int(match.group(2))

    return CoverageReport.from_lines(files)


def load_lcov_file(path: Path, normalizer: PathNormalizer) -> CoverageReport:
    """Read an LCOV artifact from disk and parse it."""
    if not path.exists():
        raise MissingArtifactError(f"missing lcov report: {path}")
    return parse_lcov(path.read_text(encoding="utf-8"), normalizer)
