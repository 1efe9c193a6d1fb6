"""Precomputed coverage summary documents (istanbul ``coverage-summary.json``)."""

from __future__ import annotations

import json
import math
from typing import TYPE_CHECKING, Any

from covgate.errors import ArtifactFormatError, InvalidConfigurationError, MissingArtifactError

if TYPE_CHECKING:
    from pathlib import Path


def extract_lines_pct(summary: Any) -> float:
    """Return ``total.lines.pct`` from a decoded summary document.

    Raises:
        InvalidConfigurationError: If the field is absent, non-numeric, or not finite
    """
    value: Any = summary
    for key in ("total", "lines", "pct"):
        if not isinstance(value, dict) or key not in value:
            raise InvalidConfigurationError("coverage summary missing numeric total.lines.pct")
        value = value[key]

    # bool is an int subclass; a summary saying `true` is not a percentage.
    if isinstance(value, bool):
        raise InvalidConfigurationError(f"invalid numeric value for total.lines.pct: {value!r}")
    try:
        pct = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"invalid numeric value for total.lines.pct: {value!r}") from exc
    if not math.isfinite(pct):
        raise InvalidConfigurationError(f"invalid numeric value for total.lines.pct: {value!r}")
    return pct


def load_summary_pct(path: Path) -> float:
    """Read a summary artifact and return its line percentage."""
    if not path.exists():
        raise MissingArtifactError(f"missing coverage summary: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            summary = json.load(f)
    except json.JSONDecodeError as exc:
        raise ArtifactFormatError(f"Invalid JSON in coverage summary {path}: {exc}") from exc

    return extract_lines_pct(summary)
