"""Gate report artifacts (canonical JSON + Markdown)."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import TYPE_CHECKING, Any, TextIO

from covgate import __version__
from covgate.schemas.validator import validate_data

if TYPE_CHECKING:
    from pathlib import Path

    from covgate.gates.types import GateResult

REPORT_SCHEMA_VERSION = "1.0"


def canonical_dumps(obj: Any) -> str:
    """Compact, key-sorted JSON for report artifacts."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def render_summary(summary: dict[str, Any]) -> str:
    """Pretty, key-sorted JSON for the stdout summary."""
    return json.dumps(summary, indent=2, sort_keys=True)


def report_payload(result: GateResult, exit_code: int) -> dict[str, Any]:
    """Build the schema-shaped report document for a gate result."""
    payload = asdict(result)
    payload["schema_version"] = REPORT_SCHEMA_VERSION
    payload["pipeline_version"] = __version__
    payload["exit_code"] = exit_code
    return payload


def report_paths(out_dir: Path, gate: str) -> tuple[Path, Path]:
    stem = f"{gate.upper()}_REPORT"
    return out_dir / f"{stem}.json", out_dir / f"{stem}.md"


def write_gate_report(result: GateResult, out_dir: Path, exit_code: int) -> tuple[Path, Path]:
    """Write ``<GATE>_REPORT.json`` and ``<GATE>_REPORT.md`` into out_dir.

    The JSON document is validated against the packaged ``gate_report``
    schema before anything is written.

    Returns:
        (json_path, markdown_path)

    Raises:
        ValueError: If the payload does not match the schema
    """
    payload = report_payload(result, exit_code)
    validate_data(payload, "gate_report", strict=True)

    out_dir.mkdir(parents=True, exist_ok=True)
    json_path, md_path = report_paths(out_dir, result.gate)
    json_path.write_text(canonical_dumps(payload) + "\n", encoding="utf-8")
    with open(md_path, "w", encoding="utf-8") as f:
        _write_markdown_report(f, result, exit_code)
    return json_path, md_path


def _write_markdown_report(f: TextIO, result: GateResult, exit_code: int) -> None:
    """Markdown companion of the JSON report."""
    f.write(f"# covgate {result.gate} report\n\n")

    status_emoji = "✅" if result.passed else "❌"
    f.write(f"**Status**: {status_emoji} {result.status.upper()}\n\n")
    f.write(f"{result.message}\n\n")

    if result.summary:
        f.write("## Summary\n\n")
        f.write("```json\n")
        f.write(render_summary(result.summary))
        f.write("\n```\n\n")

    if result.violations:
        f.write("## Violations\n\n")
        for violation in result.violations:
            f.write(f"- {violation}\n")
        f.write("\n")

    if result.locations:
        f.write("## Locations\n\n")
        for location in result.locations:
            f.write(f"- `{location}`\n")
        f.write("\n")

    if result.notes:
        f.write("## Notes\n\n")
        for note in result.notes:
            f.write(f"{note}\n")
        f.write("\n")

    f.write("## Exit Code\n\n")
    f.write(f"{exit_code}\n")
