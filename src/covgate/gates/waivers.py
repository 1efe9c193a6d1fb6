"""Required-gate waiver validation.

Waivers are time-boxed, audited authorizations to bypass a required gate.
Every ledger entry is validated on every run, whether or not its gate is
being evaluated, so a broken waiver is caught before anyone relies on it.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]

from covgate.errors import ArtifactFormatError, MissingArtifactError
from covgate.gates.types import GATE_WAIVERS, GateResult
from covgate.schemas.validator import validate_data

if TYPE_CHECKING:
    from covgate.config import GateConfig

REQUIRED_FIELDS: tuple[str, ...] = ("gate", "owner", "mitigation", "reason", "expiresOn")
EXPIRY_ALIASES: tuple[str, ...] = ("expiresOn", "expires_on")
DEFAULT_MAX_WINDOW_DAYS = 7
DEFAULT_ENABLE_ENV = "ALLOW_REQUIRED_GATE_WAIVER"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class Waiver:
    """A structurally valid ledger entry."""

    gate: str
    owner: str
    mitigation: str
    reason: str
    expires_on: str
    expiry: datetime

    def audit_line(self) -> str:
        return f"waived {self.gate} until {self.expires_on} owner={self.owner} mitigation={self.mitigation}"


@dataclass(frozen=True)
class EntryCheck:
    """Validation outcome for one ledger entry."""

    index: int
    gate: str
    waiver: Waiver | None
    error: str | None = None
    missing_fields: tuple[str, ...] = ()


def load_ledger(path: Path) -> list[dict[str, Any]]:
    """Read a waiver ledger snapshot (JSON or YAML).

    Raises:
        MissingArtifactError: If the ledger file does not exist
        ArtifactFormatError: If it cannot be decoded or has the wrong shape
    """
    if not path.exists():
        raise MissingArtifactError(f"missing waiver ledger: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ArtifactFormatError(f"waiver ledger parse error at {path}: {exc}") from exc

    if data is None:
        data = {}

    ok, errors = validate_data(data, "waiver_ledger", strict=False)
    if not ok:
        raise ArtifactFormatError(f"waiver ledger at {path} is invalid: {'; '.join(errors)}")

    return list(data.get("waivers") or [])


def _field_value(entry: dict[str, Any], name: str) -> str:
    keys = EXPIRY_ALIASES if name == "expiresOn" else (name,)
    for key in keys:
        value = entry.get(key)
        if value is not None and str(value).strip() != "":
            return str(value).strip()
    return ""


def parse_expiry(value: str) -> datetime | None:
    """Parse ``YYYY-MM-DD`` as midnight UTC; None when it is not a calendar date."""
    if not _DATE_RE.match(value):
        return None
    try:
        day = date.fromisoformat(value)
    except ValueError:
        return None
    return datetime.combine(day, time(0, 0), tzinfo=UTC)


def check_entry(
    index: int,
    entry: dict[str, Any],
    now: datetime,
    max_window: timedelta,
) -> EntryCheck:
    """Run the four ordered checks on one entry; the first failure wins."""
    values = {name: _field_value(entry, name) for name in REQUIRED_FIELDS}
    gate = values["gate"]
    label = gate or "<unknown>"

    missing = tuple(name for name in REQUIRED_FIELDS if not values[name])
    if missing:
        return EntryCheck(
            index=index,
            gate=gate,
            waiver=None,
            error=f"waiver {label} missing fields: {', '.join(missing)}",
            missing_fields=missing,
        )

    expires_on = values["expiresOn"]
    expiry = parse_expiry(expires_on)
    if expiry is None:
        return EntryCheck(index=index, gate=gate, waiver=None, error=f"waiver {label} has invalid expiresOn: {expires_on}")

    if expiry < now:
        return EntryCheck(index=index, gate=gate, waiver=None, error=f"waiver {label} is expired ({expires_on})")

    if expiry - now > max_window:
        days = max_window.days
        return EntryCheck(
            index=index,
            gate=gate,
            waiver=None,
            error=f"waiver {label} exceeds max {days}-day window ({expires_on})",
        )

    waiver = Waiver(
        gate=gate,
        owner=values["owner"],
        mitigation=values["mitigation"],
        reason=values["reason"],
        expires_on=expires_on,
        expiry=expiry,
    )
    return EntryCheck(index=index, gate=gate, waiver=waiver)


def evaluate_waivers(
    entries: Sequence[dict[str, Any]],
    *,
    required_gates: Sequence[str],
    allow_required: bool,
    now: datetime | None = None,
    max_window_days: int = DEFAULT_MAX_WINDOW_DAYS,
    enable_env: str = DEFAULT_ENABLE_ENV,
) -> GateResult:
    """Validate every ledger entry, then apply the activation policy.

    With required-gate waivers disabled (the default) any valid waiver for a
    required gate fails the run, so a forgotten waiver cannot silently
    become active. With them enabled, every required gate must carry a
    valid waiver (all or nothing) and every valid entry for a required gate
    is echoed as an audit line, in ledger order.
    """
    now = now or datetime.now(UTC)
    max_window = timedelta(days=max_window_days)

    checks = [
        check_entry(i, entry, now, max_window)
        for i, entry in enumerate(entries)
    ]
    errors = [c.error for c in checks if c.error]
    missing = sorted({name for c in checks for name in c.missing_fields})

    by_gate: dict[str, list[Waiver]] = {}
    for c in checks:
        if c.waiver is not None:
            by_gate.setdefault(c.waiver.gate, []).append(c.waiver)

    active_required = [gate for gate in required_gates if gate in by_gate]
    summary: dict[str, Any] = {
        "entries": len(checks),
        "valid_entries": sum(1 for c in checks if c.waiver is not None),
        "required_gates": list(required_gates),
        "required_waivers_enabled": allow_required,
        "active_required_waivers": active_required,
        "missing_fields": missing,
    }

    if errors:
        return GateResult(
            gate=GATE_WAIVERS,
            status="failed",
            message=f"invalid waiver ledger ({len(errors)} invalid entries)",
            summary=summary,
            violations=errors,
        )

    if not allow_required:
        if active_required:
            return GateResult(
                gate=GATE_WAIVERS,
                status="failed",
                message="required gate waivers are not allowed by default",
                summary=summary,
                violations=[f"required gate waivers are not allowed by default: {', '.join(active_required)}"],
                remediation=[f"Set {enable_env}=1 only for explicit, time-boxed emergency renewals."],
            )
        return GateResult(
            gate=GATE_WAIVERS,
            status="passed",
            message="ok: no active required gate waivers",
            summary=summary,
        )

    absent = [gate for gate in required_gates if gate not in by_gate]
    if absent:
        return GateResult(
            gate=GATE_WAIVERS,
            status="failed",
            message="required gate waivers are incomplete",
            summary=summary,
            violations=[f"missing waiver for required gate: {gate}" for gate in absent],
        )

    return GateResult(
        gate=GATE_WAIVERS,
        status="passed",
        message="ok: temporary required gate waivers are valid and explicitly enabled",
        summary=summary,
        audit=[waiver.audit_line() for gate in required_gates for waiver in by_gate[gate]],
    )


def run_waiver_gate(
    config: GateConfig,
    *,
    ledger_path: Path | None = None,
    now: datetime | None = None,
) -> GateResult:
    """Load a fresh ledger snapshot and validate it."""
    path = ledger_path if ledger_path is not None else config.resolve(config.waivers.ledger)
    entries = load_ledger(path)
    return evaluate_waivers(
        entries,
        required_gates=config.waivers.required_gates,
        allow_required=config.required_waivers_enabled(),
        now=now,
        max_window_days=config.waivers.max_window_days,
        enable_env=config.waivers.enable_env,
    )
