"""Load and validate covgate configuration.

Configuration is layered: the built-in template, then an optional
``.covgate/config.yaml`` in the repository, then environment variables for
the values CI pipelines tune per job (thresholds, base ref, waiver switch).
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml  # type: ignore[import-untyped]

from covgate.diff.base_ref import BaseRefSettings
from covgate.errors import InvalidConfigurationError
from covgate.paths import PathAlias, PathNormalizer

CONFIG_RELATIVE_PATH = Path(".covgate/config.yaml")

SubsystemFormat = Literal["lcov", "summary"]
SUBSYSTEM_FORMATS: tuple[str, ...] = ("lcov", "summary")

# Written by `covgate init` with sorted keys; key order here is irrelevant.
DEFAULT_CONFIG_TEMPLATE: dict[str, Any] = {
    "source_roots": ["crates", "src-tauri", "ui/src"],
    "path_aliases": [
        {"prefix": "src/", "replacement": "ui/src/"},
    ],
    "subsystems": [
        {
            "name": "rust",
            "format": "lcov",
            "artifact": "coverage/rust.lcov",
            "min_pct": 70,
            "min_pct_env": "RUST_COVERAGE_MIN_PCT",
        },
        {
            "name": "ui",
            "format": "summary",
            "artifact": "coverage/ui/coverage-summary.json",
            "min_pct": 30,
            "min_pct_env": "UI_COVERAGE_MIN_PCT",
        },
    ],
    "diff_coverage": {
        "min_pct": 80,
        "min_pct_env": "DIFF_COVERAGE_MIN_PCT",
        "artifacts": ["coverage/rust.lcov", "coverage/ui/lcov.info"],
        "tracked_extensions": [".rs", ".ts", ".tsx", ".js", ".jsx"],
        "exclude": {
            "ui/src/": [
                "*/test/*",
                "*/__tests__/*",
                "*/fixtures/*",
                "*/__fixtures__/*",
                "*.test.ts",
                "*.test.tsx",
                "*/main.tsx",
            ],
            "crates/": ["*/tests.rs", "*_test.rs", "*/tests/*", "*/fixtures/*"],
            "src-tauri/src/": ["*/tests.rs", "*_test.rs", "*/tests/*", "*/fixtures/*"],
        },
        "max_uncovered_listed": 50,
    },
    "base_ref": {
        "override_env": "DIFF_COVERAGE_BASE_REF",
        "ci_env": "CI",
        "target_branch_env": "GITHUB_BASE_REF",
        "remote": "origin",
        "primary_branch": "main",
        "secondary_branch": "master",
    },
    "waivers": {
        "ledger": ".covgate/waivers.json",
        "required_gates": ["coverage", "diff_coverage"],
        "max_window_days": 7,
        "enable_env": "ALLOW_REQUIRED_GATE_WAIVER",
    },
    "change_policy": {
        "production": [
            r"^(src|app|server|api|lib)/",
            r"^crates/[^/]+/src/.+\.rs$",
            r"^src-tauri/src/.+\.rs$",
            r"^ui/src/.+\.(ts|tsx|css)$",
        ],
        "tests": [
            r"^tests/",
            r"^ui/src/.+\.(test|spec)\.[cm]?[jt]sx?$",
            r"^crates/[^/]+/src/tests\.rs$",
            r"\.(test|spec)\.[cm]?[jt]sx?$",
        ],
        "docs": [
            r"^docs/",
            r"^openapi/",
            r"^README\.md$",
        ],
    },
}


@dataclass(frozen=True)
class SubsystemConfig:
    """One aggregate-coverage subsystem."""

    name: str
    format: SubsystemFormat
    artifact: str
    min_pct: float
    min_pct_env: str


@dataclass(frozen=True)
class DiffCoverageConfig:
    """Diff coverage inputs and classification rules."""

    min_pct: float
    min_pct_env: str
    artifacts: tuple[str, ...]
    tracked_extensions: tuple[str, ...]
    exclude: Mapping[str, tuple[str, ...]]
    max_uncovered_listed: int = 50


@dataclass(frozen=True)
class WaiverConfig:
    """Waiver ledger location and activation policy."""

    ledger: str
    required_gates: tuple[str, ...]
    max_window_days: int
    enable_env: str


@dataclass(frozen=True)
class ChangePolicyConfig:
    """Regex rules classifying changed files."""

    production: tuple[str, ...]
    tests: tuple[str, ...]
    docs: tuple[str, ...]


@dataclass(frozen=True)
class GateConfig:
    """Fully resolved configuration for a single covgate invocation."""

    repo_root: Path
    source_roots: tuple[str, ...]
    path_aliases: tuple[PathAlias, ...]
    subsystems: tuple[SubsystemConfig, ...]
    diff_coverage: DiffCoverageConfig
    base_ref: BaseRefSettings
    waivers: WaiverConfig
    change_policy: ChangePolicyConfig
    env: Mapping[str, str] = field(default_factory=dict)
    config_path: Path | None = None

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        repo_root: Path,
        env: Mapping[str, str],
        config_path: Path | None = None,
    ) -> GateConfig:
        """Parse and validate a merged config dict into GateConfig."""
        try:
            source_roots = tuple(str(root).strip("/") for root in _require_list(data, "source_roots"))
            aliases = tuple(
                PathAlias(prefix=str(item["prefix"]), replacement=str(item["replacement"]))
                for item in _require_list(data, "path_aliases")
            )

            subsystems = []
            for item in _require_list(data, "subsystems"):
                fmt = item.get("format", "lcov")
                if fmt not in SUBSYSTEM_FORMATS:
                    raise InvalidConfigurationError(
                        f"subsystem {item.get('name')!r} has unsupported format {fmt!r}; "
                        f"expected one of: {', '.join(SUBSYSTEM_FORMATS)}"
                    )
                name = str(item["name"])
                subsystems.append(SubsystemConfig(
                    name=name,
                    format=fmt,
                    artifact=str(item["artifact"]),
                    min_pct=parse_pct(f"subsystems.{name}.min_pct", item.get("min_pct", 0)),
                    min_pct_env=str(item.get("min_pct_env") or f"{name.upper()}_COVERAGE_MIN_PCT"),
                ))

            diff_raw = _require_mapping(data, "diff_coverage")
            exclude_raw = diff_raw.get("exclude") or {}
            if not isinstance(exclude_raw, dict):
                raise InvalidConfigurationError("diff_coverage.exclude must be a mapping of prefix -> patterns")
            diff_coverage = DiffCoverageConfig(
                min_pct=parse_pct("diff_coverage.min_pct", diff_raw.get("min_pct", 80)),
                min_pct_env=str(diff_raw.get("min_pct_env", "DIFF_COVERAGE_MIN_PCT")),
                artifacts=tuple(str(p) for p in diff_raw.get("artifacts", [])),
                tracked_extensions=tuple(str(e) for e in diff_raw.get("tracked_extensions", [])),
                exclude={str(prefix): tuple(str(p) for p in patterns) for prefix, patterns in exclude_raw.items()},
                max_uncovered_listed=int(diff_raw.get("max_uncovered_listed", 50)),
            )

            base_raw = _require_mapping(data, "base_ref")
            base_ref = BaseRefSettings(**{key: str(value) for key, value in base_raw.items()})

            waivers_raw = _require_mapping(data, "waivers")
            waivers = WaiverConfig(
                ledger=str(waivers_raw["ledger"]),
                required_gates=tuple(str(g) for g in waivers_raw.get("required_gates", [])),
                max_window_days=int(waivers_raw.get("max_window_days", 7)),
                enable_env=str(waivers_raw.get("enable_env", "ALLOW_REQUIRED_GATE_WAIVER")),
            )

            policy_raw = _require_mapping(data, "change_policy")
            change_policy = ChangePolicyConfig(
                production=tuple(str(p) for p in policy_raw.get("production", [])),
                tests=tuple(str(p) for p in policy_raw.get("tests", [])),
                docs=tuple(str(p) for p in policy_raw.get("docs", [])),
            )
        except InvalidConfigurationError:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidConfigurationError(f"Invalid config structure: {exc}") from exc

        return cls(
            repo_root=repo_root,
            source_roots=source_roots,
            path_aliases=aliases,
            subsystems=tuple(subsystems),
            diff_coverage=diff_coverage,
            base_ref=base_ref,
            waivers=waivers,
            change_policy=change_policy,
            env=dict(env),
            config_path=config_path,
        )

    def normalizer(self) -> PathNormalizer:
        """Path normalizer shared by the coverage and diff parsers."""
        return PathNormalizer.for_repo(self.repo_root, self.source_roots, self.path_aliases)

    def resolve(self, relative: str) -> Path:
        """Resolve a config path relative to the repository root."""
        path = Path(relative)
        return path if path.is_absolute() else self.repo_root / path

    def subsystem_min_pct(self, subsystem: SubsystemConfig) -> float:
        """Configured minimum for a subsystem, with its environment override applied."""
        return _env_pct(self.env, subsystem.min_pct_env, subsystem.min_pct)

    def diff_min_pct(self) -> float:
        """Configured diff-coverage minimum, with its environment override applied."""
        return _env_pct(self.env, self.diff_coverage.min_pct_env, self.diff_coverage.min_pct)

    def required_waivers_enabled(self) -> bool:
        return self.env.get(self.waivers.enable_env, "").strip() == "1"


def parse_pct(name: str, value: Any) -> float:
    """Parse a percentage threshold, rejecting non-numeric and non-finite values."""
    if isinstance(value, bool):
        raise InvalidConfigurationError(f"invalid numeric value for {name}: {value!r}")
    try:
        pct = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"invalid numeric value for {name}: {value!r}") from exc
    if not math.isfinite(pct):
        raise InvalidConfigurationError(f"invalid numeric value for {name}: {value!r}")
    return pct


def _env_pct(env: Mapping[str, str], env_name: str, default: float) -> float:
    raw = env.get(env_name)
    if raw is None or raw.strip() == "":
        return default
    return parse_pct(env_name, raw)


def _require_list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if not isinstance(value, list):
        raise InvalidConfigurationError(f"config missing required list `{key}`")
    return value


def _require_mapping(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise InvalidConfigurationError(f"config missing required mapping `{key}`")
    return value


def config_path_for_repo(repo_root: Path) -> Path:
    """Return canonical config file path for a repository."""
    return repo_root.resolve() / CONFIG_RELATIVE_PATH


def ensure_default_config(repo_root: Path, *, force: bool = False) -> Path:
    """Write the default config YAML deterministically."""
    output_path = config_path_for_repo(repo_root)
    if output_path.exists() and not force:
        raise FileExistsError(f"Config file already exists: {output_path}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    rendered = yaml.safe_dump(DEFAULT_CONFIG_TEMPLATE, sort_keys=True)
    output_path.write_text(rendered, encoding="utf-8")
    return output_path


def merge_config(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Overlay top-level keys; mapping sections merge one level deep."""
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(
    repo_root: Path,
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> GateConfig:
    """Load, merge, and validate configuration for a repository.

    Priority order:
    1. Environment variables (thresholds, base ref, waiver switch)
    2. Explicit ``config_path`` or ``.covgate/config.yaml`` when present
    3. Built-in ``DEFAULT_CONFIG_TEMPLATE``

    Raises:
        InvalidConfigurationError: If the YAML is malformed or a section has the wrong shape
    """
    resolved_root = repo_root.resolve()
    env = os.environ if env is None else env

    path = config_path if config_path is not None else config_path_for_repo(resolved_root)
    data = dict(DEFAULT_CONFIG_TEMPLATE)
    used_path: Path | None = None

    if config_path is not None and not path.exists():
        raise InvalidConfigurationError(f"Config file not found: {path}")

    if path.exists():
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise InvalidConfigurationError(f"Malformed YAML config at {path}: {exc}") from exc
        if raw is not None:
            if not isinstance(raw, dict):
                raise InvalidConfigurationError(f"Invalid config at {path}: expected mapping at top level")
            data = merge_config(data, raw)
        used_path = path

    return GateConfig.from_dict(data, repo_root=resolved_root, env=env, config_path=used_path)
