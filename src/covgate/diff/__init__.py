"""Change-diff analysis."""

from covgate.diff.base_ref import BaseRefSettings, resolve_base_ref
from covgate.diff.parser import parse_name_only, parse_unified_diff
from covgate.diff.types import BaseRefResolution, ChangeHunk, ChangeSet

__all__ = [
    "BaseRefResolution",
    "BaseRefSettings",
    "ChangeHunk",
    "ChangeSet",
    "parse_name_only",
    "parse_unified_diff",
    "resolve_base_ref",
]
