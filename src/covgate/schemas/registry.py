"""Packaged JSON schemas.

Schemas ship as ``covgate.schemas`` package data and are read through
``importlib.resources``, so a check behaves the same from any working
directory and from an installed wheel.
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib.resources import files
from typing import Any

SCHEMA_PACKAGE = "covgate.schemas"
SCHEMA_SUFFIX = ".schema.json"


class UnknownSchemaError(KeyError):
    """Raised for a schema name with no packaged document."""


def schema_names() -> tuple[str, ...]:
    """Sorted names of every packaged schema, without the suffix."""
    return tuple(sorted(
        item.name.removesuffix(SCHEMA_SUFFIX)
        for item in files(SCHEMA_PACKAGE).iterdir()
        if item.name.endswith(SCHEMA_SUFFIX)
    ))


def load_schema(name: str) -> dict[str, Any]:
    """Return the parsed schema document for name (suffix optional).

    Raises:
        UnknownSchemaError: If covgate ships no schema with that name
    """
    return _load_canonical(name.removesuffix(SCHEMA_SUFFIX))


@lru_cache(maxsize=None)
def _load_canonical(canonical: str) -> dict[str, Any]:
    available = schema_names()
    if canonical not in available:
        raise UnknownSchemaError(
            f"unknown schema {canonical!r}; available schemas: {', '.join(available) or '(none)'}"
        )
    document: dict[str, Any] = json.loads(
        (files(SCHEMA_PACKAGE) / f"{canonical}{SCHEMA_SUFFIX}").read_text(encoding="utf-8")
    )
    return document
