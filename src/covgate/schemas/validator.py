"""Draft 2020-12 validation for covgate documents."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from jsonschema.exceptions import ValidationError
from jsonschema.validators import Draft202012Validator

from covgate.schemas.registry import load_schema


@lru_cache(maxsize=None)
def _validator(schema_name: str) -> Draft202012Validator:
    schema = load_schema(schema_name)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def describe_error(error: ValidationError) -> str:
    """Render one error as ``<json path>: <message>``."""
    return f"{error.json_path}: {error.message}"


def validate_data(data: Any, schema_name: str, strict: bool = True) -> tuple[bool, list[str]]:
    """Validate a decoded document against a packaged schema.

    Errors are reported in document order so repeated runs print identical
    diagnostics.

    Returns:
        (is_valid, messages)

    Raises:
        UnknownSchemaError: If the schema is not packaged
        ValueError: If strict and the document is invalid
    """
    errors = sorted(_validator(schema_name).iter_errors(data), key=lambda e: e.json_path)
    messages = [describe_error(e) for e in errors]
    if messages and strict:
        raise ValueError(f"{schema_name} document failed validation: {'; '.join(messages)}")
    return not messages, messages
