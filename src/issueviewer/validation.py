"""Argument schemas and the validator that runs before any tool handler.

Pure functions with no MCP, httpx or Click dependencies beyond the outcome types.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from issueviewer.outcome import VALIDATION_ERROR, Failure

FieldType = Literal["string", "integer"]


@dataclass(frozen=True)
class FieldSpec:
    """Declared shape of one tool argument."""

    type: FieldType
    description: str
    required: bool = True
    non_empty: bool = False
    minimum: int | None = None

    def json_schema(self) -> dict[str, Any]:
        prop: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.non_empty:
            prop["minLength"] = 1
        if self.minimum is not None:
            prop["minimum"] = self.minimum
        return prop


ArgumentSchema = Mapping[str, FieldSpec]


def input_schema(schema: ArgumentSchema) -> dict[str, Any]:
    """Render an argument schema as the JSON Schema object MCP advertises."""
    return {
        "type": "object",
        "properties": {name: spec.json_schema() for name, spec in schema.items()},
        "required": [name for name, spec in schema.items() if spec.required],
    }


def _check_field(name: str, spec: FieldSpec, value: Any) -> str | None:
    """Return an error message for *value*, or None if it satisfies *spec*."""
    if spec.type == "string":
        if not isinstance(value, str):
            return f"{name} must be a string"
        if spec.non_empty and not value.strip():
            return f"{name} must not be empty"
        return None
    # bool is an int subclass; True is not an issue number.
    if isinstance(value, bool) or not isinstance(value, int):
        return f"{name} must be an integer"
    if spec.minimum is not None and value < spec.minimum:
        return f"{name} must be >= {spec.minimum}"
    return None


def validate_arguments(schema: ArgumentSchema, raw: Any) -> tuple[dict[str, Any], Failure | None]:
    """Narrow *raw* to the fields declared in *schema*.

    Returns (arguments, None) on success or ({}, failure) on the first field
    that fails.  Fields not declared in the schema are dropped silently.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        return ({}, Failure("Invalid arguments: expected an object", VALIDATION_ERROR))

    cleaned: dict[str, Any] = {}
    for name, spec in schema.items():
        value = raw.get(name)
        if value is None:
            if spec.required:
                return ({}, Failure(f"Invalid arguments: {name} is required", VALIDATION_ERROR))
            continue
        err = _check_field(name, spec, value)
        if err:
            return ({}, Failure(f"Invalid arguments: {err}", VALIDATION_ERROR))
        cleaned[name] = value
    return (cleaned, None)
