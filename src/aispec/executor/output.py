# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Output parsing and validation for model responses.

This module provides functions for checking a response tool's arguments
against the JSON-Schema fragment declared on a step's output, and for
recovering a JSON object from a free-text response.

Only the shape is checked (``type``, ``properties``, ``required``,
``items``, ``enum``); the meaning of the values is left to the host.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

from aispec.exceptions import ValidationError

if TYPE_CHECKING:
    from aispec.entities.step import Output


def validate_output(content: Any, schema: dict[str, Any], path: str = "$") -> None:
    """Validate a value against a JSON-Schema fragment.

    Args:
        content: The value to check (usually the response tool's arguments).
        schema: The JSON-Schema fragment.
        path: JSON path of ``content``, used in error messages.

    Raises:
        ValidationError: If the value does not match the schema's shape.

    Example:
        >>> schema = {"type": "object", "required": ["surname"],
        ...           "properties": {"surname": {"type": "string"}}}
        >>> validate_output({"surname": "Doe"}, schema)  # OK
        >>> validate_output({}, schema)  # Raises ValidationError
    """
    if not schema:
        return

    expected = schema.get("type")
    if expected is not None and not _check_type(content, expected):
        raise ValidationError(
            f"Output value at '{path}' has wrong type: "
            f"expected {expected}, got {type(content).__name__}",
            suggestion=f"Ensure the model returns correct type for '{path}'",
            field_name=path,
            expected_type=str(expected),
        )

    enum = schema.get("enum")
    if enum is not None and content not in enum:
        raise ValidationError(
            f"Output value at '{path}' is not one of {enum}",
            suggestion=f"Ensure the model returns one of the allowed values for '{path}'",
            field_name=path,
        )

    if isinstance(content, dict):
        for field_name in schema.get("required", []):
            if field_name not in content:
                raise ValidationError(
                    f"Missing required output field: {path}.{field_name}",
                    suggestion=f"Ensure the model returns '{field_name}' in output",
                    field_name=f"{path}.{field_name}",
                )
        for field_name, field_schema in schema.get("properties", {}).items():
            if field_name in content and isinstance(field_schema, dict):
                validate_output(content[field_name], field_schema, f"{path}.{field_name}")

    items = schema.get("items")
    if isinstance(content, list) and isinstance(items, dict):
        for i, item in enumerate(content):
            validate_output(item, items, f"{path}[{i}]")


def _check_type(value: Any, expected: str | list[str]) -> bool:
    """Check if value matches an expected JSON-Schema type.

    Args:
        value: The value to check.
        expected: The expected type name, or a list of accepted type names.

    Returns:
        True if value matches expected type, False otherwise.
    """
    if isinstance(expected, list):
        return any(_check_type(value, name) for name in expected)

    type_map: dict[str, type | tuple[type, ...]] = {
        "string": str,
        "number": (int, float),
        "integer": int,
        "boolean": bool,
        "array": list,
        "object": dict,
        "null": type(None),
    }

    expected_types = type_map.get(expected)
    if expected_types is None:
        # Unknown type - accept any value
        return True

    # bool is a subclass of int
    if expected in ("number", "integer") and isinstance(value, bool):
        return False

    return isinstance(value, expected_types)


def response_tool_schema(output: Output) -> dict[str, Any]:
    """Build the object schema a response tool accepts for an output.

    Tool arguments are always an object. An output whose schema already
    describes an object is used as-is; any other schema is wrapped as a
    single property named after the output.

    Args:
        output: The step's output contract.

    Returns:
        A JSON-Schema object.
    """
    schema = dict(output.schema or {})
    key = result_key(output)
    if key is not None:
        return {"type": "object", "properties": {key: schema}, "required": [key]}
    if not schema:
        return {"type": "object", "properties": {}}
    schema.setdefault("type", "object")
    return schema


def result_key(output: Output) -> str | None:
    """Return the property a non-object output schema is wrapped under.

    Returns:
        The wrapping key, or None when the schema already describes an object.
    """
    schema = output.schema or {}
    if not schema or schema.get("type") == "object" or "properties" in schema:
        return None
    return output.name or output.id or "result"


def parse_json_output(raw_response: str) -> dict[str, Any]:
    """Parse JSON from a model's free-text response.

    Attempts to extract JSON from the response, handling common cases
    like markdown code blocks.

    Args:
        raw_response: The raw text response from the model.

    Returns:
        Parsed JSON as a dictionary.

    Raises:
        ValidationError: If JSON parsing fails.
    """
    text = raw_response.strip()

    # Try to extract JSON from markdown code blocks
    json_block_match = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if json_block_match:
        text = json_block_match.group(1).strip()

    # Try to find JSON object or array
    if not text.startswith(("{", "[")):
        obj_start = text.find("{")
        arr_start = text.find("[")

        if obj_start >= 0 and (arr_start < 0 or obj_start < arr_start):
            text = text[obj_start:]
        elif arr_start >= 0:
            text = text[arr_start:]

    try:
        result = json.loads(text)
        if isinstance(result, dict):
            return result
        # If result is not a dict, wrap it
        return {"result": result}
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Failed to parse JSON from model response: {e}",
            suggestion="Ensure the model outputs valid JSON format",
        ) from e
