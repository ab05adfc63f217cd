"""Tests for structured output validation and parsing."""

from __future__ import annotations

import pytest

from aispec.entities import Output
from aispec.exceptions import ValidationError
from aispec.executor.output import (
    parse_json_output,
    response_tool_schema,
    result_key,
    validate_output,
)

SURNAME_SCHEMA = {
    "type": "object",
    "properties": {"surname": {"type": "string"}},
    "required": ["surname"],
}


class TestValidateOutput:
    """Tests for JSON-Schema shape checks."""

    def test_valid_object(self) -> None:
        validate_output({"surname": "Doe"}, SURNAME_SCHEMA)

    def test_missing_required_field(self) -> None:
        with pytest.raises(ValidationError, match="Missing required output field: \\$.surname"):
            validate_output({}, SURNAME_SCHEMA)

    def test_wrong_property_type(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_output({"surname": 42}, SURNAME_SCHEMA)

        assert exc_info.value.field_name == "$.surname"
        assert exc_info.value.expected_type == "string"

    def test_array_items(self) -> None:
        schema = {"type": "array", "items": {"type": "string"}}

        validate_output(["Doe", "Smith"], schema)
        with pytest.raises(ValidationError, match="\\$\\[1\\]"):
            validate_output(["Doe", 3], schema)

    def test_boolean_is_not_a_number(self) -> None:
        with pytest.raises(ValidationError):
            validate_output(True, {"type": "integer"})

    def test_integer_is_a_number(self) -> None:
        validate_output(3, {"type": "number"})

    def test_type_list(self) -> None:
        validate_output(None, {"type": ["string", "null"]})

    def test_enum(self) -> None:
        schema = {"type": "string", "enum": ["hero", "villain"]}

        validate_output("hero", schema)
        with pytest.raises(ValidationError, match="not one of"):
            validate_output("sidekick", schema)

    def test_empty_schema_accepts_anything(self) -> None:
        validate_output({"anything": [1, 2]}, {})

    def test_unknown_type_accepts_anything(self) -> None:
        validate_output("x", {"type": "date"})


class TestResponseToolSchema:
    """Tests for tool parameter schemas built from outputs."""

    def test_object_schema_used_as_is(self) -> None:
        output = Output.from_node({"schema": SURNAME_SCHEMA})

        assert response_tool_schema(output) == SURNAME_SCHEMA
        assert result_key(output) is None

    def test_properties_without_type_become_object(self) -> None:
        output = Output.from_node({"schema": {"properties": {"a": {"type": "string"}}}})

        assert response_tool_schema(output)["type"] == "object"

    def test_scalar_schema_is_wrapped_under_output_name(self) -> None:
        output = Output.from_node({"name": "line", "schema": {"type": "string"}})

        assert result_key(output) == "line"
        assert response_tool_schema(output) == {
            "type": "object",
            "properties": {"line": {"type": "string"}},
            "required": ["line"],
        }

    def test_wrapped_key_falls_back_to_result(self) -> None:
        output = Output.from_node({"schema": {"type": "array"}})
        assert result_key(output) == "result"

    def test_empty_schema(self) -> None:
        output = Output.from_node({})
        assert response_tool_schema(output) == {"type": "object", "properties": {}}


class TestParseJsonOutput:
    """Tests for recovering JSON from free text."""

    def test_plain_json(self) -> None:
        assert parse_json_output('{"surname": "Doe"}') == {"surname": "Doe"}

    def test_markdown_fence(self) -> None:
        text = 'Here you go:\n```json\n{"surname": "Doe"}\n```'
        assert parse_json_output(text) == {"surname": "Doe"}

    def test_leading_prose(self) -> None:
        assert parse_json_output('Sure! {"surname": "Doe"}') == {"surname": "Doe"}

    def test_non_object_is_wrapped(self) -> None:
        assert parse_json_output("[1, 2]") == {"result": [1, 2]}

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(ValidationError, match="Failed to parse JSON"):
            parse_json_output("not json at all")
