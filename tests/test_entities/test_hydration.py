"""Tests for generic entity hydration and serialization.

Tests cover:
- Dotted-path lookup in raw nodes
- The mount rules (copy, one child per element, one child per mapping, skip)
- Mapping tables checked against declared fields
- Serialization back to the document format
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
from ruamel.yaml import YAML

from aispec.entities import Entity, Step, Workflow, get_nested_value, mount
from aispec.exceptions import MalformedDocumentError


@dataclass
class Child:
    value: Any


@dataclass
class Target:
    title: Any = "unset"
    children: Any = field(default_factory=list)


class TestGetNestedValue:
    """Tests for dotted-path lookup."""

    def test_top_level_key(self) -> None:
        assert get_nested_value("id", {"id": "x"}) == "x"

    def test_nested_key(self) -> None:
        assert get_nested_value("output.schema", {"output": {"schema": {"a": 1}}}) == {"a": 1}

    def test_sequence_index(self) -> None:
        assert get_nested_value("steps.1", {"steps": ["a", "b"]}) == "b"

    def test_missing_segment_returns_none(self) -> None:
        assert get_nested_value("output.schema", {"id": "x"}) is None

    def test_index_out_of_range_returns_none(self) -> None:
        assert get_nested_value("steps.5", {"steps": ["a"]}) is None


class TestMount:
    """Tests for the generic mount routine."""

    def test_plain_path_copies_value(self) -> None:
        target = Target()
        mount(target, {"name": "Hello"}, {"title": "name"})
        assert target.title == "Hello"

    def test_plain_path_missing_sets_none(self) -> None:
        target = Target()
        mount(target, {}, {"title": "name"})
        assert target.title is None

    def test_sequence_builds_one_child_per_element(self) -> None:
        target = Target()
        mount(target, {"items": [1, 2, 3]}, {"children": ("items", Child)})

        assert target.children == [Child(1), Child(2), Child(3)]

    def test_mapping_builds_exactly_one_child(self) -> None:
        target = Target()
        mount(target, {"item": {"k": "v"}}, {"children": ("item", Child)})

        assert target.children == Child({"k": "v"})

    def test_missing_child_leaves_default(self) -> None:
        target = Target()
        mount(target, {}, {"children": ("items", Child)})

        assert target.children == []

    def test_builder_receives_raw_child(self) -> None:
        received: list[Any] = []
        target = Target()
        mount(target, {"items": [{"a": 1}]}, {"children": ("items", received.append)})

        assert received == [{"a": 1}]


class TestCheckMapping:
    """Tests for mapping tables naming undeclared fields."""

    def test_undeclared_field_raises_at_class_creation(self) -> None:
        with pytest.raises(TypeError, match="undeclared fields: missing"):

            class Broken(Entity):
                kind = "broken"
                mapping = {"missing": "missing"}

    def test_declared_fields_pass(self) -> None:
        @dataclass(eq=False)
        class Fine(Entity):
            kind = "fine"
            mapping = {"label": "name"}

            label: str | None = None

        entity = Fine.from_node({"name": "ok"})
        assert entity.label == "ok"


class TestValidateNode:
    """Tests for node validation before mounting."""

    def test_non_mapping_raises(self) -> None:
        with pytest.raises(MalformedDocumentError, match="Expected a mapping for step"):
            Step.from_node(["not", "a", "mapping"])

    def test_invalid_node_raises_with_kind(self) -> None:
        with pytest.raises(MalformedDocumentError) as exc_info:
            Step.from_node({"id": "s"})

        assert exc_info.value.message.startswith("Invalid step node:")
        assert "prompt" in exc_info.value.message


class TestSerialization:
    """Tests for serializing entities back to documents."""

    def test_model_is_excluded(self) -> None:
        step = Step.from_node(
            {"id": "s", "prompt": "Hi", "model": {"name": "m"}, "output": {"schema": {}}}
        )

        assert step.model == {"name": "m"}
        assert "model" not in step.to_node()

    def test_empty_values_are_omitted(self) -> None:
        workflow = Workflow.from_node({"id": "w"})

        assert workflow.to_node() == {"id": "w"}

    def test_loop_binding_uses_document_key(self) -> None:
        step = Step.from_node({"prompt": "p ${x}", "loop": "xs", "as": "x"})

        node = step.to_node()
        assert node["as"] == "x"
        assert "as_name" not in node

    def test_extra_keys_survive(self) -> None:
        """Test that annotations beyond the mapping are kept."""
        workflow = Workflow.from_node({"id": "w", "owner": "team-a"})

        assert workflow.to_node()["owner"] == "team-a"

    def test_to_document_wraps_in_kind(self) -> None:
        workflow = Workflow.from_node({"id": "w", "steps": [{"id": "s", "prompt": "p"}]})

        assert workflow.to_document() == {
            "workflow": {"id": "w", "steps": [{"id": "s", "prompt": "p"}]}
        }

    def test_to_yaml_parses_back(self) -> None:
        step = {"id": "s", "prompt": "Hi ${name}", "output": {"schema": {"type": "object"}}}
        workflow = Workflow.from_node({"id": "w", "model": "claude-sonnet-4-5", "steps": [step]})

        data = YAML(typ="safe").load(workflow.to_yaml())

        assert data["workflow"]["steps"][0]["prompt"] == "Hi ${name}"
        assert data["workflow"]["steps"][0]["output"] == {"schema": {"type": "object"}}
        assert "model" not in data["workflow"]

    def test_str_is_yaml(self) -> None:
        workflow = Workflow.from_node({"id": "w"})
        assert str(workflow) == workflow.to_yaml()
