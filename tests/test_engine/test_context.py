"""Unit tests for WorkflowContext.

Tests cover:
- Flat merging of step results
- Appending loop results with push
- Template variables with local bindings
- Execution history
"""

import pytest

from aispec.engine.context import WorkflowContext
from aispec.exceptions import ExecutionError


class TestWorkflowContextBasic:
    """Basic WorkflowContext functionality tests."""

    def test_init_default_values(self) -> None:
        ctx = WorkflowContext()

        assert ctx.values == {}
        assert ctx.execution_history == []

    def test_merge_adds_keys(self) -> None:
        ctx = WorkflowContext()
        ctx.merge({"name": "John", "surnamesLength": 2})
        ctx.merge({"surnames": ["Doe", "Smith"]})

        assert ctx.values == {"name": "John", "surnamesLength": 2, "surnames": ["Doe", "Smith"]}

    def test_merge_overwrites_existing_keys(self) -> None:
        """Test that a later step's keys replace earlier values."""
        ctx = WorkflowContext()
        ctx.merge({"surname": "Doe"})
        ctx.merge({"surname": "Smith"})

        assert ctx.get("surname") == "Smith"

    def test_get_default(self) -> None:
        assert WorkflowContext().get("missing", "fallback") == "fallback"

    def test_record(self) -> None:
        ctx = WorkflowContext()
        ctx.record("surnames")
        ctx.record("surname")

        assert ctx.execution_history == ["surnames", "surname"]

    def test_to_dict_is_a_copy(self) -> None:
        ctx = WorkflowContext()
        ctx.merge({"a": 1})

        snapshot = ctx.to_dict()
        snapshot["b"] = 2

        assert "b" not in ctx.values


class TestWorkflowContextPush:
    """Tests for appending loop results."""

    def test_push_creates_list(self) -> None:
        ctx = WorkflowContext()
        ctx.push("results", {"line": "a"})

        assert ctx.values["results"] == [{"line": "a"}]

    def test_push_appends_in_order(self) -> None:
        ctx = WorkflowContext()
        for line in ("a", "b", "c"):
            ctx.push("lines", line)

        assert ctx.values["lines"] == ["a", "b", "c"]

    def test_push_to_existing_list(self) -> None:
        ctx = WorkflowContext()
        ctx.merge({"lines": ["seed"]})
        ctx.push("lines", "next")

        assert ctx.values["lines"] == ["seed", "next"]

    def test_push_to_non_list_raises(self) -> None:
        ctx = WorkflowContext()
        ctx.merge({"lines": "not a list"})

        with pytest.raises(ExecutionError, match="Cannot push to context key 'lines'"):
            ctx.push("lines", "x")


class TestTemplateVariables:
    """Tests for building prompt variables."""

    def test_bindings_shadow_context(self) -> None:
        ctx = WorkflowContext()
        ctx.merge({"beat": "context value", "topic": "heist"})

        variables = ctx.get_for_template(beat="loop value")

        assert variables == {"beat": "loop value", "topic": "heist"}

    def test_bindings_do_not_leak(self) -> None:
        ctx = WorkflowContext()
        ctx.get_for_template(beat="loop value")

        assert "beat" not in ctx.values
