"""Tests for the Pydantic document models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from aispec.config.schema import (
    AssistantDef,
    ModelConfig,
    OutputDef,
    SkillDef,
    StepDef,
    WorkflowDef,
    format_validation_errors,
)


class TestModelConfig:
    """Tests for model configuration."""

    def test_bare_name_is_accepted(self) -> None:
        """Test that `model: claude-sonnet-4-5` becomes a mapping."""
        workflow = WorkflowDef.model_validate({"id": "w", "model": "claude-sonnet-4-5"})

        assert workflow.model is not None
        assert workflow.model.name == "claude-sonnet-4-5"

    def test_temperature_range(self) -> None:
        with pytest.raises(ValidationError):
            ModelConfig(temperature=1.5)

    def test_extra_keys_are_kept(self) -> None:
        config = ModelConfig.model_validate({"name": "m", "top_k": 5})

        assert config.model_dump()["top_k"] == 5


class TestOutputDef:
    """Tests for input/output contracts."""

    def test_schema_as_mapping(self) -> None:
        output = OutputDef.model_validate({"schema": {"type": "string"}})
        assert output.schema_ == {"type": "string"}

    def test_schema_as_json_string(self) -> None:
        """Test that a schema given as JSON text is parsed."""
        output = OutputDef.model_validate({"schema": '{"type": "array"}'})
        assert output.schema_ == {"type": "array"}

    def test_invalid_json_schema_raises(self) -> None:
        with pytest.raises(ValidationError, match="not valid JSON"):
            OutputDef.model_validate({"schema": "{not json"})

    def test_dump_uses_schema_alias(self) -> None:
        output = OutputDef.model_validate({"schema": {"type": "string"}, "push": "lines"})
        dumped = output.model_dump(by_alias=True, exclude_none=True)

        assert dumped["schema"] == {"type": "string"}
        assert dumped["push"] == "lines"


class TestStepDef:
    """Tests for step definitions."""

    def test_prompt_is_required(self) -> None:
        with pytest.raises(ValidationError):
            StepDef.model_validate({"id": "s"})

    def test_prompt_template_mapping(self) -> None:
        step = StepDef.model_validate({"prompt": {"template": "Hi ${name}"}})
        assert step.prompt == "Hi ${name}"

    def test_loop_requires_as(self) -> None:
        with pytest.raises(ValidationError, match="'loop' without 'as'"):
            StepDef.model_validate({"id": "s", "prompt": "p", "loop": "items"})

    def test_as_requires_loop(self) -> None:
        with pytest.raises(ValidationError, match="'as' without 'loop'"):
            StepDef.model_validate({"id": "s", "prompt": "p", "as": "item"})

    def test_loop_with_as(self) -> None:
        step = StepDef.model_validate({"prompt": "p", "loop": "items", "as": "item"})

        assert step.loop == "items"
        assert step.as_ == "item"


class TestCollections:
    """Tests for list-valued fields."""

    def test_single_entry_accepted_as_list(self) -> None:
        """Test that a lone mapping is hydrated as a one-element list."""
        assistant = AssistantDef.model_validate(
            {"skills": {"id": "only", "workflows": {"id": "w", "steps": {"prompt": "p"}}}}
        )

        assert len(assistant.skills) == 1
        assert assistant.skills[0].workflows[0].steps[0].prompt == "p"

    def test_missing_collections_default_to_empty(self) -> None:
        assistant = AssistantDef.model_validate({"id": "a"})

        assert assistant.skills == []
        assert assistant.workflows == []

    def test_dependencies_mix_ids_and_inline_skills(self) -> None:
        skill = SkillDef.model_validate(
            {"id": "s", "dependencies": ["other", {"id": "inline"}]}
        )

        assert skill.dependencies[0] == "other"
        assert isinstance(skill.dependencies[1], SkillDef)

    def test_workflow_requires_id(self) -> None:
        with pytest.raises(ValidationError):
            WorkflowDef.model_validate({"steps": []})


class TestFormatValidationErrors:
    """Tests for error formatting."""

    def test_formats_location_and_message(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            WorkflowDef.model_validate({"id": "w", "steps": [{"id": "s"}]})

        formatted = format_validation_errors(exc_info.value)

        assert formatted.startswith("  - ")
        assert "steps.0.prompt" in formatted
