# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Pydantic models for assistant documents.

This module defines the typed structures every document node is validated
against before it is hydrated into an entity. Single entries are accepted
where a list is expected, and ``schema`` fields may be written either as a
YAML mapping or as a JSON string.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


def _as_list(value: Any) -> Any:
    """Accept a single entry where a list is expected."""
    if value is None:
        return []
    if isinstance(value, (dict, str)):
        return [value]
    return value


def _as_model(value: Any) -> Any:
    """Accept a bare model name in place of a model mapping."""
    if isinstance(value, str):
        return {"name": value}
    return value


class ModelConfig(BaseModel):
    """Model selection and sampling parameters."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    """Model identifier passed to the model service."""

    provider: str | None = None
    """Optional model service name (e.g. 'claude')."""

    temperature: float | None = Field(default=None, ge=0.0, le=1.0)
    """Sampling temperature."""

    max_tokens: int | None = Field(default=None, ge=1, le=200000)
    """Maximum output tokens."""


ModelField = Annotated[ModelConfig | None, BeforeValidator(_as_model)]


class _NodeDef(BaseModel):
    """Common fields shared by every document node."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    """Identity of the node."""

    name: str | None = None
    """Human-readable name."""

    description: str | None = None
    """Human-readable description."""


class SchemaDef(_NodeDef):
    """A named JSON-Schema fragment (shared by inputs and outputs)."""

    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")
    """JSON-Schema fragment describing the expected shape."""

    @field_validator("schema_", mode="before")
    @classmethod
    def parse_json_schema(cls, v: Any) -> Any:
        """Parse schemas written as JSON strings."""
        if v is None:
            return {}
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"schema is not valid JSON: {e}") from e
        return v


class InputDef(SchemaDef):
    """Input contract of a step."""


class OutputDef(SchemaDef):
    """Output contract of a step."""

    push: str | None = None
    """Context key that accumulates per-iteration results of a loop step."""


class StepDef(_NodeDef):
    """Definition of a single workflow step."""

    model: ModelField = None
    """Step-level model override."""

    prompt: str
    """Prompt template with ${...} placeholders."""

    input: InputDef | None = None
    """Optional input contract."""

    output: OutputDef | None = None
    """Output contract the model's structured result is bound to."""

    loop: str | None = None
    """Context key holding the list this step iterates."""

    as_: str | None = Field(default=None, alias="as")
    """Name the current loop item is bound to while rendering."""

    @field_validator("prompt", mode="before")
    @classmethod
    def accept_template_mapping(cls, v: Any) -> Any:
        """Accept ``prompt: {template: ...}`` as well as a bare string."""
        if isinstance(v, dict) and "template" in v:
            return v["template"]
        return v

    @model_validator(mode="after")
    def validate_loop_binding(self) -> StepDef:
        """Ensure 'loop' and 'as' are declared together."""
        if self.loop and not self.as_:
            raise ValueError(f"step '{self.id}' declares 'loop' without 'as'")
        if self.as_ and not self.loop:
            raise ValueError(f"step '{self.id}' declares 'as' without 'loop'")
        return self


class WorkflowDef(_NodeDef):
    """Definition of an ordered sequence of steps."""

    id: str
    """Workflow identity, unique within an assistant."""

    model: ModelField = None
    """Workflow-level model override."""

    steps: Annotated[list[StepDef], BeforeValidator(_as_list)] = Field(default_factory=list)
    """Steps, executed strictly in declaration order."""


class SkillDef(_NodeDef):
    """Definition of a reusable bundle of workflows."""

    id: str
    """Skill identity."""

    dependencies: Annotated[
        list[Union[str, SkillDef]], BeforeValidator(_as_list)
    ] = Field(default_factory=list)
    """Skills this skill depends on: inline nodes or ids of assistant skills."""

    workflows: Annotated[list[WorkflowDef], BeforeValidator(_as_list)] = Field(
        default_factory=list
    )
    """Workflows owned by this skill."""


class AssistantDef(_NodeDef):
    """Root document: an assistant with its skills and workflows."""

    model: ModelField = None
    """Default model configuration."""

    skills: Annotated[list[SkillDef], BeforeValidator(_as_list)] = Field(default_factory=list)
    """Skills, in declaration order."""

    workflows: Annotated[list[WorkflowDef], BeforeValidator(_as_list)] = Field(
        default_factory=list
    )
    """Top-level workflows, in declaration order."""


SkillDef.model_rebuild()


def format_validation_errors(error: ValidationError) -> str:
    """Format pydantic validation errors as ``loc: msg`` lines.

    Args:
        error: The pydantic validation error.

    Returns:
        One indented line per error.
    """
    formatted_errors: list[str] = []
    for err in error.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "Unknown error")
        formatted_errors.append(f"  - {loc}: {msg}" if loc else f"  - {msg}")
    return "\n".join(formatted_errors) if formatted_errors else str(error)
