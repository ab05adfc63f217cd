# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Step entity and its input/output contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aispec.config.schema import InputDef, OutputDef, StepDef
from aispec.entities.base import Entity
from aispec.entities.prompt import Prompt


@dataclass(eq=False)
class Input(Entity):
    """Input contract of a step."""

    kind = "input"
    definition = InputDef
    mapping = {
        "id": "id",
        "name": "name",
        "description": "description",
        "schema": "schema",
    }

    id: str | None = None
    name: str | None = None
    description: str | None = None
    schema: dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class Output(Entity):
    """Output contract of a step.

    ``schema`` is the JSON-Schema fragment the model's structured result
    must match. ``push`` names the context key a loop step appends each
    iteration's result to.
    """

    kind = "output"
    definition = OutputDef
    mapping = {
        "id": "id",
        "name": "name",
        "description": "description",
        "schema": "schema",
        "push": "push",
    }

    id: str | None = None
    name: str | None = None
    description: str | None = None
    schema: dict[str, Any] = field(default_factory=dict)
    push: str | None = None


@dataclass(eq=False)
class Step(Entity):
    """One unit of work: render a prompt, invoke the model, bind the result.

    A step with ``loop`` set iterates the context list of that name,
    binding each element under ``as_name`` while its prompt is rendered.
    """

    kind = "step"
    definition = StepDef
    excluded_fields = frozenset({"model"})
    mapping = {
        "id": "id",
        "name": "name",
        "description": "description",
        "model": "model",
        "prompt": ("prompt", Prompt.from_node),
        "input": ("input", Input.from_node),
        "output": ("output", Output.from_node),
        "loop": "loop",
        "as_name": "as",
    }

    id: str | None = None
    name: str | None = None
    description: str | None = None
    model: dict[str, Any] | None = None
    prompt: Prompt | None = None
    input: Input | None = None
    output: Output | None = None
    loop: str | None = None
    as_name: str | None = None

    @property
    def is_loop(self) -> bool:
        """Whether this step iterates a context list."""
        return bool(self.loop)

    @property
    def pushes(self) -> bool:
        """Whether each loop iteration appends to a context list."""
        return self.is_loop and self.output is not None and bool(self.output.push)

    def render_prompt(self, context: dict[str, Any]) -> str:
        """Render this step's prompt against a context."""
        if self.prompt is None:
            return ""
        return self.prompt.render(context)
