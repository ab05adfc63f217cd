# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Workflow entity: an ordered sequence of steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aispec.config.schema import WorkflowDef
from aispec.entities.base import Entity
from aispec.entities.step import Step


@dataclass(eq=False)
class Workflow(Entity):
    """An ordered sequence of steps sharing one accumulating context."""

    kind = "workflow"
    definition = WorkflowDef
    excluded_fields = frozenset({"model"})
    mapping = {
        "id": "id",
        "name": "name",
        "description": "description",
        "model": "model",
        "steps": ("steps", Step.from_node),
    }

    id: str = ""
    name: str | None = None
    description: str | None = None
    model: dict[str, Any] | None = None
    steps: list[Step] = field(default_factory=list)
