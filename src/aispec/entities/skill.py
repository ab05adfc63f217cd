# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Skill entity: a reusable bundle of workflows with dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aispec.config.schema import SkillDef
from aispec.entities.base import Entity, serialize_value
from aispec.entities.workflow import Workflow
from aispec.exceptions import MalformedDocumentError

SUMMARY_KEYS = ("id", "name", "description")


def _build_dependency(node: Any) -> Skill | str:
    """Build an inline dependency; an id reference stays a string until linked."""
    if isinstance(node, str):
        return node
    return Skill.from_node(node)


@dataclass(eq=False)
class Skill(Entity):
    """A named bundle of workflows, optionally depending on other skills.

    Dependencies given inline (or through ``$ref``) are built as skills
    directly. Dependencies given as an id are kept as strings until the
    owning assistant links them to its declared skills.
    """

    kind = "skill"
    definition = SkillDef
    mapping = {
        "id": "id",
        "name": "name",
        "description": "description",
        "dependencies": ("dependencies", lambda node: _build_dependency(node)),
        "workflows": ("workflows", Workflow.from_node),
    }

    id: str = ""
    name: str | None = None
    description: str | None = None
    dependencies: list[Any] = field(default_factory=list)
    workflows: list[Workflow] = field(default_factory=list)

    def link(self, skills: dict[str, Skill]) -> None:
        """Replace id references in ``dependencies`` with declared skills.

        Inline dependencies are linked recursively.

        Args:
            skills: The assistant's skills by id.

        Raises:
            MalformedDocumentError: If an id names no declared skill.
        """
        linked: list[Any] = []
        for dependency in self.dependencies:
            if isinstance(dependency, str):
                if dependency not in skills:
                    raise MalformedDocumentError(
                        f"Skill '{self.id}' depends on unknown skill '{dependency}'",
                        suggestion=f"Declare a skill with id '{dependency}' on the assistant",
                    )
                linked.append(skills[dependency])
            else:
                dependency.link(skills)
                linked.append(dependency)
        self.dependencies = linked

    def all_dependencies(self) -> list[Skill]:
        """Return every skill this one depends on, transitively.

        Dependencies come before the skills that need them, each listed
        once. Unlinked id references are skipped.
        """
        ordered: list[Skill] = []
        seen: set[int] = {id(self)}

        def visit(skill: Skill) -> None:
            for dependency in skill.dependencies:
                if isinstance(dependency, str) or id(dependency) in seen:
                    continue
                seen.add(id(dependency))
                visit(dependency)
                ordered.append(dependency)

        visit(self)
        return ordered

    def find_workflow(self, workflow_id: str) -> Workflow | None:
        """Return this skill's workflow with the given id, if any."""
        for workflow in self.workflows:
            if workflow.id == workflow_id:
                return workflow
        return None

    def summary_node(self) -> dict[str, Any]:
        """Return the skill stripped to its identity, name and description."""
        return {key: self.node[key] for key in SUMMARY_KEYS if self.node.get(key)}

    def _serialize_field(self, field_name: str, value: Any) -> Any:
        if field_name != "dependencies":
            return super()._serialize_field(field_name, value)

        # Dependencies declared by id serialize back to the id.
        raw = self.node.get("dependencies", [])
        serialized = []
        for index, dependency in enumerate(value):
            if isinstance(dependency, str):
                serialized.append(dependency)
            elif index < len(raw) and isinstance(raw[index], str):
                serialized.append(raw[index])
            else:
                serialized.append(serialize_value(dependency))
        return serialized
