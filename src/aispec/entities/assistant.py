# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Assistant entity: the root of the graph.

The assistant owns its skills and top-level workflows, resolves workflow
lookups across both, and builds the minimal assistant each workflow run
uses as its system prompt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, NamedTuple

from aispec.config.loader import load_document, load_document_string
from aispec.config.schema import AssistantDef
from aispec.config.validator import validate_assistant_def
from aispec.entities.base import Entity
from aispec.entities.skill import Skill
from aispec.entities.workflow import Workflow
from aispec.exceptions import MalformedDocumentError, WorkflowNotFoundError

if TYPE_CHECKING:
    from aispec.engine.runner import WorkflowRunner
    from aispec.providers.base import ModelService

logger = logging.getLogger(__name__)

IDENTITY_KEYS = ("id", "name", "description", "model")


class WorkflowMatch(NamedTuple):
    """Result of a workflow lookup: the workflow and its owning skill, if any."""

    workflow: Workflow
    skill: Skill | None


@dataclass(eq=False)
class Assistant(Entity):
    """Root entity aggregating skills, workflows and the default model.

    Example:
        >>> assistant = Assistant.from_file("assistant.yaml")
        >>> match = assistant.find_workflow("character-building")
        >>> runner = assistant.load_workflow("character-building", service)
    """

    kind = "assistant"
    definition = AssistantDef
    excluded_fields = frozenset({"model"})
    mapping = {
        "id": "id",
        "name": "name",
        "description": "description",
        "model": "model",
        "skills": ("skills", Skill.from_node),
        "workflows": ("workflows", Workflow.from_node),
    }

    id: str | None = None
    name: str | None = None
    description: str | None = None
    model: dict[str, Any] | None = None
    skills: list[Skill] = field(default_factory=list)
    workflows: list[Workflow] = field(default_factory=list)
    """Top-level workflows only; skill workflows are reached through ``all_workflows``."""

    _registry: dict[str, WorkflowMatch] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def check_definition(cls, definition: Any) -> None:
        for warning in validate_assistant_def(definition):
            logger.warning(warning)

    @classmethod
    def from_node(cls, node: Any) -> Assistant:
        """Validate a resolved node and build the assistant graph.

        Raises:
            MalformedDocumentError: If the node is invalid or breaks a graph invariant.
        """
        assistant: Assistant = super().from_node(node)
        skills_by_id = {skill.id: skill for skill in assistant.skills}
        for skill in assistant.skills:
            skill.link(skills_by_id)
        assistant._register_workflows()
        return assistant

    @classmethod
    def from_file(cls, path: str | Path) -> Assistant:
        """Load an assistant document file, resolving every ``$ref``."""
        return cls.from_node(load_document(path))

    @classmethod
    def from_string(cls, content: str, base_dir: str | Path | None = None) -> Assistant:
        """Load an assistant from YAML text.

        The ``assistant:`` wrapper is optional.
        """
        node = load_document_string(content, base_dir)
        if isinstance(node, dict) and list(node) == [cls.kind]:
            node = node[cls.kind]
        return cls.from_node(node)

    def _register_workflows(self) -> None:
        matches = [WorkflowMatch(workflow, None) for workflow in self.workflows]
        for skill in self.skills:
            matches.extend(WorkflowMatch(workflow, skill) for workflow in skill.workflows)

        for match in matches:
            if match.workflow.id in self._registry:
                raise MalformedDocumentError(
                    f"Duplicate workflow id '{match.workflow.id}'",
                    suggestion="Workflow ids must be unique across the assistant and its skills",
                )
            self._registry[match.workflow.id] = match

    def all_workflows(self) -> list[Workflow]:
        """Return top-level workflows followed by each skill's workflows."""
        return [match.workflow for match in self._registry.values()]

    def find_workflow(self, workflow_id: str) -> WorkflowMatch:
        """Find a workflow by id.

        Top-level workflows are searched first, then each skill's workflows
        in skill declaration order.

        Args:
            workflow_id: The workflow id.

        Returns:
            The workflow and, when it belongs to a skill, that skill.

        Raises:
            WorkflowNotFoundError: If no workflow has that id.
        """
        for workflow in self.workflows:
            if workflow.id == workflow_id:
                return WorkflowMatch(workflow, None)

        for skill in self.skills:
            workflow = skill.find_workflow(workflow_id)
            if workflow is not None:
                return WorkflowMatch(workflow, skill)

        raise WorkflowNotFoundError(
            workflow_id, available=[workflow.id for workflow in self.all_workflows()]
        )

    def project(self, workflow_id: str) -> Assistant:
        """Build a new minimal assistant focused on one workflow.

        The minimal assistant keeps this assistant's identity and model,
        lists every unrelated skill by id, name and description only,
        appends the owning skill in full, and carries the workflow itself
        only when no skill owns it.

        Raises:
            WorkflowNotFoundError: If no workflow has that id.
        """
        match = self.find_workflow(workflow_id)

        node: dict[str, Any] = {
            key: self.node[key] for key in IDENTITY_KEYS if self.node.get(key) is not None
        }
        skills = [skill.summary_node() for skill in self.skills if skill is not match.skill]
        if match.skill is not None:
            skills.append(match.skill.node)
        node["skills"] = skills
        node["workflows"] = [match.workflow.node] if match.skill is None else []

        return Assistant.from_node(node)

    def load_workflow(
        self,
        workflow_id: str,
        model_service: ModelService,
        **kwargs: Any,
    ) -> WorkflowRunner:
        """Create a runner for a workflow, bound to the minimal assistant.

        Args:
            workflow_id: The workflow id.
            model_service: The model-invocation collaborator.
            **kwargs: Extra arguments passed to WorkflowRunner.

        Returns:
            A runner that has not been started.

        Raises:
            WorkflowNotFoundError: If no workflow has that id.
        """
        from aispec.engine.runner import WorkflowRunner

        minimal = self.project(workflow_id)
        match = minimal.find_workflow(workflow_id)
        owner = match.skill.id if match.skill else None
        logger.debug(f"Loaded workflow '{workflow_id}' (skill: {owner})")
        return WorkflowRunner(minimal, match.workflow, model_service, skill=match.skill, **kwargs)
