# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Cross-node validators for assistant documents.

This module provides validation beyond what the Pydantic schema can check:
workflow identities unique across the whole graph, skill dependency
references that point at declared skills, and a dependency graph free of
cycles.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aispec.exceptions import MalformedDocumentError

if TYPE_CHECKING:
    from aispec.config.schema import AssistantDef, SkillDef, WorkflowDef


def validate_assistant_def(definition: AssistantDef) -> list[str]:
    """Perform graph-level validation of an assistant definition.

    Args:
        definition: The validated AssistantDef.

    Returns:
        A list of warning messages (non-fatal issues).

    Raises:
        MalformedDocumentError: If any validation errors are found.
    """
    errors: list[str] = []
    warnings: list[str] = []

    skill_ids = [skill.id for skill in definition.skills]
    duplicates = sorted({sid for sid in skill_ids if skill_ids.count(sid) > 1})
    for sid in duplicates:
        errors.append(f"Skill id '{sid}' is declared more than once")

    errors.extend(_validate_workflow_ids(definition))
    errors.extend(_validate_dependency_references(definition.skills, set(skill_ids)))

    if not errors:
        cycle = find_dependency_cycle(definition.skills)
        if cycle:
            errors.append(f"Skill dependency cycle: {' -> '.join(cycle)}")

    for workflow in _reachable_workflows(definition):
        warnings.extend(_workflow_warnings(workflow))

    if errors:
        raise MalformedDocumentError(
            "Assistant document validation failed:\n  - " + "\n  - ".join(errors),
            suggestion="Fix the validation errors listed above and try again.",
        )

    return warnings


def _reachable_workflows(definition: AssistantDef) -> list[WorkflowDef]:
    """Top-level workflows followed by each skill's workflows, in order."""
    workflows = list(definition.workflows)
    for skill in definition.skills:
        workflows.extend(skill.workflows)
    return workflows


def _validate_workflow_ids(definition: AssistantDef) -> list[str]:
    """Validate that workflow ids are unique across the assistant.

    Args:
        definition: The assistant definition.

    Returns:
        List of error messages.
    """
    errors: list[str] = []
    owners: dict[str, str] = {}

    scopes: list[tuple[str, list[WorkflowDef]]] = [("assistant", definition.workflows)]
    scopes.extend((f"skill '{skill.id}'", skill.workflows) for skill in definition.skills)

    for owner, workflows in scopes:
        for workflow in workflows:
            if workflow.id in owners:
                errors.append(
                    f"Workflow id '{workflow.id}' in {owner} is already declared "
                    f"in {owners[workflow.id]}"
                )
            else:
                owners[workflow.id] = owner

    return errors


def _validate_dependency_references(skills: list[SkillDef], skill_ids: set[str]) -> list[str]:
    """Validate that dependency ids name skills declared on the assistant.

    Args:
        skills: Skills to check, including inline dependencies recursively.
        skill_ids: Ids of the assistant's skills.

    Returns:
        List of error messages.
    """
    errors: list[str] = []

    for skill in skills:
        for dependency in skill.dependencies:
            if isinstance(dependency, str):
                if dependency not in skill_ids:
                    errors.append(
                        f"Skill '{skill.id}' depends on unknown skill '{dependency}'. "
                        f"Available skills: {', '.join(sorted(skill_ids))}"
                    )
            else:
                errors.extend(_validate_dependency_references([dependency], skill_ids))

    return errors


def find_dependency_cycle(skills: list[SkillDef]) -> list[str] | None:
    """Find a cycle in the skill dependency graph.

    Inline dependencies and id references are both followed. Skills that
    share an id (the same file referenced twice) are the same graph node.

    Args:
        skills: The assistant's skills.

    Returns:
        The skill ids along the cycle, first id repeated at the end, or None.
    """
    edges: dict[str, list[str]] = {}

    def collect(skill: SkillDef) -> None:
        targets = edges.setdefault(skill.id, [])
        for dependency in skill.dependencies:
            target = dependency if isinstance(dependency, str) else dependency.id
            if target not in targets:
                targets.append(target)
            if not isinstance(dependency, str):
                collect(dependency)

    for skill in skills:
        collect(skill)

    visiting: list[str] = []
    done: set[str] = set()

    def visit(skill_id: str) -> list[str] | None:
        if skill_id in visiting:
            return [*visiting[visiting.index(skill_id):], skill_id]
        if skill_id in done:
            return None
        visiting.append(skill_id)
        for target in edges.get(skill_id, []):
            cycle = visit(target)
            if cycle:
                return cycle
        visiting.pop()
        done.add(skill_id)
        return None

    for skill_id in edges:
        cycle = visit(skill_id)
        if cycle:
            return cycle
    return None


def _workflow_warnings(workflow: WorkflowDef) -> list[str]:
    """Collect non-fatal issues in a workflow's steps."""
    warnings: list[str] = []
    seen: set[str] = set()

    for index, step in enumerate(workflow.steps):
        label = step.id or f"#{index + 1}"
        if step.id:
            if step.id in seen:
                warnings.append(f"Workflow '{workflow.id}' declares step id '{step.id}' twice")
            seen.add(step.id)
        if step.output is None:
            warnings.append(
                f"Step '{label}' in workflow '{workflow.id}' has no output and cannot be run"
            )
        elif step.output.push and not step.loop:
            warnings.append(
                f"Step '{label}' in workflow '{workflow.id}' sets 'push' but is not a loop step; "
                "its result will be merged instead"
            )

    return warnings
