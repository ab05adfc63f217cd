# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Prompt entity: a template string and the placeholders it references."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aispec.entities.base import Entity
from aispec.exceptions import MalformedDocumentError
from aispec.executor.template import extract_variables, interpolate


@dataclass(eq=False)
class Prompt(Entity):
    """A prompt template with ``${...}`` placeholders.

    Example:
        >>> prompt = Prompt.from_node("Hello ${user.name}, you are ${user.age}")
        >>> prompt.variables
        ['user.name', 'user.age']
    """

    kind = "prompt"

    template: str = ""
    variables: list[str] = field(default_factory=list)

    @classmethod
    def from_node(cls, node: Any) -> Prompt:
        """Build a prompt from a string or a ``{template: ...}`` mapping."""
        if isinstance(node, dict):
            node = node.get("template")
        if not isinstance(node, str):
            raise MalformedDocumentError(
                f"Expected a prompt template string, got {type(node).__name__}",
                suggestion="Write the prompt as a string, e.g. prompt: \"Hello ${name}\"",
            )
        return cls(template=node, variables=extract_variables(node))

    def render(self, context: dict[str, Any]) -> str:
        """Interpolate the template against a context.

        Raises:
            MissingVariableError: If a placeholder cannot be resolved.
        """
        return interpolate(self.template, context)

    def to_node(self) -> str:
        return self.template
