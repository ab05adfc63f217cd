# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Running context for a workflow execution.

This module provides the WorkflowContext class: the flat key-value store
threaded through every step of a run, together with the ordered list of
steps that have completed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aispec.exceptions import ExecutionError


@dataclass
class WorkflowContext:
    """Flat key-value store mutated in place by each step.

    Keys set by a step stay visible to every later step until overwritten.
    Loop steps with a push output append to a list instead of overwriting.

    Example:
        >>> ctx = WorkflowContext()
        >>> ctx.merge({"name": "John", "surnamesLength": 2})
        >>> ctx.merge({"surnames": ["Doe", "Smith"]})
        >>> ctx.push("results", {"surname": "Doe"})
        >>> ctx.values["results"]
        [{'surname': 'Doe'}]
    """

    values: dict[str, Any] = field(default_factory=dict)
    """Current context values."""

    execution_history: list[str] = field(default_factory=list)
    """Ids of the steps that have completed, in order."""

    def merge(self, data: dict[str, Any]) -> None:
        """Overwrite context keys with the given values.

        Args:
            data: Values to merge; existing keys are replaced.
        """
        self.values.update(data)

    def push(self, key: str, value: Any) -> None:
        """Append a value to the list stored at a key, creating it if absent.

        Args:
            key: The context key holding the list.
            value: The value to append.

        Raises:
            ExecutionError: If the key holds something other than a list.
        """
        current = self.values.get(key)
        if current is None:
            self.values[key] = [value]
        elif isinstance(current, list):
            current.append(value)
        else:
            raise ExecutionError(
                f"Cannot push to context key '{key}': it holds a {type(current).__name__}, "
                "not a list",
                suggestion=f"Use a push key that is unused or already holds a list, "
                f"instead of '{key}'",
            )

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored at a key."""
        return self.values.get(key, default)

    def get_for_template(self, **bindings: Any) -> dict[str, Any]:
        """Build the variables a prompt is rendered against.

        Local bindings (such as a loop item) shadow context keys and are
        not written back to the context.

        Returns:
            A shallow copy of the context with the bindings applied.
        """
        return {**self.values, **bindings}

    def record(self, step_id: str) -> None:
        """Record that a step has completed."""
        self.execution_history.append(step_id)

    def to_dict(self) -> dict[str, Any]:
        """Return a shallow copy of the context values."""
        return dict(self.values)
