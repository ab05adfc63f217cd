# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Tool library interface for host applications.

Integration tools (filesystem, issue trackers, search...) are exposed to a
host through a common shape: an id, a description, typed parameters and a
handler. The workflow runner never calls these; a host's own dispatch
layer does, through a ToolRegistry.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from aispec.exceptions import ValidationError

logger = logging.getLogger(__name__)

ParameterType = Literal["string", "number", "integer", "boolean", "array", "object"]

_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    "string": str,
    "number": (int, float),
    "integer": int,
    "boolean": bool,
    "array": list,
    "object": dict,
}


class ToolParameter(BaseModel):
    """A single parameter accepted by a tool."""

    name: str
    """Parameter name."""

    type: ParameterType = "string"
    """JSON-Schema type of the parameter."""

    description: str | None = None
    """Human-readable description."""

    required: bool = False
    """Whether callers must supply this parameter."""


class ToolDefinition(BaseModel):
    """A parameter-validated request/response tool."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    """Tool identity, unique within a registry."""

    name: str
    """Human-readable name."""

    description: str = ""
    """What the tool does."""

    parameters: list[ToolParameter] = Field(default_factory=list)
    """Declared parameters."""

    return_type: str | None = None
    """Description of the handler's result."""

    handler: Callable[[dict[str, Any]], Any] = Field(exclude=True)
    """Function called with the validated parameters."""

    def to_response_schema(self) -> dict[str, Any]:
        """Describe the tool's parameters as a JSON-Schema object."""
        properties: dict[str, Any] = {}
        for param in self.parameters:
            prop: dict[str, Any] = {"type": param.type}
            if param.description:
                prop["description"] = param.description
            properties[param.name] = prop
        return {
            "type": "object",
            "properties": properties,
            "required": [param.name for param in self.parameters if param.required],
        }

    def validate_params(self, params: dict[str, Any]) -> None:
        """Check required parameters and primitive types.

        Raises:
            ValidationError: If a required parameter is missing or has the wrong type.
        """
        for param in self.parameters:
            if param.name not in params:
                if param.required:
                    raise ValidationError(
                        f"Tool '{self.id}' is missing required parameter '{param.name}'",
                        field_name=param.name,
                        expected_type=param.type,
                    )
                continue

            value = params[param.name]
            expected = _TYPE_MAP[param.type]
            wrong_bool = param.type in ("number", "integer") and isinstance(value, bool)
            if wrong_bool or not isinstance(value, expected):
                raise ValidationError(
                    f"Tool '{self.id}' parameter '{param.name}' has wrong type: "
                    f"expected {param.type}, got {type(value).__name__}",
                    field_name=param.name,
                    expected_type=param.type,
                )


class ToolRegistry:
    """Registry of tools a host can dispatch to by id.

    Example:
        >>> registry = ToolRegistry()
        >>> registry.register(ToolDefinition(
        ...     id="echo", name="Echo",
        ...     parameters=[ToolParameter(name="text", required=True)],
        ...     handler=lambda params: params["text"],
        ... ))
        >>> await registry.call("echo", {"text": "hi"})
        'hi'
    """

    def __init__(self, tools: list[ToolDefinition] | None = None) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        """Add a tool.

        Raises:
            ValueError: If a tool with the same id is already registered.
        """
        if tool.id in self._tools:
            raise ValueError(f"Tool '{tool.id}' is already registered")
        self._tools[tool.id] = tool

    def get(self, tool_id: str) -> ToolDefinition | None:
        """Return the tool with the given id, if registered."""
        return self._tools.get(tool_id)

    def list(self) -> list[ToolDefinition]:
        """Return registered tools in registration order."""
        return list(self._tools.values())

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._tools

    async def call(self, tool_id: str, params: dict[str, Any]) -> Any:
        """Validate parameters and call a tool's handler.

        Handlers may be sync or async.

        Raises:
            ValidationError: If the tool is unknown or the parameters are invalid.
        """
        tool = self._tools.get(tool_id)
        if tool is None:
            raise ValidationError(
                f"Unknown tool '{tool_id}'",
                suggestion=f"Registered tools: {', '.join(self._tools) or 'none'}",
            )

        tool.validate_params(params)
        logger.debug(f"Calling tool '{tool_id}' with {params}")
        result = tool.handler(params)
        if inspect.isawaitable(result):
            result = await result
        return result
