# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Abstract base class for model services.

This module defines the ModelService ABC that every model-invocation
backend implements, the ResponseTool a step offers to the model, and the
normalized ModelResponse a service returns.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ResponseTool:
    """A single-purpose tool through which the model returns structured data.

    Calling ``execute`` with the model's arguments folds them into the
    running workflow context.
    """

    name: str
    """Tool name presented to the model."""

    description: str
    """Tool description presented to the model."""

    parameters_schema: dict[str, Any]
    """JSON-Schema object the tool's arguments must match."""

    execute: Callable[[dict[str, Any]], Any]
    """Callback invoked with the model's arguments."""


@dataclass
class ToolCall:
    """A tool invocation performed by a model service."""

    name: str
    arguments: dict[str, Any]
    result: Any = None


@dataclass
class ModelResponse:
    """Normalized response from any model service.

    Attributes:
        text: Free text returned by the model, if any.
        tool_calls: Tools the service executed on the model's behalf.
        raw_response: Service-specific raw response for debugging/logging.
        model: Actual model used (may differ from requested if aliased).
        input_tokens: Number of input/prompt tokens used.
        output_tokens: Number of output/completion tokens generated.
    """

    text: str | None = None
    """Free text returned by the model, if any."""

    tool_calls: list[ToolCall] = field(default_factory=list)
    """Tools the service executed on the model's behalf."""

    raw_response: Any = None
    """Service-specific raw response for debugging/logging."""

    model: str | None = None
    """Actual model used (may differ from requested if aliased)."""

    input_tokens: int | None = None
    """Number of input/prompt tokens used."""

    output_tokens: int | None = None
    """Number of output/completion tokens generated."""

    @property
    def tokens_used(self) -> int | None:
        """Total token count (input + output) if reported by the service."""
        if self.input_tokens is None and self.output_tokens is None:
            return None
        return (self.input_tokens or 0) + (self.output_tokens or 0)


class ModelService(ABC):
    """Abstract base class for model-invocation backends.

    A service receives a system prompt, a user prompt and the tools a step
    offers. It either returns free text or calls exactly one of the tools'
    ``execute`` callbacks with arguments matching that tool's schema.

    Implementations must provide:
    - invoke(): Call the model once
    - validate_connection(): Verify backend connectivity
    - close(): Clean up resources

    Example:
        >>> class EchoService(ModelService):
        ...     async def invoke(self, system_prompt, prompt, tools, model=None):
        ...         return ModelResponse(text=prompt)
        ...     async def validate_connection(self):
        ...         return True
        ...     async def close(self):
        ...         pass
    """

    name: str = "model"

    @abstractmethod
    async def invoke(
        self,
        system_prompt: str,
        prompt: str,
        tools: list[ResponseTool],
        model: dict[str, Any] | None = None,
    ) -> ModelResponse:
        """Call the model once.

        Args:
            system_prompt: Serialized minimal assistant and instructions.
            prompt: The rendered step prompt.
            tools: Tools the model may call; each step offers exactly one.
            model: Effective model configuration (name, temperature, ...).

        Returns:
            Normalized ModelResponse.

        Raises:
            ModelInvocationError: If the backend call fails.
        """
        ...

    @abstractmethod
    async def validate_connection(self) -> bool:
        """Verify the service can reach its backend.

        Returns:
            True if connection successful, False otherwise.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release service resources and close connections."""
        ...
