# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Model service backed by a host-supplied function.

This module provides the CallbackModelService class, which lets an
embedding host (or a test) answer model calls itself. The handler's return
value decides what the model "did": a dict is passed to the step's
response tool, a string is returned as free text.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Union

from aispec.exceptions import ModelInvocationError
from aispec.providers.base import ModelResponse, ModelService, ResponseTool, ToolCall

logger = logging.getLogger(__name__)

HandlerResult = Union[dict[str, Any], str, None]
ModelHandler = Callable[
    [str, str, list[ResponseTool], Union[dict[str, Any], None]],
    Union[HandlerResult, Awaitable[HandlerResult]],
]


class CallbackModelService(ModelService):
    """Model service that delegates every call to a handler function.

    The handler receives ``(system_prompt, prompt, tools, model)`` and may
    be sync or async. Every call is recorded in ``call_history``.

    Example:
        >>> service = CallbackModelService.from_responses(
        ...     {"Say hi to John": {"greeting": "Hi John"}}
        ... )
    """

    name = "callback"

    def __init__(self, handler: ModelHandler) -> None:
        """Initialize the service.

        Args:
            handler: Function answering each model call.
        """
        self._handler = handler
        self.call_history: list[dict[str, Any]] = []

    @classmethod
    def from_responses(cls, responses: dict[str, Any]) -> CallbackModelService:
        """Build a service that answers with fixed responses keyed by prompt text.

        Args:
            responses: Mapping from exact rendered prompt to the tool arguments
                (dict) or free text (str) to return.

        Returns:
            A CallbackModelService.
        """

        def handler(
            system_prompt: str,
            prompt: str,
            tools: list[ResponseTool],
            model: dict[str, Any] | None,
        ) -> HandlerResult:
            if prompt not in responses:
                raise ModelInvocationError(
                    f"No response registered for prompt: {prompt!r}",
                    suggestion="Register a response for this exact prompt text",
                    provider_name=cls.name,
                )
            return responses[prompt]

        return cls(handler)

    async def invoke(
        self,
        system_prompt: str,
        prompt: str,
        tools: list[ResponseTool],
        model: dict[str, Any] | None = None,
    ) -> ModelResponse:
        """Answer a model call with the handler.

        Args:
            system_prompt: Serialized minimal assistant and instructions.
            prompt: The rendered step prompt.
            tools: Tools offered by the step.
            model: Effective model configuration.

        Returns:
            ModelResponse with the executed tool call or the free text.

        Raises:
            ModelInvocationError: If the handler returns a dict but no tool
                was offered, or returns an unsupported type.
        """
        self.call_history.append(
            {"system_prompt": system_prompt, "prompt": prompt, "tools": tools, "model": model}
        )

        result = self._handler(system_prompt, prompt, tools, model)
        if inspect.isawaitable(result):
            result = await result

        model_name = (model or {}).get("name")

        if result is None or isinstance(result, str):
            return ModelResponse(text=result, raw_response=result, model=model_name)

        if isinstance(result, dict):
            if not tools:
                raise ModelInvocationError(
                    "Handler returned structured data but no response tool was offered",
                    provider_name=self.name,
                )
            tool = tools[0]
            logger.debug(f"Executing response tool '{tool.name}' with {result}")
            tool_result = tool.execute(result)
            return ModelResponse(
                tool_calls=[ToolCall(name=tool.name, arguments=result, result=tool_result)],
                raw_response=result,
                model=model_name,
            )

        raise ModelInvocationError(
            f"Handler returned unsupported type: {type(result).__name__}",
            suggestion="Return a dict of tool arguments, a string, or None",
            provider_name=self.name,
        )

    async def validate_connection(self) -> bool:
        """Always succeeds; there is no backend to reach."""
        return True

    async def close(self) -> None:
        """Nothing to release."""
