# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Anthropic Claude SDK model service.

This module provides the ClaudeModelService class, which answers step
model calls through the Anthropic Messages API. The step's response tool
is sent as a Claude tool and ``tool_choice`` forces the model to call it.
"""

from __future__ import annotations

import logging
from typing import Any

from aispec.exceptions import ModelInvocationError
from aispec.providers.base import ModelResponse, ModelService, ResponseTool, ToolCall

# Try to import the Anthropic SDK
try:
    import anthropic
    from anthropic import AsyncAnthropic

    ANTHROPIC_SDK_AVAILABLE = True
except ImportError:
    ANTHROPIC_SDK_AVAILABLE = False
    AsyncAnthropic = None  # type: ignore[misc, assignment]
    anthropic = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5"
DEFAULT_MAX_TOKENS = 4096


class ClaudeModelService(ModelService):
    """Anthropic Claude model service.

    Sends the system prompt, the rendered step prompt and the step's
    response tool in one non-streaming request. When the model calls the
    tool, its ``execute`` callback is run with the tool input.

    Example:
        >>> service = ClaudeModelService(api_key="sk-...")
        >>> await service.validate_connection()
        True
        >>> await service.close()
    """

    name = "claude"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float = 600.0,
    ) -> None:
        """Initialize the Claude model service.

        Args:
            api_key: Anthropic API key. If None, uses ANTHROPIC_API_KEY env var.
            model: Default model when the effective model configuration has no name.
            temperature: Default temperature (0.0-1.0).
            max_tokens: Default maximum output tokens.
            timeout: Request timeout in seconds. Defaults to 600s.

        Raises:
            ModelInvocationError: If the SDK is not installed.
        """
        if not ANTHROPIC_SDK_AVAILABLE:
            raise ModelInvocationError(
                "Anthropic SDK not installed",
                suggestion="Install with: pip install 'anthropic>=0.77.0,<1.0.0'",
                provider_name=self.name,
            )

        self._client: AsyncAnthropic | None = None
        self._api_key = api_key
        self._default_model = model or DEFAULT_MODEL
        self._default_temperature = temperature
        self._default_max_tokens = max_tokens or DEFAULT_MAX_TOKENS
        self._timeout = timeout

        self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize the Anthropic client."""
        if AsyncAnthropic is None:
            return

        self._client = AsyncAnthropic(api_key=self._api_key, timeout=self._timeout)
        sdk_version = getattr(anthropic, "__version__", "unknown")
        logger.info(f"Initialized Claude model service with SDK version {sdk_version}")

    async def validate_connection(self) -> bool:
        """Verify the service can connect to the Claude API.

        Returns:
            True if connection successful, False otherwise.
        """
        if self._client is None:
            return False

        try:
            await self._client.models.list()
            return True
        except Exception as e:
            logger.error(f"Connection validation failed: {e}")
            return False

    async def close(self) -> None:
        """Release service resources and close connections."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.debug("Claude model service closed")

    async def invoke(
        self,
        system_prompt: str,
        prompt: str,
        tools: list[ResponseTool],
        model: dict[str, Any] | None = None,
    ) -> ModelResponse:
        """Call Claude once with the step's response tool.

        Args:
            system_prompt: Serialized minimal assistant and instructions.
            prompt: The rendered step prompt.
            tools: Tools offered by the step.
            model: Effective model configuration.

        Returns:
            ModelResponse with the executed tool call, or the free text when
            the model did not call a tool.

        Raises:
            ModelInvocationError: If the API call fails.
        """
        if self._client is None:
            raise ModelInvocationError("Claude client not initialized", provider_name=self.name)

        kwargs = self._build_request(system_prompt, prompt, tools, model or {})

        logger.debug(
            f"Executing Claude API call: model={kwargs['model']}, "
            f"max_tokens={kwargs['max_tokens']}, timeout={self._timeout}s"
        )

        try:
            response = await self._client.messages.create(**kwargs)
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            raise ModelInvocationError(
                f"Claude API call failed: {e}",
                provider_name=self.name,
                status_code=status_code if isinstance(status_code, int) else None,
            ) from e

        text, tool_calls = self._process_content_blocks(response, tools)
        input_tokens, output_tokens = self._extract_token_usage(response)

        return ModelResponse(
            text=text,
            tool_calls=tool_calls,
            raw_response=response,
            model=getattr(response, "model", None) or kwargs["model"],
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    def _build_request(
        self,
        system_prompt: str,
        prompt: str,
        tools: list[ResponseTool],
        model: dict[str, Any],
    ) -> dict[str, Any]:
        """Build messages.create() keyword arguments."""
        kwargs: dict[str, Any] = {
            "model": model.get("name") or self._default_model,
            "system": system_prompt,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": model.get("max_tokens") or self._default_max_tokens,
        }

        temperature = model.get("temperature", self._default_temperature)
        if temperature is not None:
            kwargs["temperature"] = temperature

        if tools:
            kwargs["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.parameters_schema,
                }
                for tool in tools
            ]
            if len(tools) == 1:
                kwargs["tool_choice"] = {"type": "tool", "name": tools[0].name}

        return kwargs

    def _process_content_blocks(
        self, response: Any, tools: list[ResponseTool]
    ) -> tuple[str | None, list[ToolCall]]:
        """Collect text and run the first matching tool_use block.

        Returns:
            Tuple of (joined text or None, executed tool calls).
        """
        tools_by_name = {tool.name: tool for tool in tools}
        texts: list[str] = []
        tool_calls: list[ToolCall] = []

        for block in getattr(response, "content", None) or []:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                texts.append(block.text)
            elif block_type == "tool_use" and not tool_calls:
                tool = tools_by_name.get(block.name)
                if tool is None:
                    logger.warning(f"Claude called unknown tool '{block.name}'")
                    continue
                arguments = dict(block.input)
                logger.debug(f"Extracted structured output from tool_use block '{block.name}'")
                result = tool.execute(arguments)
                tool_calls.append(ToolCall(name=block.name, arguments=arguments, result=result))

        return ("\n".join(texts) if texts else None), tool_calls

    def _extract_token_usage(self, response: Any) -> tuple[int | None, int | None]:
        """Extract token usage from a Claude response.

        Returns:
            Tuple of (input_tokens, output_tokens); None when not reported.
        """
        usage = getattr(response, "usage", None)
        if usage is None:
            logger.debug("Response does not contain usage metadata")
            return None, None

        input_tokens = getattr(usage, "input_tokens", None)
        output_tokens = getattr(usage, "output_tokens", None)
        logger.debug(f"Token usage: {input_tokens} input + {output_tokens} output")
        return input_tokens, output_tokens
