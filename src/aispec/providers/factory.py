# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Factory for creating model services.

This module provides the create_model_service factory function for
instantiating the ModelService matching a requested provider type.
"""

from __future__ import annotations

from typing import Literal

from aispec.exceptions import ModelInvocationError
from aispec.providers.base import ModelService
from aispec.providers.callback import CallbackModelService, ModelHandler
from aispec.providers.claude import ANTHROPIC_SDK_AVAILABLE, ClaudeModelService


async def create_model_service(
    provider_type: Literal["claude", "callback"] = "claude",
    validate: bool = True,
    default_model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float | None = None,
    handler: ModelHandler | None = None,
) -> ModelService:
    """Factory function to create the appropriate model service.

    Creates and optionally validates a ModelService instance. Validation
    ensures the service can reach its backend before returning.

    Args:
        provider_type: Which service to use: "claude" or "callback".
        validate: Whether to validate connection on creation. If True,
            calls validate_connection() and raises on failure.
        default_model: Default model for steps whose effective model has no name.
        temperature: Default temperature for generation (0.0-1.0).
        max_tokens: Maximum output tokens.
        timeout: Request timeout in seconds.
        handler: Function answering model calls (required for "callback").

    Returns:
        Configured ModelService instance.

    Raises:
        ModelInvocationError: If the provider type is unknown, misconfigured,
            or connection validation fails.

    Example:
        >>> service = await create_model_service("claude")
        >>> # Use service for workflow runs
        >>> await service.close()
    """
    match provider_type:
        case "claude":
            if not ANTHROPIC_SDK_AVAILABLE:
                raise ModelInvocationError(
                    "Claude model service requires anthropic SDK",
                    suggestion="Install with: pip install 'anthropic>=0.77.0,<1.0.0'",
                )
            service: ModelService = ClaudeModelService(
                model=default_model,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout if timeout is not None else 600.0,
            )
        case "callback":
            if handler is None:
                raise ModelInvocationError(
                    "Callback model service requires a handler",
                    suggestion="Pass handler=<function(system_prompt, prompt, tools, model)>",
                )
            service = CallbackModelService(handler)
        case _:
            raise ModelInvocationError(
                f"Unknown provider: {provider_type}",
                suggestion="Valid providers are: claude, callback",
            )

    if validate and not await service.validate_connection():
        raise ModelInvocationError(
            f"Failed to connect to {provider_type} model service",
            suggestion="Check your credentials and network connection",
            provider_name=provider_type,
        )

    return service
