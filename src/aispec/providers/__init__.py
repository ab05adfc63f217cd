# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Model services for aispec.

This module defines the model-invocation abstraction and its
implementations (Anthropic Claude SDK, host-supplied callback).
"""

from aispec.providers.base import ModelResponse, ModelService, ResponseTool, ToolCall
from aispec.providers.callback import CallbackModelService
from aispec.providers.claude import ClaudeModelService
from aispec.providers.factory import create_model_service

__all__ = [
    "CallbackModelService",
    "ClaudeModelService",
    "ModelResponse",
    "ModelService",
    "ResponseTool",
    "ToolCall",
    "create_model_service",
]
