# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Prompt rendering and output handling for aispec."""

from aispec.executor.output import parse_json_output, response_tool_schema, validate_output
from aispec.executor.template import (
    PromptTemplate,
    TemplateRenderer,
    extract_variables,
    interpolate,
)

__all__ = [
    "PromptTemplate",
    "TemplateRenderer",
    "extract_variables",
    "interpolate",
    "parse_json_output",
    "response_tool_schema",
    "validate_output",
]
