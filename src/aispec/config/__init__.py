# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Configuration module for aispec.

This module handles YAML document loading, ``$ref`` resolution, Pydantic
schema validation, and graph-level validation.
"""

from aispec.config.loader import (
    DocumentLoader,
    load_document,
    load_document_string,
    resolve_env_vars,
    resolve_refs,
)
from aispec.config.schema import (
    AssistantDef,
    InputDef,
    ModelConfig,
    OutputDef,
    SkillDef,
    StepDef,
    WorkflowDef,
)
from aispec.config.validator import find_dependency_cycle, validate_assistant_def

__all__ = [
    # Loader
    "DocumentLoader",
    "load_document",
    "load_document_string",
    "resolve_env_vars",
    "resolve_refs",
    # Schema models
    "AssistantDef",
    "InputDef",
    "ModelConfig",
    "OutputDef",
    "SkillDef",
    "StepDef",
    "WorkflowDef",
    # Validator
    "find_dependency_cycle",
    "validate_assistant_def",
]
