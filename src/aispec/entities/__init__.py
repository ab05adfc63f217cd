# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Entity graph for aispec.

This module hydrates resolved documents into Assistant, Skill, Workflow,
Step, Input, Output and Prompt entities, and serializes them back.
"""

from aispec.entities.assistant import Assistant, WorkflowMatch
from aispec.entities.base import Entity, FieldMapping, get_nested_value, mount
from aispec.entities.prompt import Prompt
from aispec.entities.skill import Skill
from aispec.entities.step import Input, Output, Step
from aispec.entities.workflow import Workflow

__all__ = [
    "Assistant",
    "Entity",
    "FieldMapping",
    "Input",
    "Output",
    "Prompt",
    "Skill",
    "Step",
    "Workflow",
    "WorkflowMatch",
    "get_nested_value",
    "mount",
]
