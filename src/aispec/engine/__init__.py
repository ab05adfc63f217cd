# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Execution engine for aispec.

This module provides the running workflow context and the WorkflowRunner
state machine that executes workflows one step at a time.
"""

from aispec.engine.context import WorkflowContext
from aispec.engine.runner import (
    STEP_FINISHED,
    WORKFLOW_FINISHED,
    ExecutionPlan,
    HistoryEntry,
    PlannedStep,
    RunnerState,
    StepResult,
    WorkflowRunner,
    build_execution_plan,
    resolve_model,
)

__all__ = [
    "STEP_FINISHED",
    "WORKFLOW_FINISHED",
    "ExecutionPlan",
    "HistoryEntry",
    "PlannedStep",
    "RunnerState",
    "StepResult",
    "WorkflowContext",
    "WorkflowRunner",
    "build_execution_plan",
    "resolve_model",
]
