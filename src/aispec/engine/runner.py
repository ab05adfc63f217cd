# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Workflow runner: the step-at-a-time execution state machine.

This module provides the WorkflowRunner class. A runner executes exactly
one step per ``submit_step`` call and returns control to its host, which
decides when to request the next step. Hosts can also observe progress
through ``step-finished`` and ``workflow-finished`` events.

Example:
    >>> runner = assistant.load_workflow("character-building", service)
    >>> await runner.start({"name": "John", "surnamesLength": 2})
    >>> while runner.has_next():
    ...     await runner.submit_step()
    >>> await runner.submit_step()  # passes the last step and finishes
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from aispec.engine.context import WorkflowContext
from aispec.exceptions import (
    AispecError,
    ExecutionError,
    MissingOutputSchemaError,
    ModelInvocationError,
    RunnerStateError,
    ValidationError,
)
from aispec.executor.output import (
    parse_json_output,
    response_tool_schema,
    result_key,
    validate_output,
)
from aispec.providers.base import ModelResponse, ResponseTool

if TYPE_CHECKING:
    from aispec.entities.assistant import Assistant
    from aispec.entities.skill import Skill
    from aispec.entities.step import Step
    from aispec.entities.workflow import Workflow
    from aispec.providers.base import ModelService

logger = logging.getLogger(__name__)

STEP_FINISHED = "step-finished"
WORKFLOW_FINISHED = "workflow-finished"
EVENTS = (STEP_FINISHED, WORKFLOW_FINISHED)

SYSTEM_PREAMBLE = (
    "You are the assistant described by the document below. Carry out the user's "
    "request as one step of the workflow it defines, and return your answer by "
    "calling the provided tool with arguments matching its schema.\n\n"
)

_TOOL_NAME_PATTERN = re.compile(r"[^a-zA-Z0-9_-]+")


class RunnerState(str, Enum):
    """Lifecycle states of a workflow runner."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass
class StepResult:
    """Outcome of one executed step.

    A non-loop step has one prompt and one result; a loop step has one of
    each per iteration, in iteration order.
    """

    step: Step
    """The step that ran."""

    index: int
    """Position of the step in the workflow."""

    prompts: list[str] = field(default_factory=list)
    """Rendered prompts sent to the model."""

    results: list[dict[str, Any]] = field(default_factory=list)
    """Structured results returned through the response tool."""

    @property
    def step_id(self) -> str | None:
        return self.step.id

    @property
    def prompt(self) -> str | None:
        """The first rendered prompt, if any."""
        return self.prompts[0] if self.prompts else None

    @property
    def result(self) -> dict[str, Any] | None:
        """The first structured result, if any."""
        return self.results[0] if self.results else None


@dataclass
class HistoryEntry:
    """One model call, kept for observability rather than replay."""

    step_id: str | None
    """Id of the step the call belongs to."""

    prompt: str
    """The rendered prompt."""

    response: ModelResponse
    """The model service's response."""

    assistant_config: str
    """The system prompt (serialized minimal assistant) used for the call."""

    model: dict[str, Any] | None
    """The effective model configuration."""


@dataclass
class PlannedStep:
    """A single step in the execution plan."""

    index: int
    step_id: str | None
    name: str | None
    model: str | None
    """Name of the effective model."""

    variables: list[str] = field(default_factory=list)
    """Placeholders the step's prompt references."""

    loop: str | None = None
    """Context key iterated by a loop step."""

    as_name: str | None = None
    """Name the loop item is bound to."""

    push: str | None = None
    """Context key a loop step appends its results to."""

    output_keys: list[str] = field(default_factory=list)
    """Top-level keys the step's output schema declares."""

    has_output: bool = True
    """False when the step cannot be driven (no output declared)."""


@dataclass
class ExecutionPlan:
    """Static description of a workflow run, used for dry runs."""

    workflow_id: str
    workflow_name: str | None
    skill_id: str | None
    steps: list[PlannedStep] = field(default_factory=list)


def resolve_model(
    step: Step, workflow: Workflow, assistant: Assistant | None = None
) -> dict[str, Any] | None:
    """Return the effective model: step override, then workflow, then assistant."""
    if step.model:
        return step.model
    if workflow.model:
        return workflow.model
    if assistant is not None:
        return assistant.model
    return None


def _tool_name(step: Step) -> str:
    """Derive a tool name accepted by model APIs (letters, digits, _ and -)."""
    output = step.output
    raw = (output.name or output.id if output else None) or step.id or "emit_output"
    name = _TOOL_NAME_PATTERN.sub("_", raw).strip("_")
    return (name or "emit_output")[:64]


class WorkflowRunner:
    """Drives one workflow run, one step per request.

    The runner owns its context and history. It never advances on its own:
    the host calls ``start`` once and then ``submit_step`` for every
    further step. A runner must be driven by a single caller; a second
    request while a step is in flight raises RunnerStateError.

    Attributes:
        assistant: The (minimal) assistant used as the system prompt.
        workflow: The workflow being run.
        skill: The skill owning the workflow, if any.
        model_service: The model-invocation collaborator.
        state: Current lifecycle state.
        current_step: Index of the current step; -1 before start.
        context: The running context.
        history: Every model call made so far.
    """

    def __init__(
        self,
        assistant: Assistant,
        workflow: Workflow,
        model_service: ModelService,
        skill: Skill | None = None,
        system_preamble: str = SYSTEM_PREAMBLE,
    ) -> None:
        """Initialize the runner.

        Args:
            assistant: The assistant whose serialization is the system prompt.
            workflow: The workflow to run.
            model_service: The model-invocation collaborator.
            skill: The skill owning the workflow, if any.
            system_preamble: Instructions placed before the serialized assistant.
        """
        self.assistant = assistant
        self.workflow = workflow
        self.skill = skill
        self.model_service = model_service
        self.system_preamble = system_preamble

        self.state = RunnerState.NOT_STARTED
        self.current_step = -1
        self.context = WorkflowContext()
        self.history: list[HistoryEntry] = []

        self._listeners: dict[str, list[Callable[..., Any]]] = {event: [] for event in EVENTS}
        self._in_flight = False
        self._finished_event = asyncio.Event()
        self._system_prompt: str | None = None

    @property
    def finished(self) -> bool:
        """Whether the runner has passed the last step."""
        return self.state is RunnerState.FINISHED

    @property
    def system_prompt(self) -> str:
        """The system prompt sent with every model call of this run."""
        if self._system_prompt is None:
            self._system_prompt = self.system_preamble + self.assistant.to_yaml()
        return self._system_prompt

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        """Subscribe to a runner event.

        ``step-finished`` callbacks receive the StepResult;
        ``workflow-finished`` callbacks receive the Workflow. Callbacks may
        be sync or async.

        Raises:
            ValueError: If the event name is unknown.
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown runner event '{event}'. Valid events: {', '.join(EVENTS)}")
        self._listeners[event].append(callback)

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        """Unsubscribe a callback; unknown callbacks are ignored."""
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    async def _emit(self, event: str, payload: Any) -> None:
        for callback in list(self._listeners[event]):
            result = callback(payload)
            if inspect.isawaitable(result):
                await result

    def has_next(self) -> bool:
        """Whether another step remains to be executed."""
        return not self.finished and self.current_step + 1 < len(self.workflow.steps)

    async def start(self, initial_context: dict[str, Any] | None = None) -> StepResult | None:
        """Merge the initial context and execute the first step.

        Args:
            initial_context: Values available to the first step's prompt.

        Returns:
            The first step's result, or None for a workflow without steps.

        Raises:
            RunnerStateError: If the runner was already started.
        """
        if self._in_flight:
            raise RunnerStateError("Cannot start a runner while a step is in flight")
        if self.state is not RunnerState.NOT_STARTED:
            raise RunnerStateError(
                f"Workflow '{self.workflow.id}' runner has already been started",
                suggestion="Create a new runner with Assistant.load_workflow() to run again",
            )

        self.state = RunnerState.RUNNING
        if initial_context:
            # The run owns its context; host values are never mutated by pushes
            self.context.merge(copy.deepcopy(initial_context))
        logger.info(f"Starting workflow '{self.workflow.id}' ({len(self.workflow.steps)} steps)")
        return await self.submit_step()

    async def submit_step(self) -> StepResult | None:
        """Advance the cursor and execute exactly one step.

        Passing the last step finishes the run, emits ``workflow-finished``
        and returns None. Further calls return None.

        Returns:
            The executed step's result, or None once finished.

        Raises:
            RunnerStateError: If called before start or while a step is in flight.
            AispecError: If the step fails. The cursor stays on the failed step.
        """
        if self.state is RunnerState.NOT_STARTED:
            raise RunnerStateError(
                "Cannot submit a step before the runner is started",
                suggestion="Call start() first",
            )
        if self._in_flight:
            raise RunnerStateError(
                "A step is already in flight; the runner is not reentrant",
                suggestion="Wait for the current step to finish before submitting the next",
            )
        if self.finished:
            return None

        self._in_flight = True
        try:
            self.current_step += 1
            if self.current_step >= len(self.workflow.steps):
                self.current_step = len(self.workflow.steps)
                result = None
            else:
                step = self.workflow.steps[self.current_step]
                result = await self._execute_step(step, self.current_step)
        finally:
            self._in_flight = False

        if result is None:
            await self._finish()
            return None

        self.context.record(result.step_id or str(result.index))
        await self._emit(STEP_FINISHED, result)
        return result

    advance = submit_step

    async def _finish(self) -> None:
        self.state = RunnerState.FINISHED
        self._finished_event.set()
        logger.info(f"Workflow '{self.workflow.id}' finished")
        await self._emit(WORKFLOW_FINISHED, self.workflow)

    async def wait_finished(self) -> Workflow:
        """Wait until the run finishes, then return the workflow."""
        await self._finished_event.wait()
        return self.workflow

    async def run(self, initial_context: dict[str, Any] | None = None) -> dict[str, Any]:
        """Start the run and submit every step until finished.

        Args:
            initial_context: Values available to the first step's prompt.

        Returns:
            The final context values.
        """
        await self.start(initial_context)
        while not self.finished:
            await self.submit_step()
        return self.context.to_dict()

    async def _execute_step(self, step: Step, index: int) -> StepResult:
        logger.info(f"Executing step {index + 1}/{len(self.workflow.steps)}: {step.id}")
        result = StepResult(step=step, index=index)

        if not step.is_loop:
            prompt = step.render_prompt(self.context.get_for_template())
            result.prompts.append(prompt)
            result.results.append(await self._invoke(step, prompt, push=None))
            return result

        items = self.context.get(step.loop)
        if items is None:
            raise ExecutionError(
                f"Loop source '{step.loop}' is not set in the context",
                suggestion=f"Emit '{step.loop}' from an earlier step or pass it at start",
                step_id=step.id,
            )
        if not isinstance(items, list):
            raise ExecutionError(
                f"Loop source '{step.loop}' must be a list, got {type(items).__name__}",
                step_id=step.id,
            )

        push = step.output.push if step.output is not None else None
        # Iterate a snapshot; pushing may grow the source list.
        for item in list(items):
            variables = self.context.get_for_template(**{step.as_name or "item": item})
            prompt = step.render_prompt(variables)
            result.prompts.append(prompt)
            result.results.append(await self._invoke(step, prompt, push=push))

        return result

    async def _invoke(self, step: Step, prompt: str, push: str | None) -> dict[str, Any]:
        """Run the model invocation protocol once.

        Returns:
            The arguments the response tool was executed with.
        """
        model = resolve_model(step, self.workflow, self.assistant)

        output = step.output
        if output is None:
            raise MissingOutputSchemaError(step.id)

        schema = response_tool_schema(output)
        wrapped_key = result_key(output)
        captured: list[dict[str, Any]] = []

        def execute(params: dict[str, Any]) -> dict[str, Any]:
            validate_output(params, schema)
            if push:
                self.context.push(push, params[wrapped_key] if wrapped_key else params)
            else:
                self.context.merge(params)
            captured.append(params)
            return params

        tool = ResponseTool(
            name=_tool_name(step),
            description=output.description
            or output.name
            or f"Return the result of step '{step.id}'",
            parameters_schema=schema,
            execute=execute,
        )

        logger.debug(f"Prompt for step '{step.id}': {prompt}")

        try:
            response = await self.model_service.invoke(self.system_prompt, prompt, [tool], model)
        except AispecError:
            raise
        except Exception as e:
            raise ModelInvocationError(
                f"Model invocation failed for step '{step.id}': {e}",
                provider_name=getattr(self.model_service, "name", None),
            ) from e

        if not captured:
            self._apply_text_fallback(step, tool, response)

        self.history.append(
            HistoryEntry(
                step_id=step.id,
                prompt=prompt,
                response=response,
                assistant_config=self.system_prompt,
                model=model,
            )
        )
        return captured[-1]

    def _apply_text_fallback(self, step: Step, tool: ResponseTool, response: ModelResponse) -> None:
        """Execute the response tool from a free-text JSON answer."""
        if not response.text:
            raise ModelInvocationError(
                f"Model returned neither a tool call nor text for step '{step.id}'",
                suggestion="Ensure the model service calls the provided response tool",
                provider_name=getattr(self.model_service, "name", None),
            )
        try:
            params = parse_json_output(response.text)
        except ValidationError as e:
            raise ModelInvocationError(
                f"Model did not call the response tool for step '{step.id}' "
                "and its text is not JSON",
                suggestion="Ensure the model service calls the provided response tool",
                provider_name=getattr(self.model_service, "name", None),
            ) from e
        logger.info(f"Step '{step.id}': model answered in text; applying JSON result")
        tool.execute(params)


def build_execution_plan(runner: WorkflowRunner) -> ExecutionPlan:
    """Build an execution plan without calling the model.

    Args:
        runner: A runner that has not necessarily been started.

    Returns:
        ExecutionPlan listing every step with its effective model.
    """
    workflow = runner.workflow
    plan = ExecutionPlan(
        workflow_id=workflow.id,
        workflow_name=workflow.name,
        skill_id=runner.skill.id if runner.skill else None,
    )

    for index, step in enumerate(workflow.steps):
        model = resolve_model(step, workflow, runner.assistant) or {}
        output = step.output
        output_keys: list[str] = []
        if output is not None:
            output_keys = list(response_tool_schema(output).get("properties", {}))
        plan.steps.append(
            PlannedStep(
                index=index,
                step_id=step.id,
                name=step.name,
                model=model.get("name"),
                variables=list(step.prompt.variables) if step.prompt else [],
                loop=step.loop,
                as_name=step.as_name,
                push=output.push if output is not None and step.is_loop else None,
                output_keys=output_keys,
                has_output=output is not None,
            )
        )

    return plan
