# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Implementation of the 'aispec run' command.

This module provides helper functions for running a workflow from an
assistant document.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from aispec.engine.runner import (
    STEP_FINISHED,
    ExecutionPlan,
    StepResult,
    WorkflowRunner,
    build_execution_plan,
)
from aispec.entities import Assistant
from aispec.providers.callback import CallbackModelService
from aispec.providers.factory import create_model_service

# Verbose console for logging (stderr)
_verbose_console = Console(stderr=True)


def verbose_log(message: str, style: str = "dim") -> None:
    """Log a message if verbose mode is enabled.

    Args:
        message: The message to log.
        style: Rich style for the message.
    """
    from aispec.cli.app import is_verbose

    if is_verbose():
        _verbose_console.print(f"[{style}]{message}[/{style}]")


def verbose_log_section(title: str, content: str, truncate: bool = True) -> None:
    """Log a section with title if verbose mode is enabled.

    Args:
        title: Section title.
        content: Section content.
        truncate: If True, truncate content to 500 chars unless full mode is enabled.
    """
    from aispec.cli.app import is_full, is_verbose

    if is_verbose():
        display_content = content
        if truncate and not is_full() and len(content) > 500:
            display_content = content[:500] + "\n... [truncated, use --verbose for full]"

        _verbose_console.print(
            Panel(display_content, title=f"[cyan]{title}[/cyan]", border_style="dim")
        )


def verbose_log_timing(operation: str, elapsed: float) -> None:
    """Log timing information if verbose mode is enabled.

    Args:
        operation: Description of the operation.
        elapsed: Elapsed time in seconds.
    """
    from aispec.cli.app import is_verbose

    if is_verbose():
        _verbose_console.print(f"[dim]⏱ {operation}: {elapsed:.2f}s[/dim]")


def parse_input_flags(raw_inputs: list[str]) -> dict[str, Any]:
    """Parse --input <name>=<value> flags into a dictionary.

    Supports type coercion for common types:
    - "true"/"false" -> bool
    - numeric strings -> int/float
    - JSON arrays/objects -> parsed JSON
    - everything else -> string

    Args:
        raw_inputs: List of "name=value" strings from CLI.

    Returns:
        Dictionary of parsed input name-value pairs.

    Raises:
        typer.BadParameter: If input format is invalid.
    """
    inputs: dict[str, Any] = {}

    for raw in raw_inputs:
        # Split on first = only
        if "=" not in raw:
            raise typer.BadParameter(f"Invalid input format: '{raw}'. Expected format: name=value")

        name, value = raw.split("=", 1)
        name = name.strip()
        value = value.strip()

        if not name:
            raise typer.BadParameter(f"Empty input name in: '{raw}'")

        inputs[name] = coerce_value(value)

    return inputs


def coerce_value(value: str) -> Any:
    """Coerce a string value to an appropriate Python type.

    Args:
        value: The string value to coerce.

    Returns:
        The coerced value (bool, int, float, list, dict, or str).
    """
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    if value.lower() == "null":
        return None

    # Try JSON for arrays and objects
    if value.startswith(("[", "{")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        pass

    return value


def _log_step(result: StepResult) -> None:
    """step-finished listener that reports progress."""
    label = result.step.name or result.step_id or f"#{result.index + 1}"
    iterations = f" ({len(result.prompts)} iterations)" if result.step.is_loop else ""
    verbose_log(f"✓ Step {result.index + 1}: {label}{iterations}", style="green")
    for prompt in result.prompts:
        verbose_log_section("Prompt", prompt)


async def drive_runner(
    runner: WorkflowRunner,
    inputs: dict[str, Any],
    step_mode: bool = False,
) -> dict[str, Any]:
    """Drive a runner to completion, optionally pausing between steps.

    Args:
        runner: A runner that has not been started.
        inputs: Initial context values.
        step_mode: If True, ask for confirmation before each further step.

    Returns:
        The final context values (partial if the user stops early).
    """
    await runner.start(inputs)
    while not runner.finished:
        if step_mode and runner.has_next():
            upcoming = runner.workflow.steps[runner.current_step + 1]
            label = upcoming.name or upcoming.id or f"#{runner.current_step + 2}"
            if not typer.confirm(f"Run step '{label}'?", default=True):
                verbose_log("Stopped before completion", style="yellow")
                break
        await runner.submit_step()
    return runner.context.to_dict()


async def run_workflow_async(
    document: Path,
    workflow_id: str,
    inputs: dict[str, Any],
    provider: str = "claude",
    model: str | None = None,
    step_mode: bool = False,
) -> dict[str, Any]:
    """Run a workflow asynchronously.

    Args:
        document: Path to the assistant document.
        workflow_id: Id of the workflow to run.
        inputs: Initial context values.
        provider: Model service name.
        model: Default model name when the document sets none.
        step_mode: If True, ask for confirmation between steps.

    Returns:
        The final context values.

    Raises:
        AispecError: If loading or execution fails.
    """
    start_time = time.time()

    verbose_log(f"Loading document: {document}")
    load_start = time.time()
    assistant = Assistant.from_file(document)
    verbose_log_timing("Document loaded", time.time() - load_start)

    if inputs:
        verbose_log_section("Initial Context", json.dumps(inputs, indent=2))

    verbose_log(f"Creating model service: {provider}")
    service = await create_model_service(provider, default_model=model)  # type: ignore[arg-type]

    try:
        runner = assistant.load_workflow(workflow_id, service)
        runner.on(STEP_FINISHED, _log_step)
        verbose_log(f"Running workflow '{workflow_id}' ({len(runner.workflow.steps)} steps)")

        result = await drive_runner(runner, inputs, step_mode)

        verbose_log_timing("Total workflow execution", time.time() - start_time)
        if runner.finished:
            verbose_log("Workflow completed successfully", style="green")
        return result
    finally:
        await service.close()


def display_execution_plan(plan: ExecutionPlan, console: Console | None = None) -> None:
    """Display execution plan with Rich formatting.

    Args:
        plan: The execution plan to display.
        console: Optional Rich console. Creates one if not provided.
    """
    output_console = console if console is not None else Console()

    header_content = f"[bold]Workflow:[/bold] {plan.workflow_name or plan.workflow_id}\n"
    header_content += f"[bold]Id:[/bold] {plan.workflow_id}\n"
    header_content += f"[bold]Skill:[/bold] {plan.skill_id or '[dim]none[/dim]'}"
    output_console.print(Panel(header_content, title="[cyan]Execution Plan (Dry Run)[/cyan]"))

    table = Table(title="Step Sequence", show_lines=True)
    table.add_column("Step", style="cyan", justify="right", width=6)
    table.add_column("Id", style="green")
    table.add_column("Model", width=20)
    table.add_column("Uses")
    table.add_column("Produces")

    for planned in plan.steps:
        step_label = planned.step_id or planned.name or "[dim]unnamed[/dim]"
        if planned.loop:
            step_label += f" [yellow](loop {planned.loop} as {planned.as_name})[/yellow]"

        if not planned.has_output:
            produces = "[red]no output[/red]"
        elif planned.push:
            produces = f"→ {planned.push} [dim](push)[/dim]"
        else:
            produces = ", ".join(planned.output_keys) or "[dim]-[/dim]"

        table.add_row(
            str(planned.index + 1),
            step_label,
            planned.model or "[dim]default[/dim]",
            ", ".join(planned.variables) or "[dim]-[/dim]",
            produces,
        )

    output_console.print(table)

    output_console.print()
    output_console.print(
        f"[dim]Total steps:[/dim] {len(plan.steps)} | "
        f"[dim]Loop steps:[/dim] {sum(1 for s in plan.steps if s.loop)}"
    )


def build_dry_run_plan(document: Path, workflow_id: str) -> ExecutionPlan:
    """Build an execution plan for dry-run mode.

    Loads the document and binds the workflow to a model service that is
    never called.

    Args:
        document: Path to the assistant document.
        workflow_id: Id of the workflow to plan.

    Returns:
        ExecutionPlan showing the workflow's steps.
    """
    assistant = Assistant.from_file(document)

    def _never_called(*args: Any) -> None:
        raise AssertionError("model service called during dry run")

    runner = assistant.load_workflow(workflow_id, CallbackModelService(_never_called))
    return build_execution_plan(runner)
