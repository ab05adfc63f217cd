# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Implementation of the 'aispec validate' command.

This module provides functionality to validate assistant documents
without running them, displaying detailed error information.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from aispec.entities import Assistant
from aispec.exceptions import AispecError


def validate_document(
    document: Path,
    console: Console | None = None,
) -> tuple[bool, Assistant | None]:
    """Validate an assistant document.

    Attempts to load, resolve and hydrate the document, reporting any
    errors encountered during the process.

    Args:
        document: Path to the assistant document.
        console: Optional Rich console for output.

    Returns:
        A tuple of (is_valid, assistant_or_none).
    """
    output_console = console if console is not None else Console()

    try:
        return True, Assistant.from_file(document)
    except AispecError as e:
        display_validation_error(e, document, output_console)
        return False, None
    except Exception as e:
        output_console.print(
            Panel(
                f"[bold red]Unexpected Error[/bold red]\n\n{e}",
                title="[red]Validation Failed[/red]",
                border_style="red",
            )
        )
        return False, None


def display_validation_error(
    error: AispecError,
    document: Path,
    console: Console,
) -> None:
    """Display a validation error with Rich formatting.

    Args:
        error: The AispecError that occurred.
        document: Path to the document.
        console: Rich console for output.
    """
    content = f"[bold red]{error.error_type}[/bold red]\n\n"
    content += f"[dim]File:[/dim] {error.file_path or document}\n\n"
    content += error.message

    if error.suggestion:
        content += f"\n\n[yellow]💡 Suggestion:[/yellow] {error.suggestion}"

    console.print(
        Panel(
            content,
            title="[red]Validation Failed[/red]",
            border_style="red",
        )
    )


def display_validation_success(
    assistant: Assistant,
    document: Path,
    console: Console,
) -> None:
    """Display validation success with an assistant summary.

    Args:
        assistant: The hydrated assistant.
        document: Path to the document.
        console: Rich console for output.
    """
    workflows = assistant.all_workflows()
    step_count = sum(len(workflow.steps) for workflow in workflows)
    loop_count = sum(1 for workflow in workflows for step in workflow.steps if step.is_loop)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Name", assistant.name or assistant.id or "[dim]unnamed[/dim]")
    if assistant.description:
        table.add_row("Description", assistant.description)
    if assistant.model and assistant.model.get("name"):
        table.add_row("Model", assistant.model["name"])
    table.add_row("Skills", str(len(assistant.skills)))
    table.add_row("Workflows", str(len(workflows)))
    table.add_row("Steps", str(step_count))
    if loop_count:
        table.add_row("Loop Steps", str(loop_count))

    console.print(
        Panel(
            table,
            title="[green]Validation Successful[/green]",
            border_style="green",
        )
    )

    if workflows:
        workflow_table = Table(title="Workflows", show_lines=True)
        workflow_table.add_column("Id", style="cyan")
        workflow_table.add_column("Skill")
        workflow_table.add_column("Steps", justify="right")

        for workflow in workflows:
            match = assistant.find_workflow(workflow.id)
            skill = match.skill.id if match.skill else "[dim]top-level[/dim]"
            workflow_table.add_row(workflow.id, skill, str(len(workflow.steps)))

        console.print(workflow_table)
