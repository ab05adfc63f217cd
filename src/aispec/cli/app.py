# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Typer application definition for the aispec CLI.

This module defines the main Typer app, global options and commands.
"""

from __future__ import annotations

import contextvars
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from aispec import __version__

# Create the main Typer app
app = typer.Typer(
    name="aispec",
    help="aispec - Run declarative multi-step LLM workflows defined in YAML.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console(stderr=True)
output_console = Console()

# Context variable for verbose mode (default True - show progress output)
verbose_mode: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "verbose_mode", default=True
)

# Context variable for full verbose mode (--verbose flag - show full details)
full_mode: contextvars.ContextVar[bool] = contextvars.ContextVar("full_mode", default=False)


def is_verbose() -> bool:
    """Check if verbose mode is enabled (default True)."""
    return verbose_mode.get()


def is_full() -> bool:
    """Check if full verbose mode is enabled (--verbose flag).

    When full mode is enabled, prompts are shown untruncated and debug
    logging from the aispec package is displayed.
    """
    return full_mode.get()


def configure_logging(verbose: bool) -> None:
    """Route aispec log records to stderr through Rich.

    Args:
        verbose: Log at DEBUG when True, WARNING otherwise.
    """
    logger = logging.getLogger("aispec")
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=console, show_path=False, markup=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def format_error(error: Exception) -> Panel:
    """Format an exception for Rich console display.

    Creates a styled Panel with error type, message, location (if available),
    and suggestion (if available).

    Args:
        error: The exception to format.

    Returns:
        Rich Panel with formatted error content.
    """
    from aispec.exceptions import AispecError

    content = Text()

    message = error.message if isinstance(error, AispecError) else str(error)
    content.append(message, style="bold red")

    if isinstance(error, AispecError):
        if error.file_path or error.line_number:
            content.append("\n\n")
            content.append("📍 Location: ", style="yellow")
            if error.file_path:
                content.append(error.file_path, style="cyan")
            if error.line_number:
                if error.file_path:
                    content.append(":", style="yellow")
                content.append(f"line {error.line_number}", style="cyan")

        # Add field path for configuration errors
        field_path = getattr(error, "field_path", None)
        if field_path:
            content.append("\n")
            content.append("📋 Field: ", style="yellow")
            content.append(field_path, style="cyan")

        if error.suggestion:
            content.append("\n\n")
            content.append("💡 Suggestion: ", style="green")
            content.append(error.suggestion, style="white")

    error_type = error.error_type if isinstance(error, AispecError) else type(error).__name__

    return Panel(
        content,
        title=f"[bold red]❌ {error_type}[/bold red]",
        border_style="red",
        padding=(1, 2),
    )


def print_error(error: Exception) -> None:
    """Print a formatted error to stderr.

    Args:
        error: The exception to print.
    """
    console.print(format_error(error))


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        output_console.print(f"aispec v{__version__}")
        raise typer.Exit()


DocumentArgument = Annotated[
    Path,
    typer.Argument(
        help="Path to the assistant YAML document.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
]


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-V",
            help="Show full prompts and debug logging.",
        ),
    ] = False,
) -> None:
    """aispec - Run declarative multi-step LLM workflows defined in YAML."""
    full_mode.set(verbose)
    configure_logging(verbose)


@app.command()
def run(
    document: DocumentArgument,
    workflow_id: Annotated[
        str,
        typer.Argument(help="Id of the workflow to run."),
    ],
    raw_inputs: Annotated[
        list[str] | None,
        typer.Option(
            "--input",
            "-i",
            help="Initial context values in name=value format. Can be repeated.",
        ),
    ] = None,
    provider: Annotated[
        str,
        typer.Option(
            "--provider",
            "-p",
            help="Model service to use.",
        ),
    ] = "claude",
    model: Annotated[
        str | None,
        typer.Option(
            "--model",
            "-m",
            help="Default model name when the document sets none.",
            envvar="AISPEC_MODEL",
        ),
    ] = None,
    step: Annotated[
        bool,
        typer.Option(
            "--step",
            help="Ask for confirmation before each step after the first.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show the execution plan without calling the model.",
        ),
    ] = False,
) -> None:
    """Run a workflow from an assistant document.

    The final context is printed as JSON.

    \b
    Examples:
        aispec run assistant.yaml character-building -i name=John -i surnamesLength=2
        aispec run assistant.yaml character-building --step
        aispec run assistant.yaml character-building --dry-run
    """
    import asyncio
    import json

    # Import here to defer heavy imports
    from aispec.cli.run import (
        build_dry_run_plan,
        display_execution_plan,
        parse_input_flags,
        run_workflow_async,
    )

    if dry_run:
        try:
            plan = build_dry_run_plan(document, workflow_id)
            display_execution_plan(plan, output_console)
            return
        except Exception as e:
            print_error(e)
            raise typer.Exit(code=1) from None

    inputs: dict[str, Any] = parse_input_flags(raw_inputs) if raw_inputs else {}

    try:
        result = asyncio.run(
            run_workflow_async(document, workflow_id, inputs, provider, model, step)
        )
        output_console.print_json(json.dumps(result, default=str))
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None


@app.command()
def validate(document: DocumentArgument) -> None:
    """Validate an assistant document without running it.

    Checks the document for:
    - Valid YAML syntax and resolvable $ref targets
    - Valid node structure
    - Unique workflow ids and an acyclic skill dependency graph

    \b
    Examples:
        aispec validate assistant.yaml
    """
    from aispec.cli.validate import display_validation_success, validate_document

    is_valid, assistant = validate_document(document, output_console)

    if is_valid and assistant is not None:
        display_validation_success(assistant, document, output_console)
    else:
        raise typer.Exit(code=1)


@app.command()
def show(
    document: DocumentArgument,
    workflow_id: Annotated[
        str,
        typer.Argument(help="Id of the workflow to focus on."),
    ],
) -> None:
    """Print the minimal assistant a workflow runs against.

    This is the document sent as the system prompt with every model call
    of that workflow.

    \b
    Examples:
        aispec show assistant.yaml character-building
    """
    from aispec.entities import Assistant

    try:
        minimal = Assistant.from_file(document).project(workflow_id)
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    output_console.print(minimal.to_yaml(), markup=False, highlight=False, soft_wrap=True, end="")
