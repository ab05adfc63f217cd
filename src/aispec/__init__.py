# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""aispec - Declarative, multi-step LLM workflows.

An author describes an assistant, its reusable skills, and ordered workflows
of steps in YAML. aispec hydrates the document into an entity graph and
drives a workflow one step at a time: each step renders a prompt, asks a
model service to answer through a single schema-constrained response tool,
and folds the structured result into a context shared with later steps.

Example:
    Run a workflow from the command line::

        $ aispec run assistant.yaml character-building -i name=John -i surnamesLength=2

    Or drive it programmatically::

        from aispec.entities import Assistant
        from aispec.providers.factory import create_model_service

        assistant = Assistant.from_file("assistant.yaml")
        service = await create_model_service("claude")
        runner = assistant.load_workflow("character-building", service)
        await runner.start({"name": "John", "surnamesLength": 2})
        while runner.has_next():
            await runner.submit_step()

Modules:
    config: Document loading, ``$ref`` resolution, schema and graph validation.
    entities: Assistant, Skill, Workflow, Step, Input, Output and Prompt.
    executor: Prompt templating and structured output validation.
    engine: Running context and the workflow runner state machine.
    providers: Model service abstraction and implementations.
    tools: Tool library collaborator interface.
    cli: Command-line interface commands.
    exceptions: Custom exception hierarchy.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
