# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Exception hierarchy for aispec.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from AispecError and support an optional suggestion,
file path and line number to help users resolve issues.
"""

from __future__ import annotations


class AispecError(Exception):
    """Base exception for all aispec errors.

    Supports optional file path, line number, and suggestion to help
    users understand what went wrong and how to fix it.

    Attributes:
        suggestion: Optional actionable advice for resolving the error.
        file_path: Optional path to the file where the error occurred.
        line_number: Optional line number where the error occurred.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        file_path: str | None = None,
        line_number: int | None = None,
    ) -> None:
        """Initialize an AispecError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            file_path: Optional path to the file where the error occurred.
            line_number: Optional line number where the error occurred.
        """
        self.suggestion = suggestion
        self.file_path = file_path
        self.line_number = line_number
        super().__init__(message)

    @property
    def message(self) -> str:
        """Return the bare error message without location or suggestion."""
        return self.args[0] if self.args else ""

    def _location(self) -> str:
        parts = []
        if self.file_path:
            parts.append(f"File: {self.file_path}")
        if self.line_number:
            parts.append(f"Line: {self.line_number}")
        return f"\n\n📍 Location: {', '.join(parts)}" if parts else ""

    def _suggestion(self) -> str:
        return f"\n\n💡 Suggestion: {self.suggestion}" if self.suggestion else ""

    def __str__(self) -> str:
        """Format the error message with location and suggestion."""
        return self.message + self._location() + self._suggestion()

    @property
    def error_type(self) -> str:
        """Return the type name for display purposes."""
        return self.__class__.__name__


class ConfigurationError(AispecError):
    """Raised when a document or runtime configuration is invalid.

    Attributes:
        field_path: Optional path to the invalid field (e.g., 'assistant.skills.0.name').
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        file_path: str | None = None,
        line_number: int | None = None,
        field_path: str | None = None,
    ) -> None:
        """Initialize a ConfigurationError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            file_path: Optional path to the file where the error occurred.
            line_number: Optional line number where the error occurred.
            field_path: Optional path to the invalid configuration field.
        """
        self.field_path = field_path
        super().__init__(message, suggestion, file_path, line_number)

    def __str__(self) -> str:
        """Format the error message with field path, location and suggestion."""
        field = f"\n\n📋 Field: {self.field_path}" if self.field_path else ""
        return self.message + field + self._location() + self._suggestion()


class MalformedDocumentError(ConfigurationError):
    """Raised when a document cannot be loaded or resolved.

    Covers unparseable YAML, missing or circular ``$ref`` targets, nodes
    that are not a mapping or sequence where one is required, and graphs
    that break structural invariants (duplicate workflow ids, cyclic
    skill dependencies).
    """


class ValidationError(AispecError):
    """Raised when data does not match a declared schema shape.

    Attributes:
        field_name: Optional JSON path of the offending value.
        expected_type: Optional expected JSON-Schema type.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        file_path: str | None = None,
        line_number: int | None = None,
        field_name: str | None = None,
        expected_type: str | None = None,
    ) -> None:
        """Initialize a ValidationError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            file_path: Optional path to the file where the error occurred.
            line_number: Optional line number where the error occurred.
            field_name: Optional JSON path of the offending value.
            expected_type: Optional expected type for the value.
        """
        self.field_name = field_name
        self.expected_type = expected_type

        if suggestion is None and expected_type:
            suggestion = f"Expected type '{expected_type}'"

        super().__init__(message, suggestion, file_path, line_number)


class TemplateError(AispecError):
    """Raised when a prompt template cannot be parsed or rendered."""

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        template_string: str | None = None,
    ) -> None:
        """Initialize a TemplateError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            template_string: Optional original template string.
        """
        self.template_string = template_string
        if suggestion is None and "syntax" in message.lower():
            suggestion = "Check placeholder syntax: use ${name} or ${object.field}"
        super().__init__(message, suggestion)


class MissingVariableError(TemplateError):
    """Raised when a placeholder cannot be resolved against the context.

    Attributes:
        variable: The dotted placeholder path that could not be resolved.
    """

    def __init__(
        self,
        variable: str,
        template_string: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize a MissingVariableError.

        Args:
            variable: The dotted placeholder path that could not be resolved.
            template_string: Optional original template string.
            suggestion: Optional advice for resolving the error.
        """
        self.variable = variable
        if suggestion is None:
            suggestion = (
                f"Provide '{variable}' in the initial context or emit it "
                "from an earlier step's output"
            )
        super().__init__(
            f"Missing variable in prompt template: ${{{variable}}}",
            suggestion=suggestion,
            template_string=template_string,
        )


class ExecutionError(AispecError):
    """Raised when workflow execution fails.

    Base class for execution-related errors.

    Attributes:
        step_id: Optional id of the step where the error occurred.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        step_id: str | None = None,
    ) -> None:
        """Initialize an ExecutionError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            step_id: Optional id of the step where the error occurred.
        """
        self.step_id = step_id
        super().__init__(message, suggestion)


class WorkflowNotFoundError(ExecutionError):
    """Raised when a workflow id is not present anywhere in an assistant graph."""

    def __init__(self, workflow_id: str, available: list[str] | None = None) -> None:
        """Initialize a WorkflowNotFoundError.

        Args:
            workflow_id: The id that was looked up.
            available: Optional list of workflow ids that do exist.
        """
        self.workflow_id = workflow_id
        self.available = available or []
        suggestion = None
        if self.available:
            suggestion = f"Available workflows: {', '.join(self.available)}"
        super().__init__(f"Workflow with id '{workflow_id}' not found", suggestion)


class MissingOutputSchemaError(ExecutionError):
    """Raised when a step reaches model invocation without an output contract."""

    def __init__(self, step_id: str | None) -> None:
        """Initialize a MissingOutputSchemaError.

        Args:
            step_id: Id of the step that has no output declared.
        """
        super().__init__(
            f"Step '{step_id}' has no output schema",
            suggestion="Declare an 'output' with a 'schema' so the model's result can be bound",
            step_id=step_id,
        )


class RunnerStateError(ExecutionError):
    """Raised when a workflow runner is driven out of order.

    This includes submitting a step before ``start``, starting twice, and
    re-entering the runner while a step is still in flight.
    """


class ModelInvocationError(AispecError):
    """Raised when the model-invocation collaborator fails.

    Attributes:
        provider_name: Optional name of the model service.
        status_code: Optional HTTP status code reported by the backend.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize a ModelInvocationError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
            provider_name: Optional name of the model service.
            status_code: Optional HTTP status code reported by the backend.
        """
        self.provider_name = provider_name
        self.status_code = status_code

        if suggestion is None:
            if status_code == 401:
                suggestion = "Check your credentials and ensure ANTHROPIC_API_KEY is set correctly"
            elif status_code == 429:
                suggestion = "Rate limit exceeded. Retry the workflow later"
            elif "connection" in message.lower():
                suggestion = "Check your network connection and try again"

        super().__init__(message, suggestion)
