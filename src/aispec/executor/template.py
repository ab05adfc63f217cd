# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Jinja2-based renderer for ``${...}`` prompt templates.

This module provides the TemplateRenderer class, which configures Jinja2 to
use ``${`` and ``}`` as variable delimiters, and the PromptTemplate wrapper
that extracts placeholders and interpolates them against a context.

Dotted placeholders index into the context: ``${user.name}`` reads the key
``name`` of ``user``, and ``${names.0}`` reads the first element of
``names``. Keys that are not Python identifiers, such as ``${first-name}``,
are looked up verbatim. A placeholder that cannot be resolved raises
MissingVariableError. Only ``${...}`` is special in a prompt; Jinja2 block
and comment syntax is treated as literal text.
"""

from __future__ import annotations

import json
import re
from typing import Any

from jinja2 import (
    BaseLoader,
    Environment,
    StrictUndefined,
    TemplateSyntaxError,
    Undefined,
    nodes,
    pass_context,
)
from jinja2 import UndefinedError as Jinja2UndefinedError
from jinja2.runtime import Context

from aispec.exceptions import MissingVariableError, TemplateError

_MISSING = object()

# Block and comment delimiters that never occur in prompt text
_UNUSED_DELIMITERS = {
    "block_start_string": "\x00{%",
    "block_end_string": "%}\x00",
    "comment_start_string": "\x00{#",
    "comment_end_string": "#}\x00",
}

_PATH_FUNCTION = "_aispec_path"

# A bare placeholder path, e.g. ${first-name} or ${user.home-town}
_PLAIN_PLACEHOLDER = re.compile(r"\$\{\s*([\w-]+(?:\.[\w-]+)*)\s*\}")


class _IndexingEnvironment(Environment):
    """Environment whose attribute access tries item lookup first.

    ``${data.items}`` must read the ``items`` key of a mapping rather than
    the bound ``dict.items`` method.
    """

    def getattr(self, obj: Any, attribute: str) -> Any:
        return self.getitem(obj, attribute)


def _finalize(value: Any) -> Any:
    """Format a placeholder value for inclusion in a prompt."""
    if isinstance(value, Undefined):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(_finalize(item)) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"), default=str)
    return value


def resolve_path(context: Any, path: str) -> Any:
    """Resolve a dotted placeholder path against a context.

    Each segment is tried as a mapping key, then as a sequence index, then
    as an attribute.

    Args:
        context: The object to index into.
        path: Dotted path such as ``user.name`` or ``names.0``.

    Returns:
        The resolved value.

    Raises:
        KeyError: If any segment cannot be resolved.
    """
    current = context
    for segment in path.split("."):
        current = _lookup(current, segment)
        if current is _MISSING:
            raise KeyError(path)
    return current


def _lookup(obj: Any, segment: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(segment, _MISSING)
    if isinstance(obj, (list, tuple)):
        try:
            return obj[int(segment)]
        except (ValueError, IndexError):
            return _MISSING
    return getattr(obj, segment, _MISSING)


def _is_plain_segment(segment: str, first: bool) -> bool:
    return segment.isidentifier() or (not first and segment.isdigit())


def _quote_placeholder(match: re.Match[str]) -> str:
    """Rewrite a placeholder whose path Jinja2 cannot parse as names into a lookup call."""
    path = match.group(1)
    segments = path.split(".")
    if all(_is_plain_segment(segment, i == 0) for i, segment in enumerate(segments)):
        return match.group(0)
    return '${%s("%s")}' % (_PATH_FUNCTION, path)


@pass_context
def _lookup_path(context: Context, path: str) -> Any:
    try:
        return resolve_path(context.get_all(), path)
    except KeyError:
        return context.environment.undefined(name=path)


def _dotted_path(node: nodes.Node) -> str | None:
    """Return the dotted path of a Name/Getattr/Getitem chain, if it is one."""
    if (
        isinstance(node, nodes.Call)
        and isinstance(node.node, nodes.Name)
        and node.node.name == _PATH_FUNCTION
        and len(node.args) == 1
        and isinstance(node.args[0], nodes.Const)
    ):
        return node.args[0].value
    if isinstance(node, nodes.Name):
        return node.name if node.ctx == "load" else None
    if isinstance(node, nodes.Getattr):
        base = _dotted_path(node.node)
        return f"{base}.{node.attr}" if base else None
    if isinstance(node, nodes.Getitem) and isinstance(node.arg, nodes.Const):
        base = _dotted_path(node.node)
        return f"{base}.{node.arg.value}" if base else None
    return None


def _collect_paths(node: nodes.Node, found: list[str]) -> None:
    path = _dotted_path(node)
    if path is not None:
        if path not in found:
            found.append(path)
        return
    for child in node.iter_child_nodes():
        _collect_paths(child, found)


class TemplateRenderer:
    """Jinja2-based renderer for ``${...}`` prompt templates.

    Uses StrictUndefined to fail fast on missing variables and provides
    custom filters for JSON serialization and defaults.

    Example:
        >>> renderer = TemplateRenderer()
        >>> renderer.render("Hello ${name}!", {"name": "World"})
        'Hello World!'
        >>> renderer.render("Names: ${names}", {"names": ["Doe", "Smith"]})
        'Names: Doe,Smith'
    """

    def __init__(self) -> None:
        """Initialize the template renderer with a Jinja2 environment."""
        self.env = _IndexingEnvironment(
            loader=BaseLoader(),
            variable_start_string="${",
            variable_end_string="}",
            undefined=StrictUndefined,  # Fail fast on missing variables
            autoescape=False,  # No HTML escaping for prompts
            keep_trailing_newline=True,
            finalize=_finalize,
            **_UNUSED_DELIMITERS,
        )

        # Register custom filters
        self.env.filters["json"] = self._json_filter
        self.env.filters["default"] = self._default_filter
        self.env.globals[_PATH_FUNCTION] = _lookup_path

    @staticmethod
    def _json_filter(value: Any, indent: int = 2) -> str:
        """Serialize value to formatted JSON string.

        Args:
            value: Any JSON-serializable value.
            indent: Number of spaces for indentation.

        Returns:
            Formatted JSON string.
        """
        return json.dumps(value, indent=indent, default=str)

    @staticmethod
    def _default_filter(value: Any, default: Any = "") -> Any:
        """Return default if value is None or undefined.

        Args:
            value: The value to check.
            default: Default value to return if value is missing.

        Returns:
            The value if present, otherwise the default.
        """
        if value is None or isinstance(value, Undefined):
            return default
        return value

    @staticmethod
    def _quote_paths(template: str) -> str:
        return _PLAIN_PLACEHOLDER.sub(_quote_placeholder, template)

    def extract_variables(self, template: str) -> list[str]:
        """Return the dotted placeholder paths referenced by a template.

        Paths are listed in order of first appearance, without duplicates.

        Args:
            template: Template string with ``${...}`` placeholders.

        Returns:
            Placeholder paths with the braces stripped.

        Raises:
            TemplateError: If the template has a syntax error.
        """
        try:
            ast = self.env.parse(self._quote_paths(template))
        except TemplateSyntaxError as e:
            raise TemplateError(
                f"Template syntax error: {e}",
                template_string=template,
            ) from e

        found: list[str] = []
        _collect_paths(ast, found)
        return found

    def render(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string with the given context.

        Args:
            template: Template string with ``${...}`` placeholders.
            context: Variables available in the template.

        Returns:
            Rendered string.

        Raises:
            MissingVariableError: If a placeholder cannot be resolved.
            TemplateError: If rendering fails for any other reason.
        """
        try:
            tmpl = self.env.from_string(self._quote_paths(template))
            return tmpl.render(**context)
        except Jinja2UndefinedError as e:
            raise MissingVariableError(
                self._missing_variable(template, context, e),
                template_string=template,
            ) from e
        except TemplateSyntaxError as e:
            raise TemplateError(
                f"Template syntax error: {e}",
                template_string=template,
            ) from e
        except Exception as e:
            raise TemplateError(
                f"Template rendering failed: {e}",
                suggestion="Check template and context for errors",
                template_string=template,
            ) from e

    def _missing_variable(
        self, template: str, context: dict[str, Any], error: Exception
    ) -> str:
        """Name the first placeholder that does not resolve against the context."""
        for path in self.extract_variables(template):
            try:
                resolve_path(context, path)
            except KeyError:
                return path
        # Jinja2 error messages are like "'name' is undefined"
        parts = str(error).split("'")
        return parts[1] if len(parts) >= 2 else "unknown"


_renderer = TemplateRenderer()


def extract_variables(template: str) -> list[str]:
    """Return the dotted placeholder paths referenced by a template."""
    return _renderer.extract_variables(template)


def interpolate(template: str, context: dict[str, Any]) -> str:
    """Render a template against a context with the shared renderer."""
    return _renderer.render(template, context)


class PromptTemplate:
    """A prompt template string together with the placeholders it references.

    Example:
        >>> prompt = PromptTemplate("Hello ${user.name}, you are ${user.age}")
        >>> prompt.variables
        ['user.name', 'user.age']
        >>> prompt.interpolate({"user": {"name": "John", "age": 30}})
        'Hello John, you are 30'
    """

    def __init__(self, template: str, renderer: TemplateRenderer | None = None) -> None:
        self.template = template
        self.renderer = renderer or _renderer
        self.variables = self.renderer.extract_variables(template)

    def render(self, context: dict[str, Any]) -> str:
        """Render the template against a context."""
        return self.renderer.render(self.template, context)

    interpolate = render

    def __repr__(self) -> str:
        return f"PromptTemplate({self.template!r})"
