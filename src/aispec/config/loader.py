# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""YAML document loader with ``$ref`` resolution.

This module loads assistant, skill and workflow documents, replaces every
node that carries a ``$ref`` marker with the parsed contents of the file
it names, and resolves environment variables in ``model`` sections. The
result is a single self-contained tree of plain dicts, lists and scalars.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from aispec.exceptions import ConfigurationError, MalformedDocumentError

logger = logging.getLogger(__name__)

REF_KEY = "$ref"

# Pattern to match ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def resolve_env_vars(value: str, max_depth: int = 10) -> str:
    """Resolve ${ENV:-default} patterns in strings.

    Supports recursive resolution where environment variable values
    may themselves contain environment variable references.

    Args:
        value: The string potentially containing env var references.
        max_depth: Maximum recursion depth to prevent infinite loops.

    Returns:
        The string with all environment variables resolved.

    Raises:
        ConfigurationError: If a required environment variable is missing
            (no default provided) or recursion limit is exceeded.
    """
    if max_depth <= 0:
        raise ConfigurationError(
            f"Maximum recursion depth exceeded while resolving environment variables in: {value}",
            suggestion="Check for circular references in your environment variables.",
        )

    def replace_env_var(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2)

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value
        elif default_value is not None:
            return default_value
        else:
            raise ConfigurationError(
                f"Required environment variable '{var_name}' is not set",
                suggestion=f"Set the environment variable '{var_name}' or provide a default "
                f"value using the syntax: ${{{var_name}:-default_value}}",
            )

    result = ENV_VAR_PATTERN.sub(replace_env_var, value)

    if ENV_VAR_PATTERN.search(result):
        return resolve_env_vars(result, max_depth - 1)

    return result


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve environment variables in a data structure.

    Args:
        data: The data structure (dict, list, or scalar) to process.

    Returns:
        The data structure with all string values having env vars resolved.
    """
    if isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    else:
        return data


def unwrap(node: Any) -> Any:
    """Unwrap a single-key mapping to the value of its only key.

    A skill file reads ``skill: {...}``; once referenced from an assistant,
    the outer ``skill`` key must not leak into the graph.
    """
    if isinstance(node, dict) and len(node) == 1:
        return next(iter(node.values()))
    return node


class DocumentLoader:
    """Loads YAML documents and resolves ``$ref`` markers to a fixed point.

    This class handles:
    - YAML parsing with line number tracking for error messages
    - Recursive ``$ref`` resolution relative to the referencing file
    - Circular reference detection
    - Environment variable resolution in ``model`` sections

    Files are not cached: a file referenced twice is parsed twice.
    """

    def __init__(self) -> None:
        """Initialize the loader with a ruamel.yaml safe parser."""
        self._yaml = YAML(typ="safe", pure=True)

    def load(self, path: str | Path) -> Any:
        """Load a document file and resolve all of its references.

        The file's single-key wrapper (``assistant:``, ``skill:``...) is
        removed.

        Args:
            path: Path to the YAML document.

        Returns:
            The resolved document tree.

        Raises:
            MalformedDocumentError: If the file cannot be read, contains
                invalid YAML, or any reference fails to resolve.
        """
        return self._load_file(Path(path), chain=())

    def load_string(
        self,
        content: str,
        base_dir: str | Path | None = None,
        source: str = "<string>",
    ) -> Any:
        """Load a document from a YAML string and resolve its references.

        Unlike :meth:`load`, the top-level wrapper is kept; callers that
        know the node kind strip it themselves.

        Args:
            content: The YAML content.
            base_dir: Directory relative ``$ref`` paths resolve against.
                Defaults to the current working directory.
            source: Name used in error messages.

        Returns:
            The resolved document tree.

        Raises:
            MalformedDocumentError: If the YAML is invalid or a reference fails.
        """
        data = self._parse(content, source)
        return self.resolve(data, base_dir)

    def resolve(self, node: Any, base_dir: str | Path | None = None) -> Any:
        """Resolve every ``$ref`` in an in-memory tree.

        Resolving an already resolved tree returns an equal tree.

        Args:
            node: A mapping, sequence or scalar.
            base_dir: Directory relative ``$ref`` paths resolve against.

        Returns:
            A new tree with no ``$ref`` markers left.
        """
        base = Path(base_dir) if base_dir is not None else Path.cwd()
        return self._resolve(node, base, chain=())

    def _resolve(self, node: Any, base_dir: Path, chain: tuple[Path, ...]) -> Any:
        if isinstance(node, list):
            return [self._resolve(item, base_dir, chain) for item in node]

        if not isinstance(node, dict):
            return node

        if REF_KEY in node:
            ref = node[REF_KEY]
            if not isinstance(ref, str) or not ref:
                raise MalformedDocumentError(
                    f"Invalid {REF_KEY} value: {ref!r}",
                    suggestion=f"{REF_KEY} must be a non-empty file path",
                )
            target = Path(ref)
            if not target.is_absolute():
                target = base_dir / target
            loaded = self._load_file(target, chain)

            overrides = {
                key: self._resolve_value(key, value, base_dir, chain)
                for key, value in node.items()
                if key != REF_KEY
            }
            if not overrides:
                return loaded
            if not isinstance(loaded, dict):
                raise MalformedDocumentError(
                    f"Referenced document '{target}' is not a mapping and cannot take overrides",
                    file_path=str(target),
                )
            return {**loaded, **overrides}

        return {
            key: self._resolve_value(key, value, base_dir, chain)
            for key, value in node.items()
        }

    def _resolve_value(self, key: Any, value: Any, base_dir: Path, chain: tuple[Path, ...]) -> Any:
        resolved = self._resolve(value, base_dir, chain)
        if key == "model":
            resolved = _resolve_env_vars_recursive(resolved)
        return resolved

    def _load_file(self, path: Path, chain: tuple[Path, ...]) -> Any:
        """Read, parse, unwrap and resolve one referenced file."""
        resolved_path = path.resolve()

        if resolved_path in chain:
            cycle = " -> ".join(str(p) for p in (*chain, resolved_path))
            raise MalformedDocumentError(
                f"Circular document reference: {cycle}",
                suggestion="Documents must form a DAG; remove one of the references",
                file_path=str(path),
            )

        if not path.exists():
            raise MalformedDocumentError(
                f"Document not found: {path}",
                suggestion="Check that the path is correct; relative paths resolve "
                "against the directory of the referencing document.",
            )

        if not path.is_file():
            raise MalformedDocumentError(
                f"Path is not a file: {path}",
                suggestion="Provide a path to a YAML file, not a directory.",
            )

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise MalformedDocumentError(
                f"Failed to read document '{path}': {e}",
                suggestion="Check file permissions and ensure the file is readable.",
            ) from e

        logger.debug(f"Loaded document {path}")

        data = self._parse(content, str(path))
        # A document holding a list keeps only its first element.
        if isinstance(data, list):
            if not data:
                raise MalformedDocumentError(
                    f"Empty document list in '{path}'", file_path=str(path)
                )
            data = data[0]
        data = unwrap(data)

        if not isinstance(data, (dict, list)):
            raise MalformedDocumentError(
                f"Invalid document format in '{path}': "
                f"expected a mapping or sequence, got {type(data).__name__}",
                suggestion="A document must contain a single top-level node such as "
                "'skill:' holding a mapping.",
                file_path=str(path),
            )

        return self._resolve(data, path.parent, (*chain, resolved_path))

    def _parse(self, content: str, source: str) -> Any:
        try:
            data = self._yaml.load(content)
        except YAMLError as e:
            line_number = None
            line_info = ""
            if hasattr(e, "problem_mark") and e.problem_mark is not None:
                mark = e.problem_mark
                # Access YAML marker attributes (dynamic type from ruamel.yaml)
                line_number = mark.line + 1  # type: ignore[union-attr]
                line_info = f" at line {line_number}, column {mark.column + 1}"  # type: ignore[union-attr]

            raise MalformedDocumentError(
                f"Invalid YAML syntax in '{source}'{line_info}: {e}",
                suggestion="Check the YAML syntax. Common issues include incorrect "
                "indentation, missing colons, or unquoted special characters.",
                file_path=source if source != "<string>" else None,
                line_number=line_number,
            ) from e

        if data is None:
            raise MalformedDocumentError(
                f"Empty document: {source}",
                suggestion="Add an assistant, skill or workflow node to the document.",
            )

        if not isinstance(data, (dict, list)):
            raise MalformedDocumentError(
                f"Invalid document format in '{source}': "
                f"expected a mapping, got {type(data).__name__}",
                suggestion="Ensure the YAML document contains a mapping at the top level.",
            )

        return data


def load_document(path: str | Path) -> Any:
    """Convenience function to load and resolve a document file.

    Args:
        path: Path to the YAML document.

    Returns:
        The resolved, unwrapped document tree.

    Raises:
        MalformedDocumentError: If loading or resolution fails.
    """
    return DocumentLoader().load(path)


def load_document_string(content: str, base_dir: str | Path | None = None) -> Any:
    """Convenience function to load and resolve a document from a string.

    Args:
        content: The YAML content as a string.
        base_dir: Directory relative ``$ref`` paths resolve against.

    Returns:
        The resolved document tree (top-level wrapper kept).

    Raises:
        MalformedDocumentError: If loading or resolution fails.
    """
    return DocumentLoader().load_string(content, base_dir)


def resolve_refs(node: Any, base_dir: str | Path | None = None) -> Any:
    """Convenience function to resolve ``$ref`` markers in an in-memory tree.

    Args:
        node: The tree to resolve.
        base_dir: Directory relative ``$ref`` paths resolve against.

    Returns:
        A new tree with every reference replaced by its file's contents.
    """
    return DocumentLoader().resolve(node, base_dir)
