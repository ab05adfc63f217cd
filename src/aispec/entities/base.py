# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Generic hydration and serialization shared by every entity kind.

Each entity class declares a field-mapping table that names, for every
dataclass field, the document key it is read from and, for nested
entities, the builder that constructs the child. ``mount`` walks that
table; ``Entity.from_node`` validates the raw node against the kind's
Pydantic definition first so every mapped field has a validated source.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML

from aispec.config.schema import format_validation_errors
from aispec.exceptions import MalformedDocumentError

logger = logging.getLogger(__name__)

Builder = Callable[[Any], Any]
FieldMapping = dict[str, Union[str, tuple[str, Builder]]]


def get_nested_value(path: str, node: Any) -> Any:
    """Look up a dotted path in a raw node.

    Segments index mappings by key and sequences by position.

    Args:
        path: Dotted path such as ``output.schema`` or ``steps.0``.
        node: The raw document node.

    Returns:
        The value found, or None when any segment is missing.
    """
    current = node
    for segment in path.split("."):
        if isinstance(current, dict):
            current = current.get(segment)
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return None
        if current is None:
            return None
    return current


def mount(target: Any, node: Any, mapping: FieldMapping) -> None:
    """Populate an entity's fields from a raw node.

    For a plain path the value found at that path is copied (None when
    missing). For a ``(path, builder)`` pair a sequence produces one child
    per element, any other value produces exactly one child, and a missing
    value leaves the field at its default.

    Args:
        target: The entity instance to populate.
        node: The resolved raw node.
        mapping: Field name to source path or ``(path, builder)``.
    """
    for field_name, source in mapping.items():
        if isinstance(source, tuple):
            path, builder = source
            value = get_nested_value(path, node)
            if value is None:
                continue
            if isinstance(value, list):
                setattr(target, field_name, [builder(child) for child in value])
            else:
                setattr(target, field_name, builder(value))
        else:
            setattr(target, field_name, get_nested_value(source, node))


def check_mapping(cls: type) -> None:
    """Ensure every field named in a class's mapping is declared on it.

    Raises:
        TypeError: If the mapping names an undeclared field.
    """
    declared: set[str] = set()
    for klass in cls.__mro__:
        declared.update(getattr(klass, "__annotations__", {}))

    unknown = sorted(set(getattr(cls, "mapping", {})) - declared)
    if unknown:
        raise TypeError(f"{cls.__name__} mapping names undeclared fields: {', '.join(unknown)}")


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, dict, str)) and not value)


def serialize_value(value: Any) -> Any:
    if isinstance(value, Entity):
        return value.to_node()
    if isinstance(value, list):
        return [serialize_value(item) for item in value]
    return value


@dataclass(eq=False)
class Entity:
    """Base class for all entity kinds.

    Subclasses set ``kind`` (the document wrapper key), ``mapping`` (the
    field-mapping table), ``definition`` (the Pydantic model the raw node
    is validated against) and optionally ``excluded_fields`` (fields left
    out when serializing back to a document).
    """

    kind: ClassVar[str] = ""
    mapping: ClassVar[FieldMapping] = {}
    definition: ClassVar[type[BaseModel] | None] = None
    excluded_fields: ClassVar[frozenset[str]] = frozenset()

    node: dict[str, Any] = field(default_factory=dict, repr=False)
    """The validated raw node this entity was mounted from."""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        check_mapping(cls)

    @classmethod
    def validate_node(cls, node: Any) -> dict[str, Any]:
        """Validate a raw node and return its normalized form.

        Raises:
            MalformedDocumentError: If the node does not match the definition.
        """
        if not isinstance(node, dict):
            raise MalformedDocumentError(
                f"Expected a mapping for {cls.kind or cls.__name__}, got {type(node).__name__}",
                suggestion="Check that the node (or the file it references) holds a mapping.",
            )
        if cls.definition is None:
            return node
        try:
            validated = cls.definition.model_validate(node)
        except PydanticValidationError as e:
            raise MalformedDocumentError(
                f"Invalid {cls.kind} node:\n{format_validation_errors(e)}",
                suggestion=f"Check the fields of the '{cls.kind}' node and try again.",
            ) from e
        cls.check_definition(validated)
        return validated.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def check_definition(cls, definition: Any) -> None:
        """Run checks that span more than one node. No-op by default."""

    @classmethod
    def from_node(cls, node: Any) -> Any:
        """Validate a raw node and hydrate an entity from it."""
        data = cls.validate_node(node)
        entity = cls(node=data)
        mount(entity, data, cls.mapping)
        return entity

    def to_node(self) -> Any:
        """Serialize back to a raw document node.

        Excluded fields and empty values are omitted; keys the document
        carried beyond the mapping are kept.
        """
        data: dict[str, Any] = {}
        mapped_keys: set[str] = set()
        for field_name, source in self.mapping.items():
            key = source[0] if isinstance(source, tuple) else source
            mapped_keys.add(key)
            if field_name in self.excluded_fields:
                continue
            value = self._serialize_field(field_name, getattr(self, field_name))
            if not _is_empty(value):
                data[key] = value

        for key, value in self.node.items():
            if key not in mapped_keys and key not in self.excluded_fields and not _is_empty(value):
                data[key] = value
        return data

    def _serialize_field(self, field_name: str, value: Any) -> Any:
        return serialize_value(value)

    def to_document(self) -> dict[str, Any]:
        """Serialize to a document wrapped in its kind key."""
        return {self.kind: self.to_node()}

    def to_yaml(self) -> str:
        """Serialize to YAML document text."""
        yaml = YAML()
        yaml.default_flow_style = False
        stream = io.StringIO()
        yaml.dump(self.to_document(), stream)
        return stream.getvalue()

    def __str__(self) -> str:
        return self.to_yaml()
