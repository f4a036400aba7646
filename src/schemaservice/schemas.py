from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from schemaservice.core.jsonschema import JsonSchema, JsonSchemaObject, as_schema_object, is_index


@dataclass(init=False)
class UnresolvedSchema:
    """Schema as it was loaded, with `$ref` keywords in place."""

    schema: JsonSchema
    errors: list[str]

    __slots__ = ("schema", "errors")

    def __init__(self, schema: JsonSchema, errors: list[str] | None = None) -> None:
        self.schema = schema
        self.errors = errors if errors is not None else []


@dataclass(init=False)
class ResolvedSchema:
    """Schema with all references merged in."""

    schema: JsonSchema
    errors: list[str]

    __slots__ = ("schema", "errors")

    def __init__(self, schema: JsonSchema, errors: list[str] | None = None) -> None:
        self.schema = schema
        self.errors = errors if errors is not None else []

    def get_section(self, path: Sequence[str]) -> JsonSchemaObject | None:
        """Find the subschema that applies to the given path."""
        section = _get_section(self.schema, list(path))
        if section is None:
            return None
        return as_schema_object(section)


def _get_section(schema: Any, path: list[str]) -> Any:
    current = schema
    for segment in path:
        if current is None or isinstance(current, bool):
            # `true` and `false` have no sections
            return None
        current = _descend(current, segment)
    return current


def _descend(schema: Any, segment: str) -> Any:
    if isinstance(schema, list):
        return _get_item(schema, segment)
    if not isinstance(schema, dict):
        return None
    properties = schema.get("properties")
    if isinstance(properties, dict) and segment in properties:
        return properties[segment]
    pattern_properties = schema.get("patternProperties")
    if isinstance(pattern_properties, dict):
        for pattern, subschema in pattern_properties.items():
            if _pattern_matches(pattern, segment):
                return subschema
    additional_properties = schema.get("additionalProperties")
    if isinstance(additional_properties, dict):
        return additional_properties
    items = schema.get("items")
    if is_index(segment) and items is not None:
        if isinstance(items, list):
            return _get_item(items, segment)
        return items
    # Walk the schema structure itself, e.g. `["properties", "foo"]`
    return schema.get(segment)


def _get_item(items: list, segment: str) -> Any:
    if not is_index(segment):
        return None
    index = int(segment)
    if index >= len(items):
        return None
    return items[index]


def _pattern_matches(pattern: str, value: str) -> bool:
    try:
        return re.search(pattern, value) is not None
    except re.error:
        return False
