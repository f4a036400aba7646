"""Parsed user documents as seen by the registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from schemaservice.core import json
from schemaservice.core.jsonschema import JsonSchema

SCHEMA_PROPERTY = "$schema"


@dataclass
class Node:
    type: str
    value: Any

    __slots__ = ("type", "value")


@dataclass
class PropertyNode:
    key_node: Node
    value_node: Node | None

    __slots__ = ("key_node", "value_node")


@dataclass
class ObjectNode(Node):
    properties: list[PropertyNode]

    __slots__ = ("properties",)


@dataclass
class ArrayNode(Node):
    items: list[Node]

    __slots__ = ("items",)


@dataclass
class MatchingSchema:
    """A subschema that applies to a document node."""

    node: Node
    schema: JsonSchema
    inverted: bool = False


class TextDocument(Protocol):
    uri: str


class ParsedDocument(Protocol):
    @property
    def root(self) -> Node | None: ...


class MatchableDocument(ParsedDocument, Protocol):
    def get_matching_schemas(self, schema: JsonSchema) -> list[MatchingSchema]: ...


def get_schema_from_property(document: ParsedDocument) -> str | None:
    """The string value of the root `$schema` property, if any."""
    root = document.root
    if not isinstance(root, ObjectNode):
        return None
    for prop in root.properties:
        if prop.key_node.value == SCHEMA_PROPERTY and prop.value_node is not None:
            if prop.value_node.type == "string":
                return prop.value_node.value
    return None


def to_node(value: Any) -> Node:
    """Build a node tree from a decoded JSON value."""
    if isinstance(value, dict):
        return ObjectNode(
            type="object",
            value=value,
            properties=[
                PropertyNode(key_node=Node("string", key), value_node=to_node(item)) for key, item in value.items()
            ],
        )
    if isinstance(value, list):
        return ArrayNode(type="array", value=value, items=[to_node(item) for item in value])
    if value is None:
        return Node("null", None)
    if isinstance(value, bool):
        return Node("boolean", value)
    if isinstance(value, (int, float)):
        return Node("number", value)
    return Node("string", value)


class JSONDocument:
    """Document built from decoded JSON values.

    Carries enough structure for schema association, without source positions.
    """

    __slots__ = ("root",)

    def __init__(self, root: Node | None) -> None:
        self.root = root

    @classmethod
    def from_value(cls, value: Any) -> JSONDocument:
        return cls(to_node(value))

    @classmethod
    def from_text(cls, text: str) -> JSONDocument:
        """Parse JSON or JSONC text. Raises `JSONDecodeError` on invalid input."""
        return cls.from_value(json.loads(text))
