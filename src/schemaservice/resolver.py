"""Dereferencing of `$ref` keywords across one or more schema documents."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any

from schemaservice.core.jsonschema import (
    NOT_FOUND,
    REFERENCE_KEY,
    JsonSchema,
    JsonSchemaObject,
    deepclone,
    find_section,
    merge_missing_keys,
    split_reference,
)
from schemaservice.core.jsonschema.keywords import (
    ARRAY_SUBSCHEMA_KEYWORDS,
    MAP_SUBSCHEMA_KEYWORDS,
    PARTIALLY_SUPPORTED_DIALECTS,
    SINGLE_SUBSCHEMA_KEYWORDS,
    UNSUPPORTED_DIALECTS,
)
from schemaservice.core.jsonschema.references import decode_fragment
from schemaservice.core.uri import is_absolute_reference, normalize_id
from schemaservice.schemas import ResolvedSchema, UnresolvedSchema

if TYPE_CHECKING:
    from schemaservice.handle import SchemaDependencies
    from schemaservice.registry import SchemaRegistry

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """Replaces `$ref` keywords with the content they point to."""

    __slots__ = ("_registry",)

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry = registry

    async def resolve(
        self, unresolved: UnresolvedSchema, uri: str, dependencies: SchemaDependencies
    ) -> ResolvedSchema:
        errors = list(unresolved.errors)
        schema = unresolved.schema

        if isinstance(schema, dict):
            dialect = schema.get("$schema")
            if isinstance(dialect, str):
                dialect = normalize_id(dialect)
                if dialect in UNSUPPORTED_DIALECTS:
                    return ResolvedSchema({}, [UNSUPPORTED_DIALECTS[dialect]])
                if dialect in PARTIALLY_SUPPORTED_DIALECTS:
                    errors.append(PARTIALLY_SUPPORTED_DIALECTS[dialect])

        # The loaded schema is shared through its handle and stays untouched
        schema = deepclone(schema)
        resolution = Resolution(self._registry, uri, schema, dependencies, errors)
        await resolution.run()
        return ResolvedSchema(schema, errors)


class Resolution:
    """A single resolution pass over a schema and every document it references.

    Each node is walked at most once per pass, which breaks reference cycles and skips shared subtrees.
    """

    __slots__ = ("registry", "uri", "root", "dependencies", "errors", "seen", "documents")

    def __init__(
        self,
        registry: SchemaRegistry,
        uri: str,
        root: JsonSchema,
        dependencies: SchemaDependencies,
        errors: list[str],
    ) -> None:
        self.registry = registry
        self.uri = uri
        self.root = root
        self.dependencies = dependencies
        self.errors = errors
        self.seen: set[int] = set()
        # Private copies of external documents, merged content may alias them within this pass
        self.documents: dict[str, Any] = {uri: root}

    async def run(self) -> None:
        await self.walk(self.root, self.root, self.uri, self.dependencies)

    async def walk(
        self, node: Any, document: Any, document_uri: str, dependencies: SchemaDependencies
    ) -> None:
        if not isinstance(node, dict):
            return
        pending: list[Awaitable[None]] = []
        stack: list[JsonSchemaObject] = [node]
        while stack:
            current = stack.pop()
            if id(current) in self.seen:
                continue
            self.seen.add(id(current))
            external = self.handle_reference(current, document, document_uri)
            if external is not None:
                reference, fragment = external
                # Children are walked once the external content is merged
                pending.append(self.resolve_external(current, reference, fragment, document_uri, dependencies))
                continue
            collect_subschemas(current, stack)
        if pending:
            await asyncio.gather(*pending)

    def handle_reference(
        self, node: JsonSchemaObject, document: Any, document_uri: str
    ) -> tuple[str, str | None] | None:
        """Merge same-document references into the node.

        Returns the document and fragment parts of the first external reference, if any.
        """
        merged: set[str] = set()
        while REFERENCE_KEY in node:
            reference = node.pop(REFERENCE_KEY)
            if not isinstance(reference, str):
                continue
            target, fragment = split_reference(reference)
            if target:
                return target, fragment
            # Merging may bring another `$ref`, the same one is never merged twice
            if reference not in merged:
                merged.add(reference)
                self.merge(node, document, document_uri, fragment)
        return None

    def merge(
        self,
        node: JsonSchemaObject,
        document: Any,
        document_uri: str,
        fragment: str | None,
        *,
        report_missing: bool = True,
    ) -> None:
        path = decode_fragment(fragment)
        section = find_section(document, path)
        if section is NOT_FOUND:
            if not report_missing:
                return
            message = f"$ref '{path}' in '{document_uri}' can not be resolved."
            logger.debug(message)
            self.errors.append(message)
            return
        merge_missing_keys(node, section)

    async def resolve_external(
        self,
        node: JsonSchemaObject,
        reference: str,
        fragment: str | None,
        parent_uri: str,
        parent_dependencies: SchemaDependencies,
    ) -> None:
        if not is_absolute_reference(reference):
            reference = self.registry.path_resolver.resolve_relative_path(reference, parent_uri)
        uri = normalize_id(reference)
        if uri == self.uri:
            # Absolute reference back into the schema being resolved
            document, dependencies = self.root, self.dependencies
            load_failed = False
        else:
            handle = self.registry.get_or_add_schema_handle(uri)
            unresolved = await handle.get_unresolved_schema()
            parent_dependencies.add(uri)
            self.dependencies.add(uri)
            load_failed = bool(unresolved.errors)
            if load_failed:
                location = f"{uri}#{fragment}" if fragment else uri
                self.errors.append(f"Problems loading reference '{location}': {unresolved.errors[0]}")
            document = self.documents.get(uri)
            if document is None:
                document = self.documents[uri] = deepclone(unresolved.schema)
            dependencies = handle.dependencies
        # A document that failed to load is already reported, its missing sections are not
        self.merge(node, document, uri, fragment, report_missing=not load_failed)
        # The node was only partially processed before the external content became available
        self.seen.discard(id(node))
        await self.walk(node, document, uri, dependencies)


def collect_subschemas(schema: JsonSchemaObject, stack: list[JsonSchemaObject]) -> None:
    for keyword in SINGLE_SUBSCHEMA_KEYWORDS:
        value = schema.get(keyword)
        if isinstance(value, dict):
            stack.append(value)
    for keyword in MAP_SUBSCHEMA_KEYWORDS:
        value = schema.get(keyword)
        if isinstance(value, dict):
            stack.extend(entry for entry in value.values() if isinstance(entry, dict))
    for keyword in ARRAY_SUBSCHEMA_KEYWORDS:
        value = schema.get(keyword)
        if isinstance(value, list):
            stack.extend(entry for entry in value if isinstance(entry, dict))
