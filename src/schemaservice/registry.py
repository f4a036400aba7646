"""Registry of schemas and the resources they apply to."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import quote

from schemaservice.core import COMBINED_SCHEMA_PREFIX, INTERNAL_SCHEME, MATCHING_SCHEMA_PREFIX, completed, json
from schemaservice.core.errors import get_load_failure_reason
from schemaservice.core.jsonschema import JsonSchema
from schemaservice.core.uri import (
    PathResolver,
    UrlPathResolver,
    get_scheme,
    has_scheme,
    normalize_id,
    normalize_resource_for_matching,
    to_display_string,
)
from schemaservice.documents import MatchingSchema, get_schema_from_property
from schemaservice.handle import SchemaHandle
from schemaservice.patterns import FilePatternAssociation
from schemaservice.resolver import ReferenceResolver
from schemaservice.schemas import ResolvedSchema, UnresolvedSchema

if TYPE_CHECKING:
    from schemaservice.core.loaders import Fetch
    from schemaservice.documents import MatchableDocument, ParsedDocument, TextDocument

logger = logging.getLogger(__name__)


@dataclass
class SchemaAssociation:
    pattern: list[str]
    uris: list[str]

    __slots__ = ("pattern", "uris")


@dataclass
class SchemaContributions:
    """Schemas and associations that are built into the host."""

    schemas: dict[str, JsonSchema] = field(default_factory=dict)
    schema_associations: list[SchemaAssociation] = field(default_factory=list)


@dataclass
class CachedResourceSchema:
    resource: str
    resolved_schema: asyncio.Future[ResolvedSchema | None]

    __slots__ = ("resource", "resolved_schema")


class SchemaRegistry:
    """Owns schema handles and file pattern associations.

    All mutations are expected to happen from a single control flow, there is no locking.
    """

    def __init__(
        self,
        fetch: Fetch | None = None,
        path_resolver: PathResolver | None = None,
    ) -> None:
        self.fetch = fetch
        self.path_resolver = path_resolver or UrlPathResolver()
        self.resolver = ReferenceResolver(self)

        self._contribution_schemas: dict[str, SchemaHandle] = {}
        self._contribution_associations: list[FilePatternAssociation] = []

        self._schemas_by_id: dict[str, SchemaHandle] = {}
        self._file_pattern_associations: list[FilePatternAssociation] = []
        self._registered_schema_ids: dict[str, bool] = {}
        self._external_schema_ids: set[str] = set()

        self._cached_schema_for_resource: CachedResourceSchema | None = None
        self._call_on_dispose: list[Callable[[], None]] = []
        self._matching_schema_counter = itertools.count()

    def add_dispose_callback(self, callback: Callable[[], None]) -> None:
        self._call_on_dispose.append(callback)

    def dispose(self) -> None:
        while self._call_on_dispose:
            self._call_on_dispose.pop()()

    def get_registered_schema_ids(self, scheme_filter: Callable[[str], bool] | None = None) -> list[str]:
        """Identifiers of registered schemas, optionally filtered by their URI scheme."""
        ids = []
        for schema_id in self._registered_schema_ids:
            scheme = get_scheme(schema_id)
            if scheme != INTERNAL_SCHEME and (scheme_filter is None or scheme_filter(scheme)):
                ids.append(schema_id)
        return ids

    def _invalidate_resource_cache(self) -> None:
        self._cached_schema_for_resource = None

    def on_resource_change(self, uri: str) -> bool:
        """Invalidate the schema with the given identifier and every schema that depends on it.

        Returns `True` if any cached schema was dropped.
        """
        self._invalidate_resource_cache()

        has_changes = False
        uri = normalize_id(uri)
        to_walk = [uri]
        remaining = dict(self._schemas_by_id)

        while to_walk:
            current = to_walk.pop()
            for schema_id, handle in list(remaining.items()):
                if handle.uri == current or current in handle.dependencies:
                    if handle.uri != current:
                        to_walk.append(handle.uri)
                    if handle.invalidate():
                        logger.debug("Invalidated schema %s", handle.uri)
                        has_changes = True
                    del remaining[schema_id]
        return has_changes

    def set_schema_contributions(self, contributions: SchemaContributions) -> None:
        """Replace the built-in schemas and associations."""
        self._invalidate_resource_cache()
        contributed_ids = {normalize_id(schema_id) for schema_id in contributions.schemas}
        stale = {id(association) for association in self._contribution_associations}
        self._file_pattern_associations = [
            association for association in self._file_pattern_associations if id(association) not in stale
        ]
        previous = self._contribution_schemas
        self._contribution_schemas = {}
        self._contribution_associations = []
        for schema_id in previous:
            # Schemas built on top of the old content must be resolved again
            self.on_resource_change(schema_id)
            if schema_id not in self._external_schema_ids and schema_id not in contributed_ids:
                self._registered_schema_ids.pop(schema_id, None)
                self._schemas_by_id.pop(schema_id, None)

        for schema_id, content in contributions.schemas.items():
            normalized_id = normalize_id(schema_id)
            self._contribution_schemas[normalized_id] = self._add_schema_handle(normalized_id, content)
            self._registered_schema_ids[normalized_id] = True
        for schema_association in contributions.schema_associations:
            uris = [normalize_id(uri) for uri in schema_association.uris]
            association = self._add_file_pattern_association(schema_association.pattern, uris)
            self._contribution_associations.append(association)

    def _add_schema_handle(self, schema_id: str, content: JsonSchema | None = None) -> SchemaHandle:
        handle = SchemaHandle(self, schema_id, content)
        self._schemas_by_id[schema_id] = handle
        return handle

    def get_or_add_schema_handle(self, schema_id: str, content: JsonSchema | None = None) -> SchemaHandle:
        handle = self._schemas_by_id.get(schema_id)
        if handle is None:
            handle = self._add_schema_handle(schema_id, content)
        return handle

    def _add_file_pattern_association(self, pattern: Sequence[str], uris: list[str]) -> FilePatternAssociation:
        association = FilePatternAssociation(pattern, uris)
        self._file_pattern_associations.append(association)
        return association

    def register_external_schema(
        self,
        uri: str,
        file_patterns: Sequence[str] | None = None,
        unresolved_content: JsonSchema | None = None,
    ) -> SchemaHandle:
        """Register a schema, optionally with the patterns of files it applies to and its content."""
        schema_id = normalize_id(uri)
        self._registered_schema_ids[schema_id] = True
        self._external_schema_ids.add(schema_id)
        self._invalidate_resource_cache()

        if file_patterns:
            self._add_file_pattern_association(file_patterns, [schema_id])
        if unresolved_content is not None:
            return self._add_schema_handle(schema_id, unresolved_content)
        return self.get_or_add_schema_handle(schema_id)

    def unregister_external_schema(self, uri: str) -> bool:
        """Remove a registered schema and its file pattern associations.

        Contributed schemas are kept. Returns `True` if the schema was registered.
        """
        schema_id = normalize_id(uri)
        if schema_id not in self._registered_schema_ids:
            return False
        # Schemas that reference the removed one must be resolved again
        self.on_resource_change(schema_id)
        contributed = set(map(id, self._contribution_associations))
        associations = []
        for association in self._file_pattern_associations:
            if id(association) not in contributed and schema_id in association.uris:
                association.uris = [other for other in association.uris if other != schema_id]
                if not association.uris:
                    continue
            associations.append(association)
        self._file_pattern_associations = associations
        self._external_schema_ids.discard(schema_id)
        if schema_id not in self._contribution_schemas:
            del self._registered_schema_ids[schema_id]
            self._schemas_by_id.pop(schema_id, None)
        return True

    def clear_external_schemas(self) -> None:
        """Forget external schemas and associations, keeping the contributed ones."""
        self._schemas_by_id = {}
        self._file_pattern_associations = []
        self._registered_schema_ids = {}
        self._external_schema_ids = set()
        self._invalidate_resource_cache()

        for schema_id, handle in self._contribution_schemas.items():
            self._schemas_by_id[schema_id] = handle
            self._registered_schema_ids[schema_id] = True
        self._file_pattern_associations.extend(self._contribution_associations)

    def get_resolved_schema(self, schema_id: str) -> asyncio.Future[ResolvedSchema | None]:
        handle = self._schemas_by_id.get(normalize_id(schema_id))
        if handle is not None:
            return handle.get_resolved_schema()
        return completed(None)

    async def load_schema(self, uri: str) -> UnresolvedSchema:
        """Fetch and parse a schema document.

        Failures never propagate, they are reported in the errors of the returned schema.
        """
        display = to_display_string(uri)
        if self.fetch is None:
            message = f"Unable to load schema from '{display}'. No schema request service available"
            return UnresolvedSchema({}, [message])
        try:
            content = await self.fetch(uri)
        except Exception as exc:
            logger.debug("Failed to fetch %s", uri, exc_info=True)
            reason = get_load_failure_reason(exc)
            return UnresolvedSchema({}, [f"Unable to load schema from '{display}': {reason}."])
        if not content:
            return UnresolvedSchema({}, [f"Unable to load schema from '{display}': No content."])
        try:
            schema = json.loads(content)
        except json.JSONDecodeError as exc:
            offset = json.get_error_offset(exc)
            return UnresolvedSchema({}, [f"Unable to parse content from '{display}': Parse error at offset {offset}."])
        return UnresolvedSchema(schema)

    def _get_schema_from_property(self, resource: str, document: ParsedDocument) -> str | None:
        schema_id = get_schema_from_property(document)
        if schema_id is not None and not has_scheme(schema_id):
            schema_id = self.path_resolver.resolve_relative_path(schema_id, resource)
        return schema_id

    def _get_associated_schemas(self, resource: str) -> list[str]:
        schemas: list[str] = []
        seen: set[str] = set()
        normalized_resource = normalize_resource_for_matching(resource)
        for association in self._file_pattern_associations:
            if association.matches_pattern(normalized_resource):
                for schema_id in association.uris:
                    if schema_id not in seen:
                        schemas.append(schema_id)
                        seen.add(schema_id)
        return schemas

    def get_schema_uris_for_resource(self, resource: str, document: ParsedDocument | None = None) -> list[str]:
        if document is not None:
            schema_id = self._get_schema_from_property(resource, document)
            if schema_id is not None:
                return [schema_id]
        return self._get_associated_schemas(resource)

    def get_schema_for_resource(
        self, resource: str, document: ParsedDocument | None = None
    ) -> asyncio.Future[ResolvedSchema | None]:
        """Resolve the schema that applies to the resource.

        A `$schema` property in the document takes precedence over file pattern associations.
        """
        if document is not None:
            schema_id = self._get_schema_from_property(resource, document)
            if schema_id is not None:
                return self.get_or_add_schema_handle(normalize_id(schema_id)).get_resolved_schema()

        cached = self._cached_schema_for_resource
        if cached is not None and cached.resource == resource:
            return cached.resolved_schema

        schemas = self._get_associated_schemas(resource)
        resolved_schema: asyncio.Future[ResolvedSchema | None]
        if schemas:
            resolved_schema = self._create_combined_schema(resource, schemas).get_resolved_schema()  # type: ignore[assignment]
        else:
            resolved_schema = completed(None)
        self._cached_schema_for_resource = CachedResourceSchema(resource=resource, resolved_schema=resolved_schema)
        return resolved_schema

    def _create_combined_schema(self, resource: str, schema_ids: list[str]) -> SchemaHandle:
        if len(schema_ids) == 1:
            return self.get_or_add_schema_handle(schema_ids[0])
        combined_schema_id = COMBINED_SCHEMA_PREFIX + quote(resource, safe="")
        combined_schema = {"allOf": [{"$ref": schema_id} for schema_id in schema_ids]}
        return self._add_schema_handle(combined_schema_id, combined_schema)

    async def get_matching_schemas(
        self, document: TextDocument, parsed_document: MatchableDocument, schema: JsonSchema | None = None
    ) -> list[MatchingSchema]:
        """Subschemas that apply to the nodes of the parsed document."""
        if schema is not None:
            schema_id = schema.get("id") if isinstance(schema, dict) else None
            if not isinstance(schema_id, str):
                schema_id = f"{MATCHING_SCHEMA_PREFIX}{next(self._matching_schema_counter)}"
            resolved = await self.resolver.resolve(UnresolvedSchema(schema), schema_id, set())
        else:
            resolved = await self.get_schema_for_resource(document.uri, parsed_document)
            if resolved is None:
                return []
        return [match for match in parsed_document.get_matching_schemas(resolved.schema) if not match.inverted]
