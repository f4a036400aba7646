from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from schemaservice.core import completed
from schemaservice.core.jsonschema import JsonSchema
from schemaservice.schemas import ResolvedSchema, UnresolvedSchema

if TYPE_CHECKING:
    from schemaservice.registry import SchemaRegistry

# Identifiers of other schemas reached while resolving a schema
SchemaDependencies = set[str]


class SchemaHandle:
    """Memoized unresolved and resolved forms of a single schema.

    Both forms are shared futures: concurrent callers wait for the same load and the same resolution.
    Creating them requires a running event loop.
    """

    __slots__ = ("uri", "dependencies", "_registry", "_content", "_unresolved", "_resolved")

    def __init__(self, registry: SchemaRegistry, uri: str, content: JsonSchema | None = None) -> None:
        self.uri = uri
        self.dependencies: SchemaDependencies = set()
        self._registry = registry
        # Inline content replaces loading through the transport
        self._content = content
        self._unresolved: asyncio.Future[UnresolvedSchema] | None = None
        self._resolved: asyncio.Future[ResolvedSchema] | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(uri={self.uri!r})"

    @property
    def is_cached(self) -> bool:
        return self._unresolved is not None or self._resolved is not None

    def get_unresolved_schema(self) -> asyncio.Future[UnresolvedSchema]:
        if self._unresolved is None:
            if self._content is not None:
                self._unresolved = completed(UnresolvedSchema(self._content))
            else:
                self._unresolved = asyncio.ensure_future(self._registry.load_schema(self.uri))
        return self._unresolved

    def get_resolved_schema(self) -> asyncio.Future[ResolvedSchema]:
        if self._resolved is None:
            self._resolved = asyncio.ensure_future(self._resolve())
        return self._resolved

    async def _resolve(self) -> ResolvedSchema:
        unresolved = await self.get_unresolved_schema()
        return await self._registry.resolver.resolve(unresolved, self.uri, self.dependencies)

    def invalidate(self) -> bool:
        """Drop the memoized forms and dependencies; report whether anything was cached."""
        has_changes = self.is_cached
        self._unresolved = None
        self._resolved = None
        self.dependencies.clear()
        return has_changes
