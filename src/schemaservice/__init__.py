from __future__ import annotations

from schemaservice.config import ServiceConfig as Config
from schemaservice.core.errors import LoaderError, SchemaServiceError
from schemaservice.core.loaders import SchemaFetcher
from schemaservice.core.version import SCHEMASERVICE_VERSION
from schemaservice.documents import JSONDocument, MatchingSchema
from schemaservice.handle import SchemaHandle
from schemaservice.patterns import FilePatternAssociation, PatternMatcher, compile_patterns
from schemaservice.registry import SchemaAssociation, SchemaContributions, SchemaRegistry
from schemaservice.schemas import ResolvedSchema, UnresolvedSchema

__version__ = SCHEMASERVICE_VERSION

__all__ = [
    "__version__",
    # Registry
    "SchemaRegistry",
    "SchemaHandle",
    "SchemaContributions",
    "SchemaAssociation",
    "Config",
    # Schemas
    "UnresolvedSchema",
    "ResolvedSchema",
    # Associations
    "FilePatternAssociation",
    "PatternMatcher",
    "compile_patterns",
    # Collaborators
    "SchemaFetcher",
    "JSONDocument",
    "MatchingSchema",
    # Errors
    "SchemaServiceError",
    "LoaderError",
]
