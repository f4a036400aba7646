from .references import (
    NOT_FOUND,
    REFERENCE_KEY,
    deepclone,
    find_section,
    is_index,
    merge_missing_keys,
    split_reference,
)
from .types import JsonSchema, JsonSchemaObject, as_schema_object

__all__ = [
    "NOT_FOUND",
    "REFERENCE_KEY",
    "JsonSchema",
    "JsonSchemaObject",
    "as_schema_object",
    "deepclone",
    "find_section",
    "is_index",
    "merge_missing_keys",
    "split_reference",
]
