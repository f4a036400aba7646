from typing import Any

JsonSchemaObject = dict[str, Any]
JsonSchema = JsonSchemaObject | bool


def as_schema_object(schema: Any) -> JsonSchemaObject | None:
    """Convert boolean schemas to their object equivalents."""
    if schema is True:
        return {}
    if schema is False:
        return {"not": {}}
    if isinstance(schema, dict):
        return schema
    return None
