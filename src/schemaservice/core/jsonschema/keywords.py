"""Keywords that the reference resolver follows while walking a schema."""

# Keywords holding a single subschema
SINGLE_SUBSCHEMA_KEYWORDS = (
    "items",
    "additionalItems",
    "additionalProperties",
    "not",
    "contains",
    "propertyNames",
    "if",
    "then",
    "else",
)
# Keywords holding a mapping of names to subschemas
MAP_SUBSCHEMA_KEYWORDS = ("definitions", "properties", "patternProperties", "dependencies")
# Keywords holding a list of subschemas
ARRAY_SUBSCHEMA_KEYWORDS = ("anyOf", "allOf", "oneOf", "items")

DRAFT_03 = "http://json-schema.org/draft-03/schema"
DRAFT_2019_09 = "https://json-schema.org/draft/2019-09/schema"
DRAFT_2020_12 = "https://json-schema.org/draft/2020-12/schema"

UNSUPPORTED_DIALECTS = {DRAFT_03: "Draft-03 schemas are not supported."}
PARTIALLY_SUPPORTED_DIALECTS = {
    DRAFT_2019_09: "Draft 2019-09 schemas are not yet fully supported.",
    DRAFT_2020_12: "Draft 2020-12 schemas are not yet fully supported.",
}
