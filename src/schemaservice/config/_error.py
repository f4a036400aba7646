from __future__ import annotations

import difflib
from typing import TYPE_CHECKING

from schemaservice.core.errors import SchemaServiceError

if TYPE_CHECKING:
    from jsonschema import ValidationError


class ConfigError(SchemaServiceError):
    """Invalid configuration."""

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> ConfigError:
        message = error.message
        if error.validator == "required":
            message = _format_required_error(error)
        elif error.validator == "type":
            message = _format_type_error(error)
        elif error.validator in ("minimum", "exclusiveMinimum", "minLength"):
            message = _format_bound_error(error)
        elif error.validator == "additionalProperties":
            message = _format_additional_properties_error(error)
        return cls(message)


def _format_required_error(error: ValidationError) -> str:
    assert isinstance(error.validator_value, list)
    missing_keys = sorted(set(error.validator_value) - set(error.instance))

    section = path_to_section_name(list(error.path))

    details = "\n".join(f"  - '{key}'" for key in missing_keys)
    return f"Error in {section} section:\n  Missing required properties:\n\n{details}\n\n"


def _format_type_error(error: ValidationError) -> str:
    expected = error.validator_value
    assert isinstance(expected, (str, list))
    section = path_to_section_name(list(error.path)[:-1] if error.path else [])
    name = error.path[-1] if error.path else "value"

    type_phrases = {
        "object": "an object",
        "array": "an array",
        "number": "a number",
        "boolean": "a boolean",
        "string": "a string",
    }
    if isinstance(expected, list):
        requirement = " or ".join(type_phrases.get(item, item) for item in expected)
    else:
        requirement = type_phrases.get(expected, expected)
    return (
        f"Error in {section} section:\n  Type error:\n\n"
        f"  - '{name}' -> Must be {requirement}, but got {error.instance!r}."
    )


def _format_bound_error(error: ValidationError) -> str:
    section = path_to_section_name(list(error.path)[:-1] if error.path else [])
    name = error.path[-1] if error.path else "value"
    bound = error.validator_value
    if error.validator == "exclusiveMinimum":
        requirement = f"greater than {bound}"
    elif error.validator == "minLength":
        requirement = f"at least {bound} characters long"
    else:
        requirement = f"at least {bound}"
    return (
        f"Error in {section} section:\n  Value too low:\n\n"
        f"  - '{name}' -> Must be {requirement}, but got {error.instance!r}."
    )


def _format_additional_properties_error(error: ValidationError) -> str:
    valid = list(error.schema.get("properties", {}))
    unknown = sorted(set(error.instance) - set(valid))
    valid_list = ", ".join(f"'{prop}'" for prop in valid)
    section = path_to_section_name(list(error.path))

    details = []
    for prop in unknown:
        match = _find_closest_match(prop, valid)
        if match:
            details.append(f"- '{prop}' -> Did you mean '{match}'?")
        else:
            details.append(f"- '{prop}'")

    return (
        f"Error in {section} section:\n  Unknown properties:\n\n"
        + "\n".join(f"  {detail}" for detail in details)
        + f"\n\nValid properties for {section} are: {valid_list}."
    )


def path_to_section_name(path: list[int | str]) -> str:
    """Convert a JSON path to a TOML-like section name."""
    if not path:
        return "root"

    return f"[{'.'.join(str(p) for p in path)}]"


def _find_closest_match(value: str, variants: list[str]) -> str | None:
    matches = difflib.get_close_matches(value, variants, n=1, cutoff=0.6)
    return matches[0] if matches else None
