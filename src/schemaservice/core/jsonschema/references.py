from __future__ import annotations

from typing import Any, overload
from urllib.parse import unquote

from schemaservice.core.jsonschema.types import JsonSchemaObject

REFERENCE_KEY = "$ref"
NOT_FOUND = object()


def split_reference(reference: str) -> tuple[str, str | None]:
    """Split a `$ref` value into the document part and the fragment part."""
    document, separator, fragment = reference.partition("#")
    return document, fragment if separator else None


def decode_fragment(fragment: str | None) -> str | None:
    if not fragment:
        return None
    return unquote(fragment)


def unescape_segment(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def is_index(segment: str) -> bool:
    """Whether the segment is a plain ASCII array index."""
    return segment.isascii() and segment.isdigit()


def find_section(document: Any, path: str | None) -> Any:
    """Locate a section of the document by a slash-separated pointer.

    Returns `NOT_FOUND` if any segment is missing.
    """
    if not path:
        return document
    if path.startswith("/"):
        path = path[1:]
    current = document
    for segment in path.split("/"):
        segment = unescape_segment(segment)
        if isinstance(current, dict):
            if segment not in current:
                return NOT_FOUND
            current = current[segment]
        elif isinstance(current, list):
            if not is_index(segment) or int(segment) >= len(current):
                return NOT_FOUND
            current = current[int(segment)]
        else:
            return NOT_FOUND
        if current is None:
            return NOT_FOUND
    return current


def merge_missing_keys(target: JsonSchemaObject, section: Any) -> None:
    """Copy every key of `section` that `target` does not define yet."""
    if not isinstance(section, dict):
        return
    for key, value in section.items():
        if key not in target:
            target[key] = value


@overload
def deepclone(value: dict) -> dict: ...  # pragma: no cover


@overload
def deepclone(value: list) -> list: ...  # pragma: no cover


@overload
def deepclone(value: Any) -> Any: ...  # pragma: no cover


def deepclone(value: Any) -> Any:
    """A specialized version of `deepcopy` that copies only `dict` and `list`.

    Shared subtrees are copied once, so aliasing inside the source document is preserved in the copy.
    """
    memo: dict[int, Any] = {}

    def clone(item: Any) -> Any:
        if isinstance(item, dict):
            copied = memo.get(id(item))
            if copied is None:
                copied = memo[id(item)] = {}
                for key, nested in item.items():
                    copied[key] = clone(nested)
            return copied
        if isinstance(item, list):
            copied = memo.get(id(item))
            if copied is None:
                copied = memo[id(item)] = []
                copied.extend(clone(nested) for nested in item)
            return copied
        return item

    return clone(value)
