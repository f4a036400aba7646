"""Schema identifiers and resource locations."""

from __future__ import annotations

import re
from typing import Protocol
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit
from urllib.request import url2pathname

# References that carry their own scheme and authority are never resolved against the parent document
ABSOLUTE_REFERENCE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+\-.]*://")
# `$schema` values only need a scheme to be considered absolute
HAS_SCHEME_RE = re.compile(r"^\w[\w\d+.-]*:")
_DRIVE_LETTER_RE = re.compile(r"^/([A-Za-z]):")


class PathResolver(Protocol):
    def resolve_relative_path(self, reference: str, base: str) -> str: ...


class UrlPathResolver:
    """Resolve relative references with the standard URL joining rules."""

    def resolve_relative_path(self, reference: str, base: str) -> str:
        return urljoin(base, reference)


def _split(value: str) -> SplitResult | None:
    try:
        parts = urlsplit(value)
        # Accessing the port validates the authority
        _ = parts.port
    except ValueError:
        return None
    return parts


def _normalize_netloc(netloc: str) -> str:
    userinfo, at, host = netloc.rpartition("@")
    return f"{userinfo}{at}{host.lower()}"


def _normalize_path(scheme: str, path: str) -> str:
    if scheme == "file":
        return _DRIVE_LETTER_RE.sub(lambda match: f"/{match.group(1).lower()}:", path)
    return path


def normalize_id(value: str) -> str:
    """Normalize a schema identifier.

    Lower-cases the scheme, the host and `file` drive letters, and drops empty query and fragment markers.
    Identifiers that can not be parsed are returned unchanged.
    """
    parts = _split(value)
    if parts is None or not parts.scheme:
        return value.rstrip("#") if value.endswith("#") else value
    scheme = parts.scheme.lower()
    return urlunsplit(
        (
            scheme,
            _normalize_netloc(parts.netloc),
            _normalize_path(scheme, parts.path),
            parts.query,
            parts.fragment,
        )
    )


def normalize_resource_for_matching(resource: str) -> str:
    """Normalize a resource location and drop its query and fragment."""
    parts = _split(resource)
    if parts is None:
        return resource
    if not parts.scheme:
        return urlunsplit(("", parts.netloc, parts.path, "", ""))
    scheme = parts.scheme.lower()
    return urlunsplit((scheme, _normalize_netloc(parts.netloc), _normalize_path(scheme, parts.path), "", ""))


def is_absolute_reference(reference: str) -> bool:
    return ABSOLUTE_REFERENCE_RE.match(reference) is not None


def has_scheme(value: str) -> bool:
    return HAS_SCHEME_RE.match(value) is not None


def get_scheme(value: str) -> str:
    parts = _split(value)
    if parts is None:
        return ""
    return parts.scheme.lower()


def file_uri_to_path(uri: str) -> str:
    parts = urlsplit(uri)
    path = url2pathname(parts.path)
    if parts.netloc and parts.netloc != "localhost":
        # UNC share
        return f"//{parts.netloc}{path}"
    return path


def to_display_string(uri: str) -> str:
    """Show `file` identifiers as filesystem paths."""
    parts = _split(uri)
    if parts is not None and parts.scheme.lower() == "file":
        return file_uri_to_path(uri)
    return uri
