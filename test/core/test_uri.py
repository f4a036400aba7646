import pytest

from schemaservice.core.uri import (
    UrlPathResolver,
    get_scheme,
    has_scheme,
    is_absolute_reference,
    normalize_id,
    normalize_resource_for_matching,
    to_display_string,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("http://example.com/schema.json", "http://example.com/schema.json"),
        ("HTTP://Example.COM/Schema.json", "http://example.com/Schema.json"),
        ("http://example.com/schema.json#", "http://example.com/schema.json"),
        ("http://example.com/schema.json?", "http://example.com/schema.json"),
        ("http://example.com/schema.json?v=1#/definitions", "http://example.com/schema.json?v=1#/definitions"),
        ("http://User@Example.com:8080/s.json", "http://User@example.com:8080/s.json"),
        ("file:///C:/Users/schema.json", "file:///c:/Users/schema.json"),
        ("file:///home/User/schema.json", "file:///home/User/schema.json"),
        ("urn:Example:Schema", "urn:Example:Schema"),
        ("schema.json#", "schema.json"),
        ("schema.json", "schema.json"),
        # Dot segments are kept
        ("http://example.com/a/../b.json", "http://example.com/a/../b.json"),
        # Not parseable
        ("http://[::1/schema.json", "http://[::1/schema.json"),
    ],
)
def test_normalize_id(value, expected):
    assert normalize_id(value) == expected


def test_normalize_id_is_idempotent():
    value = normalize_id("HTTP://Example.COM/schema.json#")

    assert normalize_id(value) == value


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("file:///project/data.json?x=1#frag", "file:///project/data.json"),
        ("FILE:///project/data.json", "file:///project/data.json"),
        ("untitled:Untitled-1", "untitled:Untitled-1"),
        ("/project/data.json#x", "/project/data.json"),
    ],
)
def test_normalize_resource_for_matching(value, expected):
    assert normalize_resource_for_matching(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("http://example.com/a.json", True),
        ("file:///a.json", True),
        ("a.json", False),
        ("../a.json", False),
        ("/a.json", False),
        ("urn:example:a", False),
    ],
)
def test_is_absolute_reference(value, expected):
    assert is_absolute_reference(value) is expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("http://example.com/a.json", True),
        ("urn:example:a", True),
        ("a.json", False),
        ("./schemas/a.json", False),
    ],
)
def test_has_scheme(value, expected):
    assert has_scheme(value) is expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("HTTPS://example.com", "https"),
        ("file:///a.json", "file"),
        ("a.json", ""),
        ("http://[::1", ""),
    ],
)
def test_get_scheme(value, expected):
    assert get_scheme(value) == expected


@pytest.mark.parametrize(
    ("reference", "base", "expected"),
    [
        ("b.json", "http://example.com/schemas/a.json", "http://example.com/schemas/b.json"),
        ("../b.json", "http://example.com/schemas/a.json", "http://example.com/b.json"),
        ("/b.json", "http://example.com/schemas/a.json", "http://example.com/b.json"),
        ("b.json", "file:///project/a.json", "file:///project/b.json"),
        ("urn:example:b", "http://example.com/a.json", "urn:example:b"),
    ],
)
def test_resolve_relative_path(reference, base, expected):
    assert UrlPathResolver().resolve_relative_path(reference, base) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("file:///project/schema%20v1.json", "/project/schema v1.json"),
        ("http://example.com/schema.json", "http://example.com/schema.json"),
        ("schema.json", "schema.json"),
    ],
)
def test_to_display_string(value, expected):
    assert to_display_string(value) == expected
