import json

import pytest
import requests

from schemaservice.core.errors import LoaderError, LoaderErrorKind
from schemaservice.core.loaders import USER_AGENT, SchemaFetcher, load_file_uri, load_from_url, prepare_request_kwargs
from schemaservice.registry import SchemaRegistry


@pytest.fixture
def fetcher():
    fetcher = SchemaFetcher(timeout=5)
    yield fetcher
    fetcher.close()


@pytest.mark.asyncio
async def test_fetch_over_http(httpserver, fetcher):
    httpserver.expect_request("/schema.json", headers={"User-Agent": USER_AGENT}).respond_with_json(
        {"type": "object"}
    )

    content = await fetcher(httpserver.url_for("/schema.json"))

    assert json.loads(content) == {"type": "object"}


@pytest.mark.asyncio
async def test_custom_headers(httpserver):
    httpserver.expect_request("/schema.json", headers={"Authorization": "Bearer secret"}).respond_with_data("{}")
    fetcher = SchemaFetcher(headers={"Authorization": "Bearer secret"})

    try:
        assert await fetcher(httpserver.url_for("/schema.json")) == "{}"
    finally:
        fetcher.close()


@pytest.mark.parametrize(
    ("status", "kind", "message"),
    [
        (404, LoaderErrorKind.HTTP_NOT_FOUND, "Failed to load schema due to client error (HTTP 404 Not Found)"),
        (403, LoaderErrorKind.HTTP_FORBIDDEN, "Failed to load schema due to client error (HTTP 403 Forbidden)"),
        (409, LoaderErrorKind.HTTP_CLIENT_ERROR, "Failed to load schema due to client error (HTTP 409 Conflict)"),
        (
            500,
            LoaderErrorKind.HTTP_SERVER_ERROR,
            "Failed to load schema due to server error (HTTP 500 Internal Server Error)",
        ),
    ],
)
@pytest.mark.asyncio
async def test_http_errors(httpserver, fetcher, status, kind, message):
    httpserver.expect_request("/schema.json").respond_with_data("", status=status)

    with pytest.raises(LoaderError) as exc:
        await fetcher(httpserver.url_for("/schema.json"))

    assert exc.value.kind == kind
    assert exc.value.message == message
    assert exc.value.url == httpserver.url_for("/schema.json")


@pytest.mark.asyncio
async def test_connection_error(fetcher):
    with pytest.raises(LoaderError) as exc:
        await fetcher("http://127.0.0.1:1/schema.json")

    assert exc.value.kind == LoaderErrorKind.CONNECTION_OTHER
    assert exc.value.message == "Connection failed"


@pytest.mark.asyncio
async def test_registry_reports_http_errors(httpserver, fetcher):
    httpserver.expect_request("/missing.json").respond_with_data("Not here", status=404)
    registry = SchemaRegistry(fetch=fetcher)
    location = httpserver.url_for("/missing.json")

    unresolved = await registry.load_schema(location)

    assert unresolved.errors == [
        f"Unable to load schema from '{location}': Failed to load schema due to client error (HTTP 404 Not Found)."
    ]


@pytest.mark.asyncio
async def test_resolve_remote_references(httpserver, fetcher):
    httpserver.expect_request("/schemas/root.json").respond_with_json(
        {"properties": {"item": {"$ref": "types.json#/definitions/item"}}}
    )
    httpserver.expect_request("/schemas/types.json").respond_with_data(
        '{"definitions": {"item": {"type": "integer",},}, // JSONC is accepted\n}'
    )
    registry = SchemaRegistry(fetch=fetcher)
    location = httpserver.url_for("/schemas/root.json")
    registry.register_external_schema(location, ["*.json"])

    resolved = await registry.get_schema_for_resource("file:///project/data.json")

    assert resolved.errors == []
    assert resolved.schema == {"properties": {"item": {"type": "integer"}}}


@pytest.mark.asyncio
async def test_fetch_file(tmp_path, fetcher):
    path = tmp_path / "schema.json"
    path.write_text('{"type": "string"}', encoding="utf-8")

    assert await fetcher(path.as_uri()) == '{"type": "string"}'


@pytest.mark.asyncio
async def test_fetch_missing_file(tmp_path, fetcher):
    path = tmp_path / "missing.json"

    with pytest.raises(LoaderError) as exc:
        await fetcher(path.as_uri())

    assert exc.value.kind == LoaderErrorKind.FILE_NOT_FOUND
    assert exc.value.message == f"File not found: {path}"


def test_unreadable_file(tmp_path):
    with pytest.raises(LoaderError) as exc:
        load_file_uri(tmp_path.as_uri())

    assert exc.value.kind == LoaderErrorKind.FILE_UNREADABLE


@pytest.mark.parametrize(
    ("uri", "message"),
    [("ftp://example.com/schema.json", "Unsupported URI scheme `ftp`"), ("schema.json", "URI has no scheme")],
)
@pytest.mark.asyncio
async def test_unsupported_scheme(fetcher, uri, message):
    with pytest.raises(LoaderError) as exc:
        await fetcher(uri)

    assert exc.value.kind == LoaderErrorKind.UNSUPPORTED_SCHEME
    assert str(exc.value) == message


@pytest.mark.parametrize(
    ("headers", "expected"),
    [
        ({}, {"User-Agent": USER_AGENT}),
        ({"user-agent": "Custom"}, {"user-agent": "Custom"}),
        ({"X-Token": "1"}, {"X-Token": "1", "User-Agent": USER_AGENT}),
    ],
)
def test_prepare_request_kwargs(headers, expected):
    kwargs = {"headers": headers}

    prepare_request_kwargs(kwargs)

    assert kwargs["headers"] == expected


def test_wait_for_schema_retries_connection_errors():
    calls = []

    def func(url, **kwargs):
        calls.append(url)
        if len(calls) < 3:
            raise requests.exceptions.ConnectionError(OSError("Refused"))
        response = requests.Response()
        response.status_code = 200
        response._content = b"{}"
        response.encoding = "utf-8"
        return response

    response = load_from_url(func, url="http://127.0.0.1/schema.json", wait_for_schema=5)

    assert response.text == "{}"
    assert len(calls) == 3


def test_without_wait_for_schema_connection_errors_are_raised():
    def func(url, **kwargs):
        raise requests.exceptions.ConnectionError(OSError("Refused"))

    with pytest.raises(LoaderError) as exc:
        load_from_url(func, url="http://127.0.0.1/schema.json")

    assert exc.value.kind == LoaderErrorKind.CONNECTION_OTHER
