from __future__ import annotations

import json
from typing import Any

import pytest
from hypothesis import settings

from schemaservice.core.errors import LoaderError, LoaderErrorKind
from schemaservice.registry import SchemaRegistry

# Register Hypothesis profile. Could be used as
# `pytest test --hypothesis-profile <profile-name>`
settings.register_profile("CI", max_examples=1000)

BASE_URI = "http://example.com"


class StaticFetch:
    """Serves schema documents from memory and records every requested URI."""

    def __init__(self, documents: dict[str, Any]) -> None:
        self.documents = documents
        self.calls: list[str] = []

    async def __call__(self, uri: str) -> str | None:
        self.calls.append(uri)
        if uri not in self.documents:
            raise LoaderError(
                kind=LoaderErrorKind.HTTP_NOT_FOUND,
                message="Failed to load schema due to client error (HTTP 404 Not Found)",
                url=uri,
            )
        value = self.documents[uri]
        if isinstance(value, BaseException):
            raise value
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value)


@pytest.fixture
def documents():
    return {}


@pytest.fixture
def fetch(documents):
    return StaticFetch(documents)


@pytest.fixture
def registry(fetch):
    return SchemaRegistry(fetch=fetch)


@pytest.fixture
def uri():
    def inner(path: str) -> str:
        return f"{BASE_URI}/{path}"

    return inner
