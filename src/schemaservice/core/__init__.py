from __future__ import annotations

import asyncio
from typing import TypeVar

T = TypeVar("T")

# Scheme of identifiers that the registry creates for its own synthetic schemas
INTERNAL_SCHEME = "schemaservice"
# Hosts are lower-case, so the identifiers are stable under normalization
COMBINED_SCHEMA_PREFIX = f"{INTERNAL_SCHEME}://combinedschema/"
MATCHING_SCHEMA_PREFIX = f"{INTERNAL_SCHEME}://untitled/matchingschemas/"


def completed(value: T) -> asyncio.Future[T]:
    """Wrap a ready value into an already finished future bound to the running loop."""
    future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future
