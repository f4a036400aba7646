"""Base error handling shared by the registry, the loaders and the CLI."""

from __future__ import annotations

import enum
import re
import traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import RequestException


class SchemaServiceError(Exception):
    """Base exception class for all schemaservice errors."""


class LoaderErrorKind(str, enum.Enum):
    # Connection related issues
    CONNECTION_SSL = "connection_ssl"
    CONNECTION_OTHER = "connection_other"
    NETWORK_OTHER = "network_other"
    INVALID_CERTIFICATE = "invalid_certificate"

    # HTTP error codes
    HTTP_SERVER_ERROR = "http_server_error"
    HTTP_CLIENT_ERROR = "http_client_error"
    HTTP_NOT_FOUND = "http_not_found"
    HTTP_FORBIDDEN = "http_forbidden"

    # Local files
    FILE_NOT_FOUND = "file_not_found"
    FILE_UNREADABLE = "file_unreadable"

    UNSUPPORTED_SCHEME = "unsupported_scheme"

    # Unclassified
    UNCLASSIFIED = "unclassified"


class LoaderError(SchemaServiceError):
    """Failed to fetch a schema document."""

    def __init__(
        self,
        kind: LoaderErrorKind,
        message: str,
        url: str | None = None,
        extras: list[str] | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.url = url
        self.extras = extras or []

    def __str__(self) -> str:
        return self.message


def get_request_error_extras(exc: RequestException) -> list[str]:
    """Extract additional context from a request exception."""
    from requests.exceptions import ChunkedEncodingError, ConnectionError, SSLError
    from urllib3.exceptions import MaxRetryError

    if isinstance(exc, SSLError):
        reason = str(exc.args[0].reason)
        return [_remove_ssl_line_number(reason).strip()]
    if isinstance(exc, ConnectionError):
        inner = exc.args[0]
        if isinstance(inner, MaxRetryError) and inner.reason is not None:
            arg = inner.reason.args[0]
            if isinstance(arg, str):
                if ":" not in arg:
                    reason = arg
                else:
                    _, reason = arg.split(":", maxsplit=1)
            else:
                reason = f"Max retries exceeded with url: {inner.url}"
            return [reason.strip()]
        return [" ".join(map(_clean_inner_request_message, inner.args))]
    if isinstance(exc, ChunkedEncodingError):
        args = exc.args[0].args
        if len(args) == 1:
            return [str(args[0])]
        return [str(args[1])]
    return []


def _remove_ssl_line_number(text: str) -> str:
    return re.sub(r"\(_ssl\.c:\d+\)", "", text)


def _clean_inner_request_message(message: object) -> str:
    if isinstance(message, str) and message.startswith("HTTPConnectionPool"):
        return re.sub(r"HTTPConnectionPool\(.+?\): ", "", message).rstrip(".")
    return str(message)


def get_request_error_message(exc: RequestException) -> str:
    """Extract user-facing message from a request exception."""
    from requests.exceptions import ChunkedEncodingError, ConnectionError, ReadTimeout, SSLError

    if isinstance(exc, ReadTimeout):
        _, duration = exc.args[0].args[0][:-1].split("read timeout=")
        return f"Read timed out after {duration} seconds"
    if isinstance(exc, SSLError):
        return "SSL verification problem"
    if isinstance(exc, ConnectionError):
        return "Connection failed"
    if isinstance(exc, ChunkedEncodingError):
        return "Connection broken. The server declared chunked encoding but sent an invalid chunk"
    return str(exc)


def get_load_failure_reason(error: BaseException) -> str:
    """Condense a fetch failure into a short reason suitable for an error list.

    The location is reported by the caller, so only the part after the first `...Error: ` prefix is kept.
    """
    message = str(error) or type(error).__name__
    if isinstance(error, LoaderError) and error.extras:
        message = f"{message} ({'; '.join(error.extras)})"
    _, separator, rest = message.partition("Error: ")
    if separator and rest:
        message = rest
    return message.rstrip(".")


def format_exception(error: BaseException, *, with_traceback: bool = False) -> str:
    """Format exception with optional traceback."""
    if not with_traceback:
        lines = traceback.format_exception_only(type(error), error)
        return "".join(lines).strip()
    lines = traceback.format_exception(type(error), error, error.__traceback__)
    return "".join(lines).strip()
