"""Default transport for fetching schema documents."""

from __future__ import annotations

import asyncio
import http.client
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, NoReturn

from schemaservice.core.errors import LoaderError, LoaderErrorKind, get_request_error_extras, get_request_error_message
from schemaservice.core.uri import file_uri_to_path, get_scheme
from schemaservice.core.version import SCHEMASERVICE_VERSION

if TYPE_CHECKING:
    import requests

logger = logging.getLogger(__name__)

USER_AGENT = f"schemaservice/{SCHEMASERVICE_VERSION}"
DEFAULT_RESPONSE_TIMEOUT = 10
WAIT_FOR_SCHEMA_INTERVAL = 0.05

# Returns the document text, or `None` / empty string when there is no content
Fetch = Callable[[str], Awaitable["str | None"]]


def prepare_request_kwargs(kwargs: dict[str, Any]) -> None:
    """Prepare common request kwargs."""
    headers = kwargs.setdefault("headers", {})
    if "user-agent" not in {header.lower() for header in headers}:
        kwargs["headers"]["User-Agent"] = USER_AGENT


def handle_request_error(exc: requests.RequestException) -> NoReturn:
    """Handle request-level errors."""
    import requests

    url = exc.request.url if exc.request is not None else None
    if isinstance(exc, requests.exceptions.SSLError):
        kind = LoaderErrorKind.CONNECTION_SSL
    elif isinstance(exc, requests.exceptions.ConnectionError):
        kind = LoaderErrorKind.CONNECTION_OTHER
    else:
        kind = LoaderErrorKind.NETWORK_OTHER
    raise LoaderError(
        message=get_request_error_message(exc),
        kind=kind,
        url=url,
        extras=get_request_error_extras(exc),
    ) from exc


def raise_for_status(response: requests.Response) -> requests.Response:
    """Handle response status codes."""
    status_code = response.status_code
    if status_code < 400:
        return response

    reason = http.client.responses.get(status_code, "Unknown")
    if status_code >= 500:
        message = f"Failed to load schema due to server error (HTTP {status_code} {reason})"
        kind = LoaderErrorKind.HTTP_SERVER_ERROR
    else:
        message = f"Failed to load schema due to client error (HTTP {status_code} {reason})"
        kind = (
            LoaderErrorKind.HTTP_FORBIDDEN
            if status_code == 403
            else LoaderErrorKind.HTTP_NOT_FOUND
            if status_code == 404
            else LoaderErrorKind.HTTP_CLIENT_ERROR
        )
    raise LoaderError(message=message, kind=kind, url=response.request.url, extras=[])


def make_request(func: Callable[..., requests.Response], url: str, **kwargs: Any) -> requests.Response:
    """Make HTTP request with error handling."""
    import requests

    try:
        response = func(url, **kwargs)
        return raise_for_status(response)
    except requests.RequestException as exc:
        handle_request_error(exc)
    except OSError as exc:
        # Possible with certificate errors
        raise LoaderError(message=str(exc), kind=LoaderErrorKind.INVALID_CERTIFICATE, url=url, extras=[]) from None


def load_from_url(
    func: Callable[..., requests.Response],
    *,
    url: str,
    wait_for_schema: float | None = None,
    **kwargs: Any,
) -> requests.Response:
    """Load schema from URL with retries."""
    import requests

    kwargs.setdefault("timeout", DEFAULT_RESPONSE_TIMEOUT)
    prepare_request_kwargs(kwargs)

    if wait_for_schema is not None:
        from tenacity import retry, retry_if_exception_type, stop_after_delay, wait_fixed

        func = retry(
            wait=wait_fixed(WAIT_FOR_SCHEMA_INTERVAL),
            stop=stop_after_delay(wait_for_schema),
            retry=retry_if_exception_type(requests.exceptions.ConnectionError),
            reraise=True,
        )(func)

    return make_request(func, url, **kwargs)


def load_file_uri(uri: str) -> str:
    """Read a `file` URI as UTF-8 text."""
    path = file_uri_to_path(uri)
    try:
        with open(path, encoding="utf-8") as fd:
            return fd.read()
    except FileNotFoundError:
        raise LoaderError(
            kind=LoaderErrorKind.FILE_NOT_FOUND, message=f"File not found: {path}", url=uri
        ) from None
    except (OSError, UnicodeDecodeError) as exc:
        raise LoaderError(kind=LoaderErrorKind.FILE_UNREADABLE, message=str(exc), url=uri) from None


class SchemaFetcher:
    """Fetch schema documents over HTTP(S) or from the local filesystem.

    Blocking I/O runs in a worker thread, so fetches of distinct documents proceed concurrently.
    """

    __slots__ = ("timeout", "headers", "wait_for_schema", "_session")

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        headers: dict[str, str] | None = None,
        wait_for_schema: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.headers = headers or {}
        self.wait_for_schema = wait_for_schema
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            import requests

            self._session = requests.Session()
        return self._session

    async def __call__(self, uri: str) -> str | None:
        scheme = get_scheme(uri)
        logger.debug("Fetching schema from %s", uri)
        if scheme in ("http", "https"):
            return await asyncio.to_thread(self.load_remote, uri)
        if scheme == "file":
            return await asyncio.to_thread(load_file_uri, uri)
        raise LoaderError(
            kind=LoaderErrorKind.UNSUPPORTED_SCHEME,
            message=f"Unsupported URI scheme `{scheme}`" if scheme else "URI has no scheme",
            url=uri,
        )

    def load_remote(self, uri: str) -> str:
        response = load_from_url(
            self.session.get,
            url=uri,
            wait_for_schema=self.wait_for_schema,
            timeout=self.timeout,
            headers=dict(self.headers),
        )
        return response.text

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
