"""Translation of canonical request options into a transport-ready request."""

import asyncio
import base64
import inspect
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode, urlsplit, urlunsplit

import orjson
from pyreqwest.http import HeaderMap

from dropin_request.cookie.types import CookieJarLike
from dropin_request.exceptions import CancellationError, InvalidOptionsError, LegacyError, MissingURLError
from dropin_request.options import AuthOptions, RequestOptions

__all__ = ["RequestDescriptor", "deadline", "translate"]

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass
class RequestDescriptor:
    """Everything the transport needs to perform one call."""

    method: str
    url: str
    headers: HeaderMap
    body: bytes | str | None = None
    timeout: float | None = None

    def __repr__(self) -> str:
        return f"RequestDescriptor(method={self.method!r}, url={self.url!r})"


async def translate(options: RequestOptions, jar: CookieJarLike | None = None) -> RequestDescriptor:
    """Build the request descriptor for options, reading cookies from jar when given.

    Raises:
        MissingURLError: options carry no URL.
        InvalidOptionsError: A header or the body cannot be sent as given.
    """
    if not options.url:
        raise MissingURLError(options=options)

    url = _with_query(options.url, options.qs) if options.qs else options.url
    try:
        headers = HeaderMap(options.headers)
    except ValueError as exc:
        raise InvalidOptionsError(f"Invalid header: {exc}", options=options) from exc

    if jar is not None:
        cookie = jar.cookies(url)
        if inspect.isawaitable(cookie):
            cookie = await cookie
        if cookie:
            headers["Cookie"] = cookie

    if options.auth is not None:
        headers["Authorization"] = _authorization(options.auth)

    body = _body(options, headers)
    return RequestDescriptor(
        method=options.method,
        url=url,
        headers=headers,
        body=body,
        timeout=options.timeout_seconds,
    )


@asynccontextmanager
async def deadline(options: RequestOptions) -> AsyncIterator[None]:
    """Abort the enclosed transport call once the `timeout` of options elapsed.

    Raises:
        CancellationError: The timeout elapsed, or the transport gave up with its own timeout.
    """
    try:
        async with asyncio.timeout(options.timeout_seconds):
            yield
    except LegacyError:
        raise
    except TimeoutError as exc:
        raise CancellationError(options.timeout, options=options) from exc


def _pairs(params: Any) -> list[tuple[str, str]]:
    items = params.items() if isinstance(params, Mapping) else params
    pairs = []
    for key, value in items:
        values = value if isinstance(value, list | tuple) else [value]
        pairs.extend((str(key), _param_str(v)) for v in values if v is not None)
    return pairs


def _param_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _with_query(url: str, qs: Any) -> str:
    encoded = urlencode(_pairs(qs), quote_via=quote)
    if not encoded:
        return url
    parts = urlsplit(url)
    query = f"{parts.query}&{encoded}" if parts.query else encoded
    return urlunsplit(parts._replace(query=query))


def _authorization(auth: AuthOptions) -> str:
    if auth.bearer is not None:
        return f"Bearer {auth.bearer}"
    credentials = f"{auth.user}:{auth.password or ''}".encode()
    return f"Basic {base64.b64encode(credentials).decode('ascii')}"


def _body(options: RequestOptions, headers: HeaderMap) -> bytes | str | None:
    if options.json_ and options.body is not None:
        try:
            body: bytes | str = orjson.dumps(options.body)
        except TypeError as exc:
            raise InvalidOptionsError(f"Body is not JSON serializable: {exc}", options=options) from exc
        headers["Content-Type"] = JSON_CONTENT_TYPE
        if "Accept" not in headers:
            headers["Accept"] = JSON_CONTENT_TYPE
        return body

    if options.form is not None:
        headers["Content-Type"] = FORM_CONTENT_TYPE
        if isinstance(options.form, str):
            return options.form
        return urlencode(_pairs(options.form))

    if options.body is None or isinstance(options.body, bytes | str):
        return options.body
    if isinstance(options.body, bytearray | memoryview):
        return bytes(options.body)
    raise InvalidOptionsError(
        f"body must be str or bytes unless json is set, got {type(options.body).__name__}", options=options
    )
