"""Adaptation of transport responses into the legacy response shape."""

import inspect
import logging
from dataclasses import dataclass, replace
from http import HTTPStatus
from typing import Any

import orjson

from dropin_request.cookie.types import CookieJarLike
from dropin_request.exceptions import BodyDecodeError, HTTPStatusError
from dropin_request.options import RequestOptions
from dropin_request.transport.types import TransportResponse

__all__ = [
    "AdaptedResponse",
    "LegacyResponse",
    "adapt",
    "apply_cookies",
    "is_success",
    "parse_body",
    "read_body",
    "response_metadata",
    "status_error",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LegacyResponse:
    """Response as seen by legacy call sites. Header names are lower-cased."""

    status_code: int
    headers: dict[str, str]
    url: str
    status_message: str = ""
    body: Any = None

    @property
    def statusCode(self) -> int:  # noqa: N802
        return self.status_code

    @property
    def statusMessage(self) -> str:  # noqa: N802
        return self.status_message

    def with_body(self, body: Any) -> "LegacyResponse":
        return replace(self, body=body)


@dataclass(frozen=True)
class AdaptedResponse:
    """Fully read response: the legacy response, its parsed body and the status error, if any."""

    response: LegacyResponse
    body: Any
    error: HTTPStatusError | None


def is_success(status: int) -> bool:
    return 200 <= status < 400


def response_metadata(response: TransportResponse) -> LegacyResponse:
    """Legacy response without a body, built from the status line and headers."""
    headers: dict[str, str] = {}
    for name, value in response.header_items():
        key = name.lower()
        headers[key] = f"{headers[key]}, {value}" if key in headers else value
    return LegacyResponse(
        status_code=response.status,
        headers=headers,
        url=response.url,
        status_message=_reason_phrase(response.status),
    )


def _reason_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


async def apply_cookies(jar: CookieJarLike | None, response: TransportResponse) -> None:
    """Store every Set-Cookie header of response in jar."""
    if jar is None:
        return
    cookie_headers = [value for name, value in response.header_items() if name.lower() == "set-cookie"]
    if not cookie_headers:
        return
    result = jar.set_cookies(cookie_headers, response.url)
    if inspect.isawaitable(result):
        await result


async def read_body(response: TransportResponse) -> bytes:
    chunks = []
    while (chunk := await response.read_chunk()) is not None:
        chunks.append(chunk)
    return b"".join(chunks)


def parse_body(raw: bytes, options: RequestOptions) -> Any:
    """Raw bytes with `encoding=None`, parsed JSON with `json=True` (falling back to text), else text."""
    if options.returns_bytes:
        return raw
    text = _decode(raw, options.encoding or "utf-8")
    if not options.json_:
        return text
    try:
        return _parse_json(text)
    except BodyDecodeError as exc:
        logger.debug("Returning raw text for unparsable JSON body: %s", exc)
        return text


def _decode(raw: bytes, encoding: str) -> str:
    try:
        return raw.decode(encoding, errors="replace")
    except LookupError as exc:
        raise BodyDecodeError(f"Unknown encoding: {encoding}") from exc


def _parse_json(text: str) -> Any:
    try:
        return orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        raise BodyDecodeError(f"Invalid JSON body: {exc}") from exc


def status_error(response: LegacyResponse, options: RequestOptions) -> HTTPStatusError:
    """Error for a response whose status is outside the success range. The body is attached as `error`."""
    message = f"HTTP Error: {response.status_code} {response.status_message}".rstrip()
    return HTTPStatusError(
        message,
        status_code=response.status_code,
        response=response,
        error=response.body,
        options=options,
        details={"status": response.status_code},
    )


async def adapt(
    response: TransportResponse, options: RequestOptions, jar: CookieJarLike | None = None
) -> AdaptedResponse:
    """Apply cookies, read and parse the whole body and classify the status."""
    await apply_cookies(jar, response)
    body = parse_body(await read_body(response), options)
    legacy = response_metadata(response).with_body(body)
    error = None
    if options.simple and not is_success(legacy.status_code):
        error = status_error(legacy, options)
    return AdaptedResponse(legacy, body, error)
