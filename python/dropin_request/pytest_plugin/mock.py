"""Module providing transport mocking for dropin_request instances in tests."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any, Literal, Self, assert_never
from urllib.parse import parse_qs, urlsplit, urlunsplit

import orjson
import pytest

from dropin_request.exceptions import NetworkError
from dropin_request.pytest_plugin.internal.matcher import InternalMatcher
from dropin_request.pytest_plugin.types import (
    BodyContentMatcher,
    CustomMatcher,
    JsonMatcher,
    Matcher,
    MethodMatcher,
    QueryMatcher,
    UrlMatcher,
)
from dropin_request.request import RequestDescriptor
from dropin_request.transport import PyreqwestTransport


class MockedResponse:
    """`TransportResponse` served by a mock rule."""

    def __init__(self, status: int, headers: list[tuple[str, str]], chunks: Iterable[bytes], url: str) -> None:
        self._status = status
        self._headers = headers
        self._chunks = list(chunks)
        self._url = url

    @property
    def status(self) -> int:
        return self._status

    @property
    def url(self) -> str:
        return self._url

    def header_items(self) -> list[tuple[str, str]]:
        return list(self._headers)

    async def read_chunk(self) -> bytes | None:
        if not self._chunks:
            return None
        await asyncio.sleep(0)
        return self._chunks.pop(0)


class Mock:
    """Class representing a single mock rule."""

    def __init__(self, method: MethodMatcher | None = None, url: UrlMatcher | None = None) -> None:
        """Do not use directly. Instead, use TransportMocker.mock()."""
        self._method_matcher = InternalMatcher(method) if method is not None else None
        self._url_matcher = InternalMatcher(url) if url is not None else None
        self._query_matcher: dict[str, InternalMatcher] | InternalMatcher | None = None
        self._header_matchers: dict[str, InternalMatcher] = {}
        self._body_matcher: tuple[InternalMatcher, Literal["content", "json"]] | None = None
        self._custom_matcher: CustomMatcher | None = None

        self._matched_requests: list[RequestDescriptor] = []
        self._unmatched_requests_repr_parts: list[dict[str, str | None]] = []

        self._status = 200
        self._headers: list[tuple[str, str]] = []
        self._chunks: list[bytes] = []
        self._delay: float | None = None
        self._network_error: str | None = None

    def assert_called(
        self,
        *,
        count: int | None = None,
        min_count: int | None = None,
        max_count: int | None = None,
    ) -> None:
        """Assert that this mock was called the expected number of times. By default, exactly once."""
        if count is None and min_count is None and max_count is None:
            count = 1

        if self._assertion_passes(count, min_count, max_count):
            return

        from dropin_request.pytest_plugin.internal.assert_message import assert_fail

        assert_fail(self, count=count, min_count=min_count, max_count=max_count)

    def _assertion_passes(self, count: int | None, min_count: int | None, max_count: int | None) -> bool:
        actual_count = len(self._matched_requests)
        if count is not None:
            return actual_count == count

        min_satisfied = min_count is None or actual_count >= min_count
        max_satisfied = max_count is None or actual_count <= max_count
        return min_satisfied and max_satisfied

    def get_requests(self) -> list[RequestDescriptor]:
        """Get all captured requests by this mock."""
        return [*self._matched_requests]

    def get_call_count(self) -> int:
        """Get the total number of calls to this mock."""
        return len(self._matched_requests)

    def reset_requests(self) -> None:
        """Reset all captured requests for this mock."""
        self._matched_requests.clear()

    def match_query(self, query: QueryMatcher) -> Self:
        """Set a matcher to match the entire query string or specific query parameters."""
        if isinstance(query, dict):
            self._query_matcher = {k: InternalMatcher(v) for k, v in query.items()}
        else:
            self._query_matcher = InternalMatcher(query)
        return self

    def match_query_param(self, name: str, value: Matcher) -> Self:
        """Set a matcher to match a specific query parameter."""
        if not isinstance(self._query_matcher, dict):
            self._query_matcher = {}
        self._query_matcher[name] = InternalMatcher(value)
        return self

    def match_header(self, name: str, value: Matcher) -> Self:
        """Set a matcher to match a specific request header."""
        self._header_matchers[name] = InternalMatcher(value)
        return self

    def match_body(self, matcher: BodyContentMatcher) -> Self:
        """Set a matcher to match request bodies as raw content (text or bytes)."""
        self._body_matcher = (InternalMatcher(matcher), "content")
        return self

    def match_body_json(self, matcher: JsonMatcher) -> Self:
        """Set a matcher to match JSON request bodies."""
        self._body_matcher = (InternalMatcher(matcher), "json")
        return self

    def match_request(self, matcher: CustomMatcher) -> Self:
        """Set a custom matcher, sync or async, called with the `RequestDescriptor`."""
        self._custom_matcher = matcher
        return self

    def with_status(self, status: int) -> Self:
        """Set the mocked response status code."""
        self._status = status
        return self

    def with_header(self, name: str, value: str) -> Self:
        """Add a header to the mocked response. Repeat for multiple values."""
        self._headers.append((name, value))
        return self

    def with_body_bytes(self, body: bytes | bytearray | memoryview) -> Self:
        """Set the mocked response body to the given bytes."""
        self._chunks = [bytes(body)]
        return self

    def with_body_text(self, body: str) -> Self:
        """Set the mocked response body to the given text."""
        self._chunks = [body.encode()]
        return self

    def with_body_json(self, json_body: Any) -> Self:
        """Set the mocked response body to the given JSON-serializable object."""
        self._chunks = [orjson.dumps(json_body)]
        return self.with_header("Content-Type", "application/json")

    def with_chunks(self, chunks: Iterable[bytes | str]) -> Self:
        """Serve the body in the given chunks."""
        self._chunks = [chunk.encode() if isinstance(chunk, str) else bytes(chunk) for chunk in chunks]
        return self

    def with_delay(self, seconds: float) -> Self:
        """Delay the response headers by the given time."""
        self._delay = seconds
        return self

    def with_network_error(self, message: str = "connection refused") -> Self:
        """Fail matching requests as if the connection failed."""
        self._network_error = message
        return self

    async def _handle(self, request: RequestDescriptor) -> bool:
        matches = {
            "method": self._matches_method(request),
            "url": self._matches_url(request),
            "query": self._match_query(request),
            "headers": self._match_headers(request),
            "body": self._match_body(request),
            "custom": await self._matches_custom(request),
        }
        if all(matches.values()):
            self._matched_requests.append(request)
            return True

        from dropin_request.pytest_plugin.internal.assert_message import format_unmatched_request_parts

        self._unmatched_requests_repr_parts.append(
            format_unmatched_request_parts(request, unmatched={k for k, matched in matches.items() if not matched}),
        )
        return False

    async def _respond(self, request: RequestDescriptor) -> MockedResponse:
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._network_error is not None:
            raise NetworkError(f"{request.method} {request.url} failed: {self._network_error}")
        return MockedResponse(self._status, self._headers, self._chunks, request.url)

    def _matches_method(self, request: RequestDescriptor) -> bool:
        return self._method_matcher is None or self._method_matcher.matches(request.method)

    def _matches_url(self, request: RequestDescriptor) -> bool:
        if self._url_matcher is None:
            return True
        parts = urlsplit(request.url)
        without_query = urlunsplit(parts._replace(query="", fragment=""))
        if isinstance(self._url_matcher.matcher, str):
            target = without_query if "://" in self._url_matcher.matcher else parts.path
            return self._url_matcher.matches(target)
        return self._url_matcher.matches(parts.path) or self._url_matcher.matches(without_query)

    def _match_headers(self, request: RequestDescriptor) -> bool:
        for header_name, expected_value in self._header_matchers.items():
            actual_value = request.headers.get(header_name)
            if actual_value is None or not expected_value.matches(actual_value):
                return False
        return True

    def _match_body(self, request: RequestDescriptor) -> bool:
        if self._body_matcher is None:
            return True
        if request.body is None:
            return False

        body_bytes = request.body.encode() if isinstance(request.body, str) else request.body
        matcher, kind = self._body_matcher
        if kind == "json":
            try:
                return matcher.matches(orjson.loads(body_bytes))
            except orjson.JSONDecodeError:
                return False
        elif kind == "content":
            if isinstance(matcher.matcher, bytes):
                return matcher.matches(body_bytes)
            return matcher.matches(body_bytes.decode())
        else:
            assert_never(kind)

    def _match_query(self, request: RequestDescriptor) -> bool:
        if self._query_matcher is None:
            return True

        query_str = urlsplit(request.url).query
        query_dict = {k: v[0] if len(v) == 1 else v for k, v in parse_qs(query_str, keep_blank_values=True).items()}

        if isinstance(self._query_matcher, dict):
            for key, expected_value in self._query_matcher.items():
                actual_value = query_dict.get(key)
                if actual_value is None or not expected_value.matches(actual_value):
                    return False
            return True
        if isinstance(self._query_matcher.matcher, str):
            return self._query_matcher.matches(query_str)
        if self._query_matcher.matches(query_str):
            return True
        return self._query_matcher.matches(query_dict)

    async def _matches_custom(self, request: RequestDescriptor) -> bool:
        if self._custom_matcher is None:
            return True
        res = self._custom_matcher(request)
        if inspect.isawaitable(res):
            res = await res
        return bool(res)


class TransportMocker:
    """Main class for mocking the transport calls of request instances."""

    def __init__(self) -> None:
        """Initialize the TransportMocker."""
        self._mocks: list[Mock] = []
        self._strict = False

    def mock(self, method: MethodMatcher | None = None, url: UrlMatcher | None = None) -> Mock:
        """Add a mock rule for requests matching the given criteria."""
        mock = Mock(method, url)
        self._mocks.append(mock)
        return mock

    def get(self, url: UrlMatcher | None = None) -> Mock:
        """Mock GET requests to the given URL."""
        return self.mock("GET", url)

    def post(self, url: UrlMatcher | None = None) -> Mock:
        """Mock POST requests to the given URL."""
        return self.mock("POST", url)

    def put(self, url: UrlMatcher | None = None) -> Mock:
        """Mock PUT requests to the given URL."""
        return self.mock("PUT", url)

    def patch(self, url: UrlMatcher | None = None) -> Mock:
        """Mock PATCH requests to the given URL."""
        return self.mock("PATCH", url)

    def delete(self, url: UrlMatcher | None = None) -> Mock:
        """Mock DELETE requests to the given URL."""
        return self.mock("DELETE", url)

    def head(self, url: UrlMatcher | None = None) -> Mock:
        """Mock HEAD requests to the given URL."""
        return self.mock("HEAD", url)

    def options(self, url: UrlMatcher | None = None) -> Mock:
        """Mock OPTIONS requests to the given URL."""
        return self.mock("OPTIONS", url)

    def strict(self, enabled: bool = True) -> Self:
        """Enable strict mode - unmatched requests will raise an error."""
        self._strict = enabled
        return self

    def get_requests(self) -> list[RequestDescriptor]:
        """Get all captured requests in all mocks."""
        return [request for mock in self._mocks for request in mock.get_requests()]

    def get_call_count(self) -> int:
        """Get the total number of calls in all mocks."""
        return sum(mock.get_call_count() for mock in self._mocks)

    def clear(self) -> None:
        """Remove all mocks."""
        self._mocks.clear()

    def reset_requests(self) -> None:
        """Reset all captured requests in all mocks."""
        for mock in self._mocks:
            mock.reset_requests()

    async def _match(self, request: RequestDescriptor) -> Mock | None:
        for mock in self._mocks:
            if await mock._handle(request):
                return mock
        if self._strict:
            msg = f"No mock rule matched request: {request.method} {request.url}"
            raise AssertionError(msg)
        return None


@pytest.fixture
def request_mocker(monkeypatch: pytest.MonkeyPatch) -> TransportMocker:
    """Fixture that provides a TransportMocker for mocking the calls of every `PyreqwestTransport`."""
    mocker = TransportMocker()
    orig_fetch = PyreqwestTransport.fetch

    @asynccontextmanager
    async def fetch_patch(self: PyreqwestTransport, request: RequestDescriptor) -> AsyncIterator[Any]:
        mock = await mocker._match(request)
        if mock is None:
            async with orig_fetch(self, request) as response:  # Proceed normally
                yield response
            return
        yield await mock._respond(request)

    monkeypatch.setattr(PyreqwestTransport, "fetch", fetch_patch)
    return mocker
