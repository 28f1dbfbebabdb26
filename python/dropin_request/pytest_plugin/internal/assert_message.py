from typing import TYPE_CHECKING, Literal, assert_never

from dropin_request.pytest_plugin.internal.matcher import InternalMatcher
from dropin_request.request import RequestDescriptor

if TYPE_CHECKING:
    from dropin_request.pytest_plugin.mock import Mock


def assert_fail(
    mock: "Mock",
    *,
    count: int | None = None,
    min_count: int | None = None,
    max_count: int | None = None,
) -> None:
    msg = format_assert_called_error(mock, count=count, min_count=min_count, max_count=max_count)
    raise AssertionError(msg)


def format_assert_called_error(
    mock: "Mock",
    *,
    count: int | None = None,
    min_count: int | None = None,
    max_count: int | None = None,
) -> str:
    actual_count = len(mock._matched_requests)
    error_parts = ["Mock was not called as expected."]

    if count is not None:
        error_parts.append(f"Expected exactly {count} call(s), but got {actual_count}.")
    else:
        expectations = []
        if min_count is not None:
            expectations.append(f"at least {min_count}")
        if max_count is not None:
            expectations.append(f"at most {max_count}")
        error_parts.append(f"Expected {' and '.join(expectations)} call(s), but got {actual_count}.")

    error_parts.append("\nMock configuration:")
    error_parts.append(_format_mock_matchers(mock))

    unmatched = mock._unmatched_requests_repr_parts
    if unmatched:
        error_parts.append(f"\nUnmatched requests ({len(unmatched)}):")
        for i, parts in enumerate(unmatched[-5:], 1):
            error_parts.append(f"  {i}. {_format_request_parts(parts)}")
        if len(unmatched) > 5:
            error_parts.append(f"  ... and {len(unmatched) - 5} more")

    if mock._matched_requests:
        error_parts.append(f"\nMatched requests ({len(mock._matched_requests)}):")
        for i, request in enumerate(mock._matched_requests[-3:], 1):
            error_parts.append(f"  {i}. {request.method} {request.url}")
        if len(mock._matched_requests) > 3:
            error_parts.append(f"  ... and {len(mock._matched_requests) - 3} more")

    return "\n".join(error_parts)


def format_unmatched_request_parts(request: RequestDescriptor, *, unmatched: set[str]) -> dict[str, str | None]:
    """Summary of request, keeping only what a mismatch report needs. Mismatched parts are marked."""
    return {
        "request": f"{request.method} {request.url}",
        "headers": ", ".join(f"{name}: {value}" for name, value in request.headers.items()) or None,
        "body": repr(request.body[:100]) if request.body is not None else None,
        "unmatched": ", ".join(sorted(unmatched)) or None,
    }


def _format_request_parts(parts: dict[str, str | None]) -> str:
    text = parts["request"] or ""
    if parts["headers"]:
        text += f" [headers: {parts['headers']}]"
    if parts["body"]:
        text += f" [body: {parts['body']}]"
    if parts["unmatched"]:
        text += f" (unmatched: {parts['unmatched']})"
    return text


def _format_mock_matchers(mock: "Mock") -> str:
    parts = [
        f"  Method: {mock._method_matcher if mock._method_matcher is not None else 'Any'}",
        f"  URL: {mock._url_matcher if mock._url_matcher is not None else 'Any'}",
    ]

    if mock._query_matcher is not None:
        parts.append(_format_query_matcher(mock._query_matcher))

    if mock._header_matchers:
        header_parts = [f"{name}: {value}" for name, value in mock._header_matchers.items()]
        parts.append(f"  Headers: {', '.join(header_parts)}")

    if mock._body_matcher is not None:
        parts.append(_format_body_matcher(*mock._body_matcher))

    if mock._custom_matcher is not None:
        parts.append(f"  Custom matcher: {getattr(mock._custom_matcher, '__name__', mock._custom_matcher)}")

    return "\n".join(parts)


def _format_query_matcher(query_matcher: dict[str, InternalMatcher] | InternalMatcher) -> str:
    if isinstance(query_matcher, dict):
        return f"  Query: {', '.join(f'{k}={v}' for k, v in query_matcher.items())}"
    return f"  Query: {query_matcher}"


def _format_body_matcher(matcher: InternalMatcher, kind: Literal["content", "json"]) -> str:
    if kind == "json":
        return f"  Body (JSON): {matcher}"
    elif kind == "content":
        if isinstance(matcher.matcher, bytes):
            return f"  Body (bytes): {matcher}"
        return f"  Body (text): {matcher}"
    else:
        assert_never(kind)
