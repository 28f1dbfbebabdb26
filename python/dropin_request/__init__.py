"""dropin_request - The legacy callback/promise request API on top of pyreqwest.

Call sites written against the legacy request library keep working unchanged in shape:
- `request(url, callback)`, `request(url, options)`, `request(options)` and keyword options
- Verb shortcuts `request.get/post/put/delete/patch/head/options`
- `request.defaults(...)` instances with merged default options
- Cookie jars per instance or shared through the `jar` option
- `json`, `form`, `qs`, `auth`, `encoding`, `timeout` and `resolveWithFullResponse` options
- Results that can be awaited for the body or streamed with `async for` and `pipe`
- Legacy error shapes with `status_code` and the failed response body
- Mocking and testing utilities (pytest plugin)
"""

from dropin_request.client import Request, create_instance
from dropin_request.cookie import CookieJar
from dropin_request.exceptions import (
    BodyDecodeError,
    CancellationError,
    HTTPStatusError,
    InvalidOptionsError,
    LegacyError,
    MissingURLError,
    NetworkError,
)
from dropin_request.options import RequestOptions
from dropin_request.response import LegacyResponse
from dropin_request.result import RequestResult, ResultState
from dropin_request.transport import PyreqwestTransport

request = create_instance()

__all__ = [  # noqa: RUF022
    "request",
    "create_instance",
    "Request",
    "RequestResult",
    "ResultState",
    "RequestOptions",
    "LegacyResponse",
    "CookieJar",
    "PyreqwestTransport",
    "LegacyError",
    "MissingURLError",
    "InvalidOptionsError",
    "HTTPStatusError",
    "NetworkError",
    "CancellationError",
    "BodyDecodeError",
]
