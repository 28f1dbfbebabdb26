"""Exceptions raised or delivered by dropin_request.

Every error a caller can observe is a `LegacyError`, so call sites written for the legacy library can check
`err.status_code` without caring whether the failure came from the server or from the transport.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dropin_request.options import RequestOptions
    from dropin_request.response import LegacyResponse


class LegacyError(Exception):
    """Base class for all request errors, shaped like the legacy library's error object."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response: "LegacyResponse | None" = None,
        error: Any = None,
        options: "RequestOptions | None" = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response
        self.error = error
        self.options = options
        self.details = details or {}

    @property
    def body_on_failure(self) -> Any:
        """Body read from a failed response (legacy `err.error`)."""
        return self.error

    @property
    def statusCode(self) -> int | None:  # noqa: N802
        return self.status_code


class MissingURLError(LegacyError, ValueError):
    """No `url`/`uri` was given. Raised before anything is dispatched."""

    def __init__(self, message: str = "URL is required.", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class InvalidOptionsError(LegacyError, ValueError):
    """Options could not be turned into a request."""


class HTTPStatusError(LegacyError):
    """Response status outside [200, 400)."""


class NetworkError(LegacyError, ConnectionError):
    """The transport failed before a complete response was received."""


class CancellationError(LegacyError, TimeoutError):
    """The call was aborted because its `timeout` elapsed."""

    code = "ETIMEDOUT"

    def __init__(self, timeout_millis: float | None, **kwargs: Any) -> None:
        if timeout_millis is None:
            message = "Request timed out"
        else:
            message = f"Request aborted after {timeout_millis:g}ms"
        super().__init__(message, details={"timeout": timeout_millis}, **kwargs)
        self.timeout_millis = timeout_millis


class BodyDecodeError(LegacyError):
    """A response body could not be parsed. Suppressed for `json=True` bodies, which fall back to text."""
