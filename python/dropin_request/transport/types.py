"""Transport types and interfaces."""

from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from dropin_request.request import RequestDescriptor


class TransportResponse(Protocol):
    """Response of a transport call, available as soon as the status line and headers arrived."""

    @property
    def status(self) -> int:
        """HTTP status code."""

    @property
    def url(self) -> str:
        """URL the response was received from."""

    def header_items(self) -> list[tuple[str, str]]:
        """All response headers in arrival order. Repeated headers appear once per value."""

    async def read_chunk(self) -> bytes | None:
        """Read the next chunk of the body, or None when the body is exhausted."""


class Transport(Protocol):
    """Fetch-style primitive performing the actual network call."""

    def fetch(self, request: "RequestDescriptor") -> AbstractAsyncContextManager[TransportResponse]:
        """Send the request and yield the response once its headers arrived.

        The body is read through the yielded response while the context is open. Failures before a response is
        available raise `NetworkError`, except timeouts which raise a `TimeoutError`.
        """
