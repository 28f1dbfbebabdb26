"""Default transport performing calls with the pyreqwest async client."""

import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import timedelta
from functools import cache

from pyreqwest.client import Client, ClientBuilder
from pyreqwest.request import RequestBuilder
from pyreqwest.response import Response

from dropin_request.exceptions import NetworkError
from dropin_request.request import RequestDescriptor

logger = logging.getLogger(__name__)


class PyreqwestResponse:
    """`TransportResponse` over a streamed pyreqwest response."""

    def __init__(self, response: Response, url: str) -> None:
        self._response = response
        self._url = url

    @property
    def status(self) -> int:
        return self._response.status

    @property
    def url(self) -> str:
        return self._url

    def header_items(self) -> list[tuple[str, str]]:
        headers = self._response.headers
        return [(name, value) for name in dict.fromkeys(headers.keys()) for value in headers.getall(name)]

    async def read_chunk(self) -> bytes | None:
        try:
            chunk = await self._response.body_reader.read_chunk()
        except TimeoutError:
            raise
        except Exception as exc:
            raise NetworkError(f"Failed reading response body from {self._url}: {exc}") from exc
        return None if chunk is None else bytes(chunk)


class PyreqwestTransport:
    """Transport sending requests through pyreqwest.

    A client is built per call, so no connection state outlives the call that used it. Status codes are never
    turned into errors here; classification belongs to the response adapter.
    """

    def __init__(
        self,
        *,
        user_agent: str | None = None,
        default_headers: Mapping[str, str] | None = None,
        builder: Callable[[], ClientBuilder] | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            user_agent: User-Agent sent with every request
            default_headers: Headers sent with every request unless the request sets them
            builder: Factory of the ClientBuilder to start from, for settings not covered here
        """
        self._user_agent = user_agent
        self._default_headers = dict(default_headers) if default_headers else None
        self._builder = builder or ClientBuilder

    def client_builder(self) -> ClientBuilder:
        builder = self._builder().error_for_status(False)
        if self._user_agent is not None:
            builder = builder.user_agent(self._user_agent)
        if self._default_headers:
            builder = builder.default_headers(self._default_headers)
        return builder

    @asynccontextmanager
    async def fetch(self, request: RequestDescriptor) -> AsyncIterator[PyreqwestResponse]:
        async with AsyncExitStack() as stack:
            try:
                client = await stack.enter_async_context(self.client_builder().build())
                response = await stack.enter_async_context(self._request_builder(client, request).build_streamed())
            except TimeoutError:
                raise
            except Exception as exc:
                raise NetworkError(
                    f"{request.method} {request.url} failed: {exc}", details={"cause": repr(exc)}
                ) from exc
            logger.debug("%s %s -> %s", request.method, request.url, response.status)
            yield PyreqwestResponse(response, request.url)

    @staticmethod
    def _request_builder(client: Client, request: RequestDescriptor) -> RequestBuilder:
        builder = client.request(request.method, request.url).headers(request.headers)
        if isinstance(request.body, str):
            builder = builder.body_text(request.body)
        elif request.body is not None:
            builder = builder.body_bytes(request.body)
        if request.timeout is not None:
            builder = builder.timeout(timedelta(seconds=request.timeout))
        return builder


@cache
def default_transport() -> PyreqwestTransport:
    """Transport used by instances created without an explicit one."""
    return PyreqwestTransport()
