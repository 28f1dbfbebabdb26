"""Result of a request made without a callback: awaitable and streamable at once."""

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Callable, Coroutine
from typing import Any, Literal, Self

from dropin_request.cookie.types import CookieJarLike
from dropin_request.options import RequestOptions
from dropin_request.request import deadline, translate
from dropin_request.response import (
    LegacyResponse,
    apply_cookies,
    is_success,
    parse_body,
    read_body,
    response_metadata,
    status_error,
)
from dropin_request.result.types import ResultState, Streamable, Writable
from dropin_request.transport.types import Transport, TransportResponse

__all__ = ["RequestResult", "ResultState", "Streamable", "Writable", "spawn"]

logger = logging.getLogger(__name__)

EventName = Literal["response", "error"]

_background_tasks: set[asyncio.Task[Any]] = set()

_STREAM_BUFFER_CHUNKS = 16


def spawn(coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
    """Schedule coro on the running loop, holding a reference to the task until it is done."""
    task = asyncio.get_running_loop().create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


class _QueueSink:
    def __init__(self, maxsize: int = _STREAM_BUFFER_CHUNKS) -> None:
        # None marks the end of the body, or wakes the consumer after fail()
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue(maxsize)
        self._error: BaseException | None = None
        self.closed = False

    async def write(self, chunk: bytes) -> None:
        if not self.closed:
            await self._queue.put(chunk)

    async def close(self) -> None:
        if not self.closed:
            await self._queue.put(None)

    def fail(self, exc: BaseException) -> bool:
        self._error = exc
        if not self._queue.full():
            self._queue.put_nowait(None)
        return True

    async def chunks(self) -> AsyncIterator[bytes]:
        try:
            while True:
                if self._error is not None and self._queue.empty():
                    raise self._error
                item = await self._queue.get()
                if item is None:
                    if self._error is not None:
                        raise self._error
                    return
                yield item
        finally:
            # Consumer left, unblock a pending write and stop forwarding
            self.closed = True
            while not self._queue.empty():
                self._queue.get_nowait()


class _WriterSink:
    closed = False

    def __init__(self, destination: Writable, close: bool) -> None:
        self._destination = destination
        self._close = close

    async def write(self, chunk: bytes) -> None:
        result = self._destination.write(chunk)
        if inspect.isawaitable(result):
            await result
        drain = getattr(self._destination, "drain", None)
        if inspect.iscoroutinefunction(drain):
            await drain()

    async def close(self) -> None:
        if not self._close:
            return
        result = self._destination.close()  # type: ignore[attr-defined]
        if inspect.isawaitable(result):
            await result

    def fail(self, exc: BaseException) -> bool:
        """Close the destination if asked to. The error itself is not reported to it."""
        if self._close:
            try:
                result = self._destination.close()  # type: ignore[attr-defined]
                if inspect.isawaitable(result):
                    spawn(_await(result))
            except Exception:
                logger.exception("Closing %r after a failed request raised", self._destination)
        return False


class RequestResult:
    """Pending outcome of one call.

    Awaiting it gives the parsed body (or the full `LegacyResponse` with `resolve_with_full_response`). Iterating
    it with `async for` or calling `pipe` streams the body instead, in which case awaiting gives the response
    metadata once the body was forwarded. The choice is made when the response headers arrive: a consumer
    attached by then gets the stream, otherwise the body is buffered.

    The call starts when the result is created, so it must be created inside a running event loop.
    """

    def __init__(
        self, options: RequestOptions, *, transport: Transport, jar: CookieJarLike | None = None
    ) -> None:
        self._options = options
        self._transport = transport
        self._jar = jar
        self._state = ResultState.PENDING
        self._sink: _QueueSink | _WriterSink | None = None
        self._error: BaseException | None = None
        self._listeners: dict[str, list[Callable[[Any], Any]]] = {"response": [], "error": []}
        self._future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._task = spawn(self._run())

    @property
    def state(self) -> ResultState:
        return self._state

    @property
    def options(self) -> RequestOptions:
        return self._options

    def done(self) -> bool:
        return self._future.done()

    def on(self, event: EventName, listener: Callable[[Any], Any]) -> Self:
        """Register a listener for "response" (called with the body-less `LegacyResponse`) or "error"."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event!r}")
        self._listeners[event].append(listener)
        return self

    def iter_bytes(self) -> AsyncIterator[bytes]:
        """Stream the response body. Must be called before the response headers arrive.

        Only a few chunks are read ahead of the consumer, so iterate before awaiting the result. Leaving the
        iteration early stops reading the body.
        """
        sink = _QueueSink()
        self._attach(sink)
        return sink.chunks()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_bytes()

    def pipe(self, destination: Writable, *, close: bool = False) -> Writable:
        """Forward the response body to destination, closing it at the end if `close` is set."""
        self._attach(_WriterSink(destination, close))
        return destination

    def __await__(self):  # type: ignore[no-untyped-def]
        return self._future.__await__()

    def __repr__(self) -> str:
        return f"<RequestResult {self._options.method} {self._options.url} {self._state.value}>"

    def _attach(self, sink: _QueueSink | _WriterSink) -> None:
        if self._sink is not None:
            raise RuntimeError("A stream consumer is already attached to this result")
        if self._error is None and self._state is not ResultState.PENDING:
            raise RuntimeError(f"Cannot stream the response body, the result is already {self._state.value}")
        self._sink = sink
        if self._error is not None:
            sink.fail(self._error)

    async def _run(self) -> None:
        try:
            value = await self._dispatch()
        except asyncio.CancelledError:
            self._state = ResultState.SETTLED
            self._future.cancel()
            raise
        except Exception as exc:
            self._reject(exc)
        else:
            self._resolve(value)

    async def _dispatch(self) -> Any:
        options = self._options
        request = await translate(options, self._jar)
        async with deadline(options), self._transport.fetch(request) as response:
            await apply_cookies(self._jar, response)
            metadata = response_metadata(response)
            self._emit("response", metadata)

            if self._sink is not None:
                self._state = ResultState.STREAMING
                return await self._stream(response, metadata)

            self._state = ResultState.BUFFERING
            legacy = metadata.with_body(parse_body(await read_body(response), options))
            if options.simple and not is_success(legacy.status_code):
                raise status_error(legacy, options)
            return legacy if options.resolve_with_full_response else legacy.body

    async def _stream(self, response: TransportResponse, metadata: LegacyResponse) -> LegacyResponse:
        assert self._sink is not None
        if self._options.simple and not is_success(metadata.status_code):
            body = parse_body(await read_body(response), self._options)
            raise status_error(metadata.with_body(body), self._options)
        while (chunk := await response.read_chunk()) is not None:
            await self._sink.write(chunk)
            if self._sink.closed:
                logger.debug("Stream consumer of %r left, rest of the body is not read", self)
                break
        await self._sink.close()
        return metadata

    def _resolve(self, value: Any) -> None:
        self._state = ResultState.SETTLED
        if self._future.done():
            return
        self._future.set_result(value)
        logger.debug("%s %s resolved", self._options.method, self._options.url)

    def _reject(self, exc: BaseException) -> None:
        self._state = ResultState.SETTLED
        if self._future.done():
            return
        self._error = exc
        self._future.set_exception(exc)
        logger.debug("%s %s rejected: %s", self._options.method, self._options.url, exc)

        handled = self._sink.fail(exc) if self._sink is not None else False
        if self._listeners["error"]:
            self._emit("error", exc)
            handled = True
        if handled:
            # Reported to a consumer, so not an unretrieved future exception
            self._future.exception()

    def _emit(self, event: str, arg: Any) -> None:
        for listener in self._listeners[event]:
            try:
                result = listener(arg)
                if inspect.isawaitable(result):
                    spawn(_await(result))
            except Exception:
                logger.exception("%r listener of %r raised", event, self)


async def _await(awaitable: Any) -> None:
    try:
        await awaitable
    except Exception:
        logger.exception("Async listener raised")
