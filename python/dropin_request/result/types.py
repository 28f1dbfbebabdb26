"""Types for request results."""

from collections.abc import AsyncIterator
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class ResultState(Enum):
    """Lifecycle of a request result. PENDING until response headers arrive, SETTLED once resolved or rejected."""

    PENDING = "pending"
    STREAMING = "streaming"
    BUFFERING = "buffering"
    SETTLED = "settled"


class Writable(Protocol):
    """Destination of `pipe`. `write` and `close` may be sync or async, `drain` is awaited when present."""

    def write(self, data: bytes) -> Any: ...


@runtime_checkable
class Streamable(Protocol):
    """Result whose response body can be consumed chunk by chunk."""

    def __aiter__(self) -> AsyncIterator[bytes]: ...

    def iter_bytes(self) -> AsyncIterator[bytes]: ...

    def pipe(self, destination: Writable, *, close: bool = False) -> Writable: ...
