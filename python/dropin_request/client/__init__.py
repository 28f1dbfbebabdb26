"""Request instances: the legacy callable entry point with its verb shortcuts and defaults."""

import inspect
import logging
from functools import partialmethod
from types import MappingProxyType
from typing import Any

from dropin_request.cookie import CookieJar
from dropin_request.cookie.types import CookieJarLike
from dropin_request.exceptions import LegacyError
from dropin_request.options import RequestOptions, call_options, find_callback, merge_options, resolve_options
from dropin_request.request import deadline, translate
from dropin_request.response import LegacyResponse, adapt, response_metadata
from dropin_request.result import RequestResult, spawn
from dropin_request.transport import Transport, default_transport
from dropin_request.types import Callback, OptionsType

__all__ = ["Request", "create_instance"]

logger = logging.getLogger(__name__)


class Request:
    """Callable request instance bound to a set of default options.

    Call it as `request(url)`, `request(url, options)` or `request(options)`, with options also accepted as
    keyword arguments. With a callback (positional or `callback=`) the call runs in the background and the
    callback receives `(error, response, body)`. Without one a `RequestResult` is returned, which can be awaited
    or streamed.
    """

    def __init__(self, defaults: OptionsType | None = None, *, transport: Transport | None = None) -> None:
        """Initialize the instance.

        Args:
            defaults: Options merged under the options of every call
            transport: Transport performing the calls, `PyreqwestTransport` by default
        """
        self._defaults = merge_options({}, defaults or {})
        self._transport = transport
        self._jar: CookieJar | None = None

    @property
    def default_options(self) -> MappingProxyType[str, Any]:
        return MappingProxyType(self._defaults)

    @property
    def cookie_jar(self) -> CookieJar | None:
        """Jar used by calls with `jar=True`. None until the first such call."""
        return self._jar

    @property
    def transport(self) -> Transport:
        return self._transport or default_transport()

    def __call__(
        self,
        target: Any = None,
        options: Any = None,
        callback: Callback | None = None,
        /,
        **kwargs: Any,
    ) -> RequestResult | None:
        return self._call(None, target, options, callback, kwargs)

    def _call_with_method(
        self,
        method: str,
        target: Any = None,
        options: Any = None,
        callback: Callback | None = None,
        /,
        **kwargs: Any,
    ) -> RequestResult | None:
        return self._call(method, target, options, callback, kwargs)

    get = partialmethod(_call_with_method, "GET")
    post = partialmethod(_call_with_method, "POST")
    put = partialmethod(_call_with_method, "PUT")
    delete = partialmethod(_call_with_method, "DELETE")
    patch = partialmethod(_call_with_method, "PATCH")
    head = partialmethod(_call_with_method, "HEAD")
    options = partialmethod(_call_with_method, "OPTIONS")

    def defaults(self, partial: OptionsType | None = None, **kwargs: Any) -> "Request":
        """New instance whose defaults are these defaults with partial merged over them.

        The new instance shares the transport but owns a separate cookie jar.
        """
        merged = merge_options(self._defaults, partial or {})
        if kwargs:
            merged = merge_options(merged, kwargs)
        return type(self)(merged, transport=self._transport)

    @staticmethod
    def jar() -> CookieJar:
        """New empty cookie jar, to be passed as the `jar` option."""
        return CookieJar()

    def _call(
        self, method: str | None, target: Any, options: Any, callback: Callback | None, kwargs: OptionsType
    ) -> RequestResult | None:
        options, callback, kwargs = find_callback(options, callback, kwargs)
        try:
            resolved = resolve_options(self._defaults, call_options(target, options, kwargs), method)
        except LegacyError as exc:
            if callback is None:
                raise
            _invoke_sync(callback, exc)
            return None

        jar = self._resolve_jar(resolved)
        if callback is None:
            return RequestResult(resolved, transport=self.transport, jar=jar)
        spawn(self._run_callback(resolved, jar, callback))
        return None

    def _resolve_jar(self, options: RequestOptions) -> CookieJarLike | None:
        if options.jar is True:
            if self._jar is None:
                self._jar = CookieJar()
            return self._jar
        if options.jar is None or options.jar is False:
            return None
        return options.jar  # type: ignore[no-any-return]

    async def _run_callback(self, options: RequestOptions, jar: CookieJarLike | None, callback: Callback) -> None:
        response: LegacyResponse | None = None
        try:
            request = await translate(options, jar)
            async with deadline(options), self.transport.fetch(request) as transport_response:
                response = response_metadata(transport_response)
                adapted = await adapt(transport_response, options, jar)
        except Exception as exc:
            logger.debug("%s %s failed: %s", options.method, options.url, exc)
            await _invoke(callback, exc, response, None)
            return
        await _invoke(callback, adapted.error, adapted.response, adapted.body)

    def __repr__(self) -> str:
        return f"<Request defaults={self._defaults!r}>"


def create_instance(defaults: OptionsType | None = None, *, transport: Transport | None = None) -> Request:
    """Create a request instance with its own defaults and cookie jar."""
    return Request(defaults, transport=transport)


def _invoke_sync(callback: Callback, error: LegacyError) -> None:
    try:
        result = callback(error, None, None)
        if inspect.isawaitable(result):
            spawn(_await_callback(result))
    except Exception:
        logger.exception("Request callback raised")


async def _invoke(callback: Callback, error: BaseException | None, response: LegacyResponse | None, body: Any) -> None:
    try:
        result = callback(error, response, body)  # type: ignore[arg-type]
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("Request callback raised")


async def _await_callback(awaitable: Any) -> None:
    try:
        await awaitable
    except Exception:
        logger.exception("Request callback raised")
