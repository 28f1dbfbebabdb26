"""Cookie jar types and interfaces."""

from collections.abc import Awaitable
from typing import Protocol


class CookieJarLike(Protocol):
    """Cookie jar that can be passed as the `jar` option.

    Any object with these two methods can be shared between calls and instances. Either method may be a coroutine
    function; the translator and the adapter await the result when needed.
    """

    def set_cookies(self, cookie_headers: list[str], url: str) -> Awaitable[None] | None:
        """Store cookies for a given URL.

        Called with every Set-Cookie header value of a response, once per response, before the caller sees the
        response. Both successful and failed responses are applied.

        Args:
            cookie_headers: List of Set-Cookie header values received from url
            url: The URL that sent the Set-Cookie headers
        """

    def cookies(self, url: str) -> Awaitable[str | None] | str | None:
        """Get the Cookie header value for a given URL.

        Called before every request issued with this jar.

        Args:
            url: The URL for which cookies are requested

        Returns:
            A string containing the Cookie header value, or None if no cookies
        """
