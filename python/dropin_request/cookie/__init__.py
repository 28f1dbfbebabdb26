"""Cookie jar shared by the calls of one request instance."""

import logging
from threading import Lock

from pyreqwest.cookie import Cookie, CookieStore

from dropin_request.cookie.types import CookieJarLike

__all__ = ["Cookie", "CookieJar", "CookieJarLike"]

logger = logging.getLogger(__name__)


class CookieJar:
    """In-memory cookie jar (domain/path aware), backed by pyreqwest's CookieStore.

    Reads and writes are serialized so that a request never observes the cookies of a response half applied.
    Implements `CookieJarLike`.
    """

    def __init__(self) -> None:
        self._store = CookieStore()
        self._lock = Lock()

    def set_cookie(self, cookie: Cookie | str, url: str) -> None:
        """Store a single cookie as if set by a response from url."""
        self.set_cookies([str(cookie)], url)

    def set_cookies(self, cookie_headers: list[str], url: str) -> None:
        with self._lock:
            for header in cookie_headers:
                try:
                    self._store.insert(header, url)
                except ValueError:
                    logger.warning("Ignoring invalid cookie from %s: %r", url, header)

    def cookies(self, url: str) -> str | None:
        with self._lock:
            matched = self._store.matches(url)
        if not matched:
            return None
        return "; ".join(cookie.stripped() for cookie in matched)

    def get_cookies(self, url: str) -> list[Cookie]:
        """Unexpired cookies that would be sent to url."""
        with self._lock:
            return list(self._store.matches(url))

    def get_cookie_string(self, url: str) -> str:
        return self.cookies(url) or ""

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store.get_all_unexpired())

    # Legacy tough-cookie style names
    setCookie = set_cookie  # noqa: N815
    getCookieString = get_cookie_string  # noqa: N815
    getCookies = get_cookies  # noqa: N815
