"""Types used in the pytest plugin."""

from collections.abc import Awaitable, Callable
from re import Pattern
from typing import TYPE_CHECKING, Any, TypeAlias

from dropin_request.request import RequestDescriptor

if TYPE_CHECKING:
    from dirty_equals import DirtyEquals

Matcher: TypeAlias = "DirtyEquals[Any] | str | Pattern[str]"
JsonMatcher: TypeAlias = "DirtyEquals[Any] | Any"

MethodMatcher: TypeAlias = Matcher
UrlMatcher: TypeAlias = Matcher
QueryMatcher: TypeAlias = "dict[str, Matcher | list[str]] | Matcher"
BodyContentMatcher: TypeAlias = "bytes | Matcher"
CustomMatcher = Callable[[RequestDescriptor], bool | Awaitable[bool]]
