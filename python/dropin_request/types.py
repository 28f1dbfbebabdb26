"""Common types and interfaces used in the library."""

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dropin_request.exceptions import LegacyError
    from dropin_request.response import LegacyResponse

HeadersType = Mapping[str, str]
QueryParams = Mapping[str, Any] | Sequence[tuple[str, Any]]
FormParams = Mapping[str, Any] | Sequence[tuple[str, Any]] | str
OptionsType = Mapping[str, Any]

Callback = Callable[["LegacyError | None", "LegacyResponse | None", Any], Awaitable[None] | None]
