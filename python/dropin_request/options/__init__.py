"""Request options: the canonical options record and the normalization of the legacy call shapes."""

from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from dropin_request.exceptions import InvalidOptionsError, MissingURLError
from dropin_request.types import Callback, OptionsType

__all__ = [
    "AuthOptions",
    "RequestOptions",
    "call_options",
    "find_callback",
    "merge_headers",
    "merge_options",
    "resolve_options",
    "split_call_args",
]

_KEY_ALIASES = {
    "uri": "url",
    "resolveWithFullResponse": "resolve_with_full_response",
}


class AuthOptions(BaseModel):
    """Credentials for the `Authorization` header. Either user/pass (Basic) or a bearer token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user: str | None = Field(None, validation_alias=AliasChoices("user", "username"))
    password: str | None = Field(None, validation_alias=AliasChoices("pass", "password"))
    bearer: str | None = None

    @model_validator(mode="after")
    def _check_credentials(self) -> "AuthOptions":
        if self.bearer is None and self.user is None:
            raise ValueError("auth requires either 'user' or 'bearer'")
        return self


class RequestOptions(BaseModel):
    """Canonical, immutable options of a single call.

    Built from the merge of instance defaults and per-call options. Accepts the legacy option keys
    (`uri`, `json`, `resolveWithFullResponse`, ...) as well as the field names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, arbitrary_types_allowed=True)

    url: str | None = Field(None, validation_alias=AliasChoices("url", "uri"))
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    json_: bool = Field(False, alias="json")
    form: Any = None
    qs: Any = None
    auth: AuthOptions | None = None
    encoding: str | None = "utf-8"
    timeout: float | None = Field(None, ge=0)
    jar: Any = None
    resolve_with_full_response: bool = Field(
        False, validation_alias=AliasChoices("resolve_with_full_response", "resolveWithFullResponse")
    )
    simple: bool = True

    @model_validator(mode="before")
    @classmethod
    def _json_value_as_body(cls, data: Any) -> Any:
        # `json: {...}` is shorthand for `json: True, body: {...}`
        if isinstance(data, Mapping) and "json" in data:
            value = data["json"]
            if value is None:
                data = {k: v for k, v in data.items() if k != "json"}
            elif not isinstance(value, bool):
                data = {**data, "json": True, "body": value}
        return data

    @field_validator("url", mode="before")
    @classmethod
    def _url_as_str(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("method", mode="before")
    @classmethod
    def _method_upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("headers", mode="before")
    @classmethod
    def _header_values_as_str(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {str(k): v if isinstance(v, str) else str(v) for k, v in value.items()}
        return value

    @field_validator("jar", mode="before")
    @classmethod
    def _check_jar(cls, value: Any) -> Any:
        if value is None or isinstance(value, bool):
            return value
        if callable(getattr(value, "cookies", None)) and callable(getattr(value, "set_cookies", None)):
            return value
        raise ValueError("jar must be a bool or a cookie jar with 'cookies' and 'set_cookies' methods")

    @property
    def timeout_seconds(self) -> float | None:
        """Timeout in seconds. A zero timeout, like no timeout, never aborts the call."""
        return self.timeout / 1000 if self.timeout else None

    @property
    def returns_bytes(self) -> bool:
        """Whether text decoding is disabled (legacy `encoding: null`)."""
        return self.encoding is None


def merge_headers(*header_maps: Mapping[str, str] | None) -> dict[str, str]:
    """Merge header maps key-wise, later maps winning. Names compare case-insensitively."""
    merged: dict[str, str] = {}
    for headers in header_maps:
        for name, value in (headers or {}).items():
            for existing in [k for k in merged if k.lower() == name.lower()]:
                del merged[existing]
            merged[name] = value
    return merged


def _canonical(options: OptionsType) -> dict[str, Any]:
    return {_KEY_ALIASES.get(key, key): value for key, value in options.items()}


def merge_options(base: OptionsType, override: OptionsType) -> dict[str, Any]:
    """Merge two options mappings. Headers merge key-wise, every other key is replaced by `override`."""
    base, override = _canonical(base), _canonical(override)
    merged = {**base, **override}
    if base.get("headers") or override.get("headers"):
        merged["headers"] = merge_headers(base.get("headers"), override.get("headers"))
    return merged


def split_call_args(
    target: Any,
    options: Any = None,
    callback: Callback | None = None,
    kwargs: OptionsType | None = None,
) -> tuple[dict[str, Any], Callback | None]:
    """Split the `(url)`, `(url, options)`, `(options)` call shapes into an options mapping and a callback.

    Raises:
        InvalidOptionsError: options is neither a mapping nor a callback.
    """
    options, callback, kwargs = find_callback(options, callback, kwargs)
    return call_options(target, options, kwargs), callback


def find_callback(
    options: Any = None,
    callback: Callback | None = None,
    kwargs: OptionsType | None = None,
) -> tuple[Any, Callback | None, OptionsType | None]:
    """Pick the callback from the positional options argument or the `callback` keyword."""
    if callable(options):
        callback, options = options, None
    if kwargs and callback is None and callable(kwargs.get("callback")):
        callback = kwargs["callback"]
        kwargs = {k: v for k, v in kwargs.items() if k != "callback"}
    return options, callback, kwargs


def call_options(target: Any, options: Any = None, kwargs: OptionsType | None = None) -> dict[str, Any]:
    """Merge the target, the options argument and the keyword options of one call.

    Raises:
        InvalidOptionsError: options is not a mapping.
    """
    if target is None:
        call: dict[str, Any] = {}
    elif isinstance(target, Mapping):
        call = _canonical(target)
    else:
        call = {"url": target if isinstance(target, str) else str(target)}

    if options is not None:
        if not isinstance(options, Mapping):
            raise InvalidOptionsError(f"options must be a mapping, got {type(options).__name__}")
        call = merge_options(call, options)
    if kwargs:
        call = merge_options(call, kwargs)
    return call


def resolve_options(defaults: OptionsType, call: OptionsType, method: str | None = None) -> RequestOptions:
    """Merge defaults under per-call options and validate the result.

    Raises:
        MissingURLError: Neither `url` nor `uri` is set.
        InvalidOptionsError: The merged options do not validate.
    """
    merged = merge_options(defaults, call)
    if method is not None:
        merged["method"] = method
    try:
        options = RequestOptions.model_validate(merged)
    except ValidationError as exc:
        raise InvalidOptionsError(f"Invalid request options: {exc}", details={"errors": exc.errors()}) from exc
    if not options.url:
        raise MissingURLError(options=options)
    return options
