import asyncio

import pytest

from dropin_request.cookie import CookieJar
from dropin_request.exceptions import CancellationError, InvalidOptionsError, MissingURLError
from dropin_request.options import RequestOptions
from dropin_request.request import deadline, translate


def options(**kwargs) -> RequestOptions:
    return RequestOptions.model_validate({"url": "http://example.com/path", **kwargs})


async def test_translate__plain():
    req = await translate(options())
    assert req.method == "GET"
    assert req.url == "http://example.com/path"
    assert req.body is None
    assert req.timeout is None
    assert dict(req.headers) == {}


async def test_translate__missing_url():
    with pytest.raises(MissingURLError):
        await translate(RequestOptions())


async def test_translate__qs():
    req = await translate(options(qs={"a": "b c", "l": [1, 2], "t": True, "n": None}))
    assert req.url == "http://example.com/path?a=b%20c&l=1&l=2&t=true"


async def test_translate__qs_appends_to_existing_query():
    req = await translate(options(url="http://example.com/path?z=1&a=0", qs=[("a", "1")]))
    assert req.url == "http://example.com/path?z=1&a=0&a=1"


async def test_translate__json_body():
    req = await translate(options(method="POST", json={"a": [1, "x"]}))
    assert req.body == b'{"a":[1,"x"]}'
    assert req.headers["Content-Type"] == "application/json"
    assert req.headers["Accept"] == "application/json"


async def test_translate__json_keeps_accept():
    req = await translate(options(json={"a": 1}, headers={"Accept": "text/plain"}))
    assert req.headers["Accept"] == "text/plain"


async def test_translate__json_content_type_wins():
    req = await translate(options(json={"a": 1}, headers={"content-type": "text/plain"}))
    assert req.headers.getall("Content-Type") == ["application/json"]


async def test_translate__json_flag_without_body():
    req = await translate(options(json=True))
    assert req.body is None
    assert "Content-Type" not in req.headers


async def test_translate__json_not_serializable():
    with pytest.raises(InvalidOptionsError, match="not JSON serializable"):
        await translate(options(json={"a": object()}))


async def test_translate__json_wins_over_form():
    req = await translate(options(json={"a": 1}, form={"b": 2}))
    assert req.body == b'{"a":1}'
    assert req.headers["Content-Type"] == "application/json"


async def test_translate__form():
    req = await translate(options(form={"a": "b c", "d": ["1", "2"]}, headers={"Content-Type": "text/plain"}))
    assert req.body == "a=b+c&d=1&d=2"
    assert req.headers.getall("Content-Type") == ["application/x-www-form-urlencoded"]


async def test_translate__form_string():
    req = await translate(options(form="a=1&b=2"))
    assert req.body == "a=1&b=2"
    assert req.headers["Content-Type"] == "application/x-www-form-urlencoded"


@pytest.mark.parametrize("body", ["raw text", b"raw bytes"])
async def test_translate__raw_body(body: str | bytes):
    req = await translate(options(method="PUT", body=body))
    assert req.body == body
    assert "Content-Type" not in req.headers


async def test_translate__raw_body_keeps_caller_content_type():
    req = await translate(options(body="<a/>", headers={"Content-Type": "application/xml"}))
    assert req.headers["Content-Type"] == "application/xml"


async def test_translate__bytearray_body():
    req = await translate(options(body=bytearray(b"abc")))
    assert req.body == b"abc"


async def test_translate__invalid_body():
    with pytest.raises(InvalidOptionsError, match="body must be str or bytes"):
        await translate(options(body={"a": 1}))


async def test_translate__basic_auth():
    req = await translate(options(auth={"user": "u", "pass": "p"}, headers={"Authorization": "Token x"}))
    assert req.headers.getall("Authorization") == ["Basic dTpw"]


async def test_translate__basic_auth_without_password():
    req = await translate(options(auth={"user": "u"}))
    assert req.headers["Authorization"] == "Basic dTo="


async def test_translate__bearer_auth():
    req = await translate(options(auth={"bearer": "tok"}))
    assert req.headers["Authorization"] == "Bearer tok"


async def test_translate__timeout():
    req = await translate(options(timeout=1500))
    assert req.timeout == 1.5


async def test_translate__zero_timeout():
    req = await translate(options(timeout=0))
    assert req.timeout is None


async def test_translate__jar_cookies():
    jar = CookieJar()
    jar.set_cookies(["a=1; Path=/", "b=2; Path=/"], "http://example.com/")

    req = await translate(options(), jar)
    assert sorted(req.headers["Cookie"].split("; ")) == ["a=1", "b=2"]

    req = await translate(options(url="http://other.com/"), jar)
    assert "Cookie" not in req.headers


async def test_translate__caller_cookie_kept_when_jar_empty():
    req = await translate(options(headers={"Cookie": "mine=1"}), CookieJar())
    assert req.headers["Cookie"] == "mine=1"


async def test_translate__async_jar():
    class AsyncJar:
        async def cookies(self, url: str) -> str | None:
            return "async=1"

        async def set_cookies(self, cookie_headers: list[str], url: str) -> None:
            pass

    req = await translate(options(), AsyncJar())
    assert req.headers["Cookie"] == "async=1"


async def test_deadline():
    with pytest.raises(CancellationError, match="Request aborted after 10ms") as e:
        async with deadline(options(timeout=10)):
            await asyncio.sleep(1)
    assert e.value.code == "ETIMEDOUT"
    assert e.value.details == {"timeout": 10}


async def test_deadline__transport_timeout():
    with pytest.raises(CancellationError, match="Request timed out"):
        async with deadline(options()):
            raise TimeoutError("read timeout")


async def test_deadline__no_timeout():
    async with deadline(options()):
        await asyncio.sleep(0)


async def test_deadline__zero_timeout_never_aborts():
    async with deadline(options(timeout=0)):
        await asyncio.sleep(0.01)
