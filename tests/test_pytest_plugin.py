import os
import re
import subprocess
import sys
from pathlib import Path

import pytest
from dirty_equals import Contains, IsStr

import dropin_request
from dropin_request import Request
from dropin_request.pytest_plugin import TransportMocker
from dropin_request.request import RequestDescriptor


async def test_simple_get_mock(request_mocker: TransportMocker, client: Request):
    request_mocker.get("/api").with_body_text("Hello World")

    assert await client("http://example.com/api") == "Hello World"
    assert request_mocker.get_call_count() == 1


async def test_method_specific_mocks(mocker: TransportMocker, client: Request):
    mock_get = mocker.get("/users").with_body_json({"users": []})
    mock_post = mocker.post("/users").with_status(201).with_body_json({"id": 123})
    mock_delete = mocker.delete("/users/123").with_status(204)

    assert await client.get("http://api.example.com/users", json=True) == {"users": []}
    assert await client.post("http://api.example.com/users", json={"name": "John"}) == {"id": 123}
    for _ in range(2):
        res = await client.delete("http://api.example.com/users/123", resolveWithFullResponse=True)
        assert res.status_code == 204

    assert mocker.get_call_count() == 4
    assert mock_get.get_call_count() == 1
    assert mock_post.get_call_count() == 1
    assert mock_delete.get_call_count() == 2


async def test_regex_url_matching(request_mocker: TransportMocker, client: Request):
    pattern = re.compile(r"/users/\d+")
    request_mocker.strict(True).get(pattern).with_body_json({"id": 456})

    assert await client("http://api.example.com/users/123", json=True) == {"id": 456}
    assert await client("http://api.example.com/users/456", json=True) == {"id": 456}
    with pytest.raises(AssertionError, match="No mock rule matched request"):
        await client("http://api.example.com/users/abc")


async def test_full_url_matching(mocker: TransportMocker, client: Request):
    mocker.get("http://a.example.com/path").with_body_text("a")
    mocker.get("http://b.example.com/path").with_body_text("b")

    assert await client("http://b.example.com/path?x=1") == "b"
    assert await client("http://a.example.com/path") == "a"


async def test_dirty_equals_url_matching(mocker: TransportMocker, client: Request):
    mocker.get(IsStr(regex=r"https://[a-z]+\.example\.com/.*")).with_body_text("ok")

    assert await client("https://api.example.com/anything") == "ok"


async def test_query_matching(mocker: TransportMocker, client: Request):
    by_string = mocker.get("/q").match_query("a=1&b=2").with_body_text("string")
    by_regex = mocker.get("/q").match_query(re.compile(r"c=\d+")).with_body_text("regex")
    by_dict = mocker.get("/q").match_query({"d": ["1", "2"]}).with_body_text("dict")

    assert await client("http://example.com/q", qs={"a": 1, "b": 2}) == "string"
    assert await client("http://example.com/q", qs={"c": 3}) == "regex"
    assert await client("http://example.com/q", qs={"d": [1, 2]}) == "dict"
    for mock in (by_string, by_regex, by_dict):
        mock.assert_called()


async def test_body_matching(mocker: TransportMocker, client: Request):
    mocker.post("/b").match_body(b"\x00raw").with_body_text("bytes")
    mocker.post("/b").match_body(re.compile(r"hello .+")).with_body_text("text")
    mocker.post("/b").match_body_json({"items": Contains(2)}).with_body_text("json")

    assert await client.post("http://example.com/b", body=b"\x00raw") == "bytes"
    assert await client.post("http://example.com/b", body="hello world") == "text"
    assert await client.post("http://example.com/b", json={"items": [1, 2, 3]}) == "json"


async def test_custom_matcher(mocker: TransportMocker, client: Request):
    async def has_trace(request: RequestDescriptor) -> bool:
        return "X-Trace" in request.headers

    traced = mocker.get().match_request(has_trace).with_body_text("traced")
    mocker.get().with_body_text("plain")

    assert await client("http://example.com/", headers={"X-Trace": "1"}) == "traced"
    assert await client("http://example.com/") == "plain"
    traced.assert_called()


async def test_response_headers(mocker: TransportMocker, client: Request):
    mocker.get("/h").with_header("X-Multi", "a").with_header("X-Multi", "b")

    res = await client("http://example.com/h", resolveWithFullResponse=True)
    assert res.headers == {"x-multi": "a, b"}


async def test_assert_called(mocker: TransportMocker, client: Request):
    mock = mocker.get("/counted")

    mock.assert_called(count=0)
    for _ in range(3):
        await client("http://example.com/counted")
    mock.assert_called(count=3)
    mock.assert_called(min_count=2)
    mock.assert_called(min_count=1, max_count=3)

    with pytest.raises(AssertionError, match=r"Expected at least 4 call\(s\), but got 3."):
        mock.assert_called(min_count=4)

    mock.reset_requests()
    assert mock.get_call_count() == 0
    assert mocker.get_requests() == []


async def test_assert_called_message(request_mocker: TransportMocker, client: Request):
    mock = request_mocker.get("/users").match_header("Authorization", "Bearer ok")
    request_mocker.strict()
    request_mocker.get().with_status(401)

    with pytest.raises(Exception):  # noqa: B017
        await client("http://example.com/users", auth={"bearer": "bad"})

    with pytest.raises(AssertionError) as e:
        mock.assert_called()

    message = str(e.value)
    assert "Expected exactly 1 call(s), but got 0." in message
    assert "Method: 'GET'" in message
    assert "URL: '/users'" in message
    assert "Headers: Authorization: 'Bearer ok'" in message
    assert "Unmatched requests (1):" in message
    assert "GET http://example.com/users" in message
    assert "(unmatched: headers)" in message


async def test_clear(mocker: TransportMocker, client: Request):
    mocker.get("/x")
    mocker.clear()

    with pytest.raises(AssertionError, match="No mock rule matched"):
        await client("http://example.com/x")


@pytest.mark.parametrize("module", ["dropin_request.pytest_plugin", "dropin_request.pytest_plugin.plugin"])
def test_plugin_imports_in_fresh_interpreter(module: str):
    source_root = str(Path(dropin_request.__file__).parents[1])
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(filter(None, [source_root, os.environ.get("PYTHONPATH")]))}

    proc = subprocess.run(
        [sys.executable, "-c", f"import {module}"], env=env, capture_output=True, text=True, check=False
    )
    assert proc.returncode == 0, proc.stderr


def test_plugin_registers_no_marker(pytestconfig: pytest.Config):
    assert not [line for line in pytestconfig.getini("markers") if line.startswith("dropin_request")]
