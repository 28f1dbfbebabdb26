"""Basic usage examples for dropin_request.

Run directly:
    python -m examples.basic_usage

Set HTTPBIN env var to point elsewhere if needed.
"""

import asyncio
import os
import sys
from typing import Any

from dropin_request import CancellationError, HTTPStatusError, request


def httpbin(path: str) -> str:
    return f"{os.environ.get('HTTPBIN', 'https://httpbin.org').rstrip('/')}/{path}"


async def example_callback() -> None:
    """Example 1: Legacy callback"""
    done = asyncio.Event()

    def callback(err: Exception | None, response: Any, body: Any) -> None:
        print({"example": "callback", "error": err, "status": response.status_code, "args": body["args"]})
        done.set()

    request(httpbin("get"), {"qs": {"q": "dropin"}, "json": True}, callback)
    await done.wait()


async def example_await_json() -> None:
    """Example 2: Await the parsed body"""
    data = await request.get(httpbin("get"), qs={"q": "dropin"}, json=True)
    print({"example": "await_json", "args": data["args"]})


async def example_post_json() -> None:
    """Example 3: POST JSON"""
    data = await request.post(httpbin("post"), json={"message": "hello"})
    print({"example": "post_json", "echo": data["json"]})


async def example_stream_download() -> None:
    """Example 4: Streaming download"""
    result = request(httpbin("stream-bytes/64"))
    chunks = [chunk async for chunk in result]
    response = await result
    print(
        {
            "example": "stream_download",
            "status": response.status_code,
            "total_bytes": sum(len(c) for c in chunks),
        }
    )


async def example_status_error() -> None:
    """Example 5: Status errors"""
    try:
        await request(httpbin("status/404"))
        raise RuntimeError("should have raised")
    except HTTPStatusError as e:
        print({"example": "status_error", "status": e.status_code, "error": str(e)})


async def example_timeouts() -> None:
    """Example 6: Timeouts"""
    try:
        await request(httpbin("delay/2"), timeout=500)
        raise RuntimeError("should have raised")
    except CancellationError as e:
        print({"example": "timeouts", "code": e.code, "error": str(e)})


async def example_defaults_and_jar() -> None:
    """Example 7: Defaults (headers, cookies)"""
    client = request.defaults({"headers": {"X-Client": "dropin-demo"}, "jar": True})
    await client(httpbin("response-headers"), qs={"Set-Cookie": "session=abc"})
    data = await client(httpbin("cookies"), json=True)
    print({"example": "defaults_and_jar", "cookies": data["cookies"]})


if __name__ == "__main__":  # pragma: no cover
    from ._utils import run_examples

    asyncio.run(run_examples(sys.modules[__name__]))
