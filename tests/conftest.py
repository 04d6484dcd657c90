"""Shared test fixtures."""
import asyncio
import sys
import os
from typing import Dict, List, Tuple

import orjson
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.config import ClientConfig  # noqa: E402

API_KEY = "vmPUZE6mv9SD5VNHk4HlWFsOr6aKE2zvsw0MuIgwCIPy6utIco14y7Ju91duEh8A"
API_SECRET = "NhqPtmdSJYdKjVHjA7PZj4Mge3R5YNiP1e3UZjInClVN65XAbvqqM6A7H5fATj0j"
FIXED_TS = 1499827319559


def fixed_clock() -> int:
    return FIXED_TS


@pytest.fixture
def config():
    return ClientConfig(api_key=API_KEY, api_secret=API_SECRET)


class FakeExchange:
    """In-process REST endpoint that records requests and replays canned bodies."""

    def __init__(self):
        self.responses: Dict[Tuple[str, str], Tuple[int, bytes]] = {}
        self.requests: List[dict] = []
        self.server: TestServer = None

    def reply(self, method: str, path: str, body, status: int = 200) -> None:
        if not isinstance(body, (bytes, str)):
            body = orjson.dumps(body)
        if isinstance(body, str):
            body = body.encode()
        self.responses[(method, path)] = (status, body)

    async def _handle(self, request: web.Request) -> web.Response:
        self.requests.append({
            "method": request.method,
            "path": request.path,
            "query": request.rel_url.raw_query_string,
            "headers": dict(request.headers),
            "body": await request.text(),
        })
        status, body = self.responses.get((request.method, request.path), (404, b'{"code":-1,"msg":"not found"}'))
        return web.Response(status=status, body=body, content_type="application/json")

    @property
    def base_url(self) -> str:
        return f"http://{self.server.host}:{self.server.port}"

    @property
    def last(self) -> dict:
        return self.requests[-1]


@pytest.fixture
async def exchange():
    fake = FakeExchange()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", fake._handle)
    fake.server = TestServer(app, host="127.0.0.1")
    await fake.server.start_server()
    yield fake
    await fake.server.close()


@pytest.fixture
def exchange_config(exchange):
    return ClientConfig(api_key=API_KEY, api_secret=API_SECRET, base_url=exchange.base_url)


_CLOSE = object()
_DROP = object()


class FakeConnection:
    """Stands in for a websockets connection: queued frames, recv/close."""

    def __init__(self, frames=()):
        self._frames: asyncio.Queue = asyncio.Queue()
        self.close_calls = 0
        for frame in frames:
            self.push(frame)

    def push(self, frame) -> None:
        if isinstance(frame, dict):
            frame = orjson.dumps(frame).decode()
        self._frames.put_nowait(frame)

    def drop(self) -> None:
        """Simulate an abnormal disconnect by the peer."""
        self._frames.put_nowait(_DROP)

    async def recv(self):
        frame = await self._frames.get()
        if frame is _CLOSE:
            raise ConnectionClosedOK(None, None)
        if frame is _DROP:
            raise ConnectionClosedError(None, None)
        return frame

    async def close(self) -> None:
        self.close_calls += 1
        self._frames.put_nowait(_CLOSE)


@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture
def depth_update_msg():
    return {
        "e": "depthUpdate",
        "E": 123456789,
        "s": "ETHBTC",
        "u": 157,
        "b": [["0.0024", "10"]],
        "a": [["0.0026", "100"], ["0.0027", "5.5"]],
    }


@pytest.fixture
def account_update_msg():
    return {
        "e": "outboundAccountInfo",
        "E": 1499405658849,
        "m": 0, "t": 0, "b": 0, "s": 0,
        "T": True, "W": True, "D": True,
        "B": [
            {"a": "LTC", "f": "17366.18538083", "l": "0.00000000"},
            {"a": "BTC", "f": "10537.85314051", "l": "2.19464093"},
        ],
    }


@pytest.fixture
def order_update_msg():
    return {
        "e": "executionReport",
        "E": 1499405658658,
        "s": "ETHBTC",
        "c": "mUvoqJxFIILMdfAW5iGSOW",
        "S": "BUY",
        "o": "LIMIT",
        "f": "GTC",
        "q": "1.00000000",
        "p": "0.10264410",
        "x": "NEW",
        "X": "NEW",
        "r": "NONE",
        "i": 4293153,
        "l": "0.00000000",
        "z": "0.00000000",
        "L": "0.00000000",
        "n": "0",
        "N": None,
        "T": 1499405658657,
        "t": -1,
        "m": False,
    }
