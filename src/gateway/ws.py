"""Binance spot WebSocket stream readers.

One reader per connection, one decoded update per ``read()``:
- DepthStream / KlinesStream / TradesStream: a single update type per topic
- AccountStream: the user data stream, which carries account snapshots and
  execution reports on the same socket; each frame is probed for its event
  type before the full decode

No reconnection here. ``close()`` is idempotent and ends any read in flight
with a ReadError. A stream must be read from one task only.
"""
from __future__ import annotations
import logging
from typing import Any, AsyncIterator, Callable, Generic, Optional, Tuple, TypeVar, Union

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from core.errors import ParseError, ProtocolError, ReadError, StreamClosedError
from core.types import UpdateType
from gateway.decode import (
    decode_account_update, decode_depth_update, decode_envelope,
    decode_klines_update, decode_order_update, decode_trades_update, loads,
)
from gateway.models import AccountUpdate, DepthUpdate, KlinesUpdate, OrderUpdate, TradesUpdate

log = logging.getLogger(__name__)

U = TypeVar("U")

MAX_FRAME_BYTES = 10 * 1024 * 1024


async def connect(url: str) -> Any:
    """Dial a stream. Connection errors propagate from ``websockets``."""
    conn = await websockets.connect(
        url,
        ping_interval=20,
        ping_timeout=10,
        max_size=MAX_FRAME_BYTES,
    )
    log.info("WS connected: %s", url)
    return conn


class StreamReader(Generic[U]):
    """Owns one open connection and decodes each frame with ``decoder``."""

    decoder: Callable[[Any], U]

    def __init__(self, conn: Any, topic: str):
        self._conn = conn
        self.topic = topic
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def _recv(self) -> Union[str, bytes]:
        if self._closed:
            raise StreamClosedError(f"{self.topic}: stream is closed")
        try:
            return await self._conn.recv()
        except ConnectionClosedOK as e:
            self._closed = True
            raise StreamClosedError(f"{self.topic}: stream is closed ({e})") from e
        except ConnectionClosed as e:
            self._closed = True
            raise ReadError(f"{self.topic}: connection lost: {e}") from e

    async def read(self) -> U:
        raw = await self._recv()
        try:
            return type(self).decoder(loads(raw))
        except ParseError as e:
            raise ReadError(f"{self.topic}: undecodable frame: {e}") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._conn.close()
        log.info("WS closed: %s", self.topic)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def __aiter__(self) -> AsyncIterator[U]:
        return self

    async def __anext__(self) -> U:
        try:
            return await self.read()
        except StreamClosedError:
            raise StopAsyncIteration from None


class DepthStream(StreamReader[DepthUpdate]):
    decoder = staticmethod(decode_depth_update)


class KlinesStream(StreamReader[KlinesUpdate]):
    decoder = staticmethod(decode_klines_update)


class TradesStream(StreamReader[TradesUpdate]):
    decoder = staticmethod(decode_trades_update)


AccountEvent = Union[AccountUpdate, OrderUpdate]

_ACCOUNT_DECODERS = {
    UpdateType.OUTBOUND_ACCOUNT_INFO.value: decode_account_update,
    UpdateType.EXECUTION_REPORT.value: decode_order_update,
}


class AccountStream(StreamReader[AccountEvent]):
    """User data stream: account snapshots and order execution reports."""

    @staticmethod
    def decoder(data: Any) -> AccountEvent:
        envelope = decode_envelope(data)
        try:
            full = _ACCOUNT_DECODERS[envelope.event_type]
        except KeyError:
            raise ProtocolError(envelope.event_type) from None
        return full(data)

    async def read_event(self) -> AccountEvent:
        """Next update as a single value: AccountUpdate or OrderUpdate."""
        return await super().read()

    async def read(self) -> Tuple[Optional[AccountUpdate], Optional[OrderUpdate]]:  # type: ignore[override]
        """Next update; exactly one slot of the pair is set."""
        event = await self.read_event()
        if isinstance(event, AccountUpdate):
            return event, None
        return None, event

    async def __anext__(self) -> AccountEvent:  # type: ignore[override]
        try:
            return await self.read_event()
        except StreamClosedError:
            raise StopAsyncIteration from None


def stream_topic(symbol: str, suffix: str) -> str:
    return f"{symbol.lower()}@{suffix}"
