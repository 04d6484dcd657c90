"""Gateway package: Binance spot REST transport, decoders and streams.

Re-exports the client and the stream readers so consumers can write::

    from gateway import BinanceClient, DepthStream, AccountStream
"""
from gateway.client import BinanceClient
from gateway.transport import Transport, PreparedRequest, sign
from gateway.ws import (
    StreamReader,
    DepthStream,
    KlinesStream,
    TradesStream,
    AccountStream,
)

__all__ = [
    "BinanceClient",
    "Transport",
    "PreparedRequest",
    "sign",
    "StreamReader",
    "DepthStream",
    "KlinesStream",
    "TradesStream",
    "AccountStream",
]
