"""Binance spot API client: REST endpoints and stream constructors.

Endpoint methods only validate and clamp their options before handing off
to the transport; all decoding goes through ``gateway.decode``.
"""
from __future__ import annotations
import logging
from typing import Callable, List, Optional

import aiohttp

from core.config import ClientConfig
from core.errors import ValidationError
from core.types import KlineInterval
from core.utils import clamp_limit, time_now_ms
from gateway import positional, ws
from gateway.decode import decode_json, decode_json_list
from gateway.models import (
    AccountInfo, AccountTrade, AggregatedTrade, AggregatedTradeOpts, AllOrdersOpts,
    BookTicker, CancelOrder, CancelOrderOpts, Datastream, Depth, DepthOpts,
    ExchangeInfo, KLINE, Kline, KlinesOpts, NewOrder, NewOrderOpts, OpenOrdersOpts,
    QueryOrder, QueryOrderOpts, ServerTime, SymbolPrice, TickerOpts, TickerStats,
    TradesOpts,
)
from gateway.params import encode_params
from gateway.transport import Transport

log = logging.getLogger(__name__)

DEPTH_MAX_LIMIT = 100
TRADES_MAX_LIMIT = 500


def _require(opts, name: str):
    if opts is None:
        raise ValidationError(f"{name} is required")
    return opts


class BinanceClient:
    """Async client for the Binance spot API."""

    def __init__(self, config: ClientConfig,
                 clock: Callable[[], int] = time_now_ms,
                 session: Optional[aiohttp.ClientSession] = None,
                 dialer: Callable = ws.connect):
        self.config = config
        self.transport = Transport(config, clock=clock, session=session)
        self._dial = dialer

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "BinanceClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # --- General ---

    async def ping(self) -> None:
        """Test connectivity to the REST API."""
        await self.transport.execute("GET", "api/v3/ping")

    async def server_time(self) -> ServerTime:
        body = await self.transport.execute("GET", "api/v3/time")
        return decode_json(body, ServerTime)

    async def exchange_info(self) -> ExchangeInfo:
        body = await self.transport.execute("GET", "api/v3/exchangeInfo")
        return decode_json(body, ExchangeInfo)

    # --- Market data ---

    async def depth(self, opts: DepthOpts) -> Depth:
        """Order book for a symbol. Limit defaults to (and caps at) 100."""
        _require(opts, "depth opts")
        if not opts.symbol:
            raise ValidationError("symbol is required")
        opts.limit = clamp_limit(opts.limit, DEPTH_MAX_LIMIT)
        body = await self.transport.execute("GET", "api/v3/depth", encode_params(opts))
        return decode_json(body, Depth)

    async def aggregated_trades(self, opts: AggregatedTradeOpts) -> List[AggregatedTrade]:
        """Compressed trades: fills from the same taker order at one price are merged.

        If both start_time and end_time are set they must be less than 24h
        apart. With no from_id/start/end the most recent trades come back.
        """
        _require(opts, "aggregated trade opts")
        if not opts.symbol:
            raise ValidationError("symbol is required")
        opts.limit = clamp_limit(opts.limit, TRADES_MAX_LIMIT)
        body = await self.transport.execute("GET", "api/v3/aggTrades", encode_params(opts))
        return decode_json_list(body, AggregatedTrade)

    async def klines(self, opts: KlinesOpts) -> List[Kline]:
        """Candlestick bars, identified by open time."""
        _require(opts, "klines opts")
        if not opts.symbol or not opts.interval:
            raise ValidationError("symbol or interval are missing")
        opts.limit = clamp_limit(opts.limit, TRADES_MAX_LIMIT)
        body = await self.transport.execute("GET", "api/v3/klines", encode_params(opts))
        return positional.decode_many(body, KLINE)

    async def ticker(self, opts: TickerOpts) -> TickerStats:
        """24 hour price change statistics."""
        _require(opts, "ticker opts")
        body = await self.transport.execute("GET", "api/v3/ticker/24hr", encode_params(opts))
        return decode_json(body, TickerStats)

    async def prices(self) -> List[SymbolPrice]:
        body = await self.transport.execute("GET", "api/v3/ticker/price")
        return decode_json_list(body, SymbolPrice)

    async def book_tickers(self) -> List[BookTicker]:
        """Best bid/ask price and quantity for every symbol."""
        body = await self.transport.execute("GET", "api/v3/ticker/bookTicker")
        return decode_json_list(body, BookTicker)

    # --- Signed (account) ---

    async def new_order(self, opts: NewOrderOpts) -> NewOrder:
        _require(opts, "new order opts")
        body = await self.transport.execute("POST", "api/v3/order", encode_params(opts), signed=True)
        return decode_json(body, NewOrder)

    async def new_order_test(self, opts: NewOrderOpts) -> None:
        """Validate an order without sending it to the matching engine."""
        _require(opts, "new order opts")
        await self.transport.execute("POST", "api/v3/order/test", encode_params(opts), signed=True)

    async def query_order(self, opts: QueryOrderOpts) -> QueryOrder:
        _require(opts, "query order opts")
        if opts.order_id <= 0 and not opts.orig_client_order_id:
            raise ValidationError("order id must be set")
        body = await self.transport.execute("GET", "api/v3/order", encode_params(opts), signed=True)
        return decode_json(body, QueryOrder)

    async def cancel_order(self, opts: CancelOrderOpts) -> CancelOrder:
        _require(opts, "cancel order opts")
        if opts.order_id <= 0 and not opts.orig_client_order_id:
            raise ValidationError("order id must be set")
        body = await self.transport.execute("DELETE", "api/v3/order", encode_params(opts), signed=True)
        return decode_json(body, CancelOrder)

    async def open_orders(self, opts: OpenOrdersOpts) -> List[QueryOrder]:
        _require(opts, "open orders opts")
        body = await self.transport.execute("GET", "api/v3/openOrders", encode_params(opts), signed=True)
        return decode_json_list(body, QueryOrder)

    async def all_orders(self, opts: AllOrdersOpts) -> List[QueryOrder]:
        """All account orders: active, canceled or filled."""
        _require(opts, "all orders opts")
        if opts.limit == 0:
            opts.limit = TRADES_MAX_LIMIT
        body = await self.transport.execute("GET", "api/v3/allOrders", encode_params(opts), signed=True)
        return decode_json_list(body, QueryOrder)

    async def account(self) -> AccountInfo:
        body = await self.transport.execute("GET", "api/v3/account", signed=True)
        return decode_json(body, AccountInfo)

    async def trades(self, opts: TradesOpts) -> List[AccountTrade]:
        """Account trades for one symbol."""
        _require(opts, "trades opts")
        opts.limit = clamp_limit(opts.limit, TRADES_MAX_LIMIT)
        body = await self.transport.execute("GET", "api/v3/myTrades", encode_params(opts), signed=True)
        return decode_json_list(body, AccountTrade)

    # --- User data stream session (API key, no signature) ---

    async def start_user_stream(self) -> str:
        """Open a user data stream and return its listen key."""
        body = await self.transport.execute("POST", "api/v3/userDataStream", attach_key=True)
        return decode_json(body, Datastream).listen_key

    async def keepalive_user_stream(self, listen_key: str) -> None:
        """Extend the listen key's validity; call before it expires (60 min)."""
        if not listen_key:
            raise ValidationError("listen key is required")
        await self.transport.execute("PUT", "api/v3/userDataStream",
                                     encode_params(Datastream(listen_key=listen_key)),
                                     attach_key=True)

    async def close_user_stream(self, listen_key: str) -> None:
        if not listen_key:
            raise ValidationError("listen key is required")
        await self.transport.execute("DELETE", "api/v3/userDataStream",
                                     encode_params(Datastream(listen_key=listen_key)),
                                     attach_key=True)

    # --- Streams ---

    async def _open(self, cls, topic: str):
        conn = await self._dial(self.config.ws_url + topic)
        return cls(conn, topic)

    async def depth_ws(self, symbol: str) -> ws.DepthStream:
        if not symbol:
            raise ValidationError("symbol is required")
        return await self._open(ws.DepthStream, ws.stream_topic(symbol, "depth"))

    async def klines_ws(self, symbol: str, interval: KlineInterval | str) -> ws.KlinesStream:
        if not symbol or not interval:
            raise ValidationError("symbol or interval are missing")
        interval = interval.value if isinstance(interval, KlineInterval) else interval
        return await self._open(ws.KlinesStream, ws.stream_topic(symbol, f"kline_{interval}"))

    async def trades_ws(self, symbol: str) -> ws.TradesStream:
        if not symbol:
            raise ValidationError("symbol is required")
        return await self._open(ws.TradesStream, ws.stream_topic(symbol, "aggTrade"))

    async def account_ws(self, listen_key: str) -> ws.AccountStream:
        if not listen_key:
            raise ValidationError("listen key is required")
        return await self._open(ws.AccountStream, listen_key)
