"""Keyed-JSON decoders for REST responses and stream frames.

Each record type has an explicit decode function registered in
``DECODERS``; the records themselves carry no parsing logic. Keys not
present in the payload, or null, leave the field at its default. Values
of the wrong JSON type are rejected; prices and quantities must arrive as
strings.
"""
from __future__ import annotations
import dataclasses
from typing import Any, Callable, Dict, List, Mapping, Type, TypeVar, Union

import orjson

from core.errors import ParseError
from gateway import positional
from gateway.models import (
    DEPTH_LEVEL, KLINE,
    AccountBalance, AccountInfo, AccountTrade, AccountUpdate, AggregatedTrade,
    Balance, BookTicker, CancelOrder, Datastream, Depth, DepthUpdate, Envelope,
    ExchangeInfo, Kline, KlineBar, KlinesUpdate, NewOrder, OrderUpdate,
    QueryOrder, ServerTime, SymbolFilter, SymbolInfo, SymbolPrice, TickerStats,
    TradesUpdate,
)

T = TypeVar("T")

Body = Union[bytes, bytearray, str]


def loads(body: Body) -> Any:
    try:
        return orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise ParseError(f"malformed JSON: {e}") from e


def _obj(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, dict):
        raise ParseError(f"{what}: expected a JSON object, got {type(data).__name__}")
    return data


def _list(data: Any, what: str) -> List[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ParseError(f"{what}: expected a JSON array, got {type(data).__name__}")
    return data


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


# field annotation -> accepted JSON value; decimals must arrive as strings
_TYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "int": _is_int,
    "str": lambda v: isinstance(v, str),
    "bool": lambda v: isinstance(v, bool),
    "List[str]": _is_str_list,
}


def _keyed(cls: Type[T], keys: Mapping[str, str]) -> Callable[[Any], T]:
    """Decoder for a flat record: ``keys`` maps field name -> wire key.

    Each value is checked against the field's annotation; a mismatch is a
    ParseError. JSON null leaves the field at its default.
    """
    annotations = {f.name: f.type for f in dataclasses.fields(cls)}
    checks = {name: _TYPE_CHECKS[annotations[name]] for name in keys}

    def decode(data: Any) -> T:
        data = _obj(data, cls.__name__)
        values = {}
        for name, key in keys.items():
            value = data.get(key)
            if value is None:
                continue
            if not checks[name](value):
                raise ParseError(
                    f"{cls.__name__}.{name}: expected {annotations[name]} for key {key!r}, got {value!r}"
                )
            values[name] = value
        return cls(**values)
    decode.__name__ = f"decode_{cls.__name__}"
    return decode


# ── Flat records ───────────────────────────────────────────────────────

decode_server_time = _keyed(ServerTime, {"server_time": "serverTime"})

decode_symbol_filter = _keyed(SymbolFilter, {
    "filter_type": "filterType",
    "min_price": "minPrice", "max_price": "maxPrice", "tick_size": "tickSize",
    "min_qty": "minQty", "max_qty": "maxQty", "step_size": "stepSize",
    "min_notional": "minNotional",
})

decode_aggregated_trade = _keyed(AggregatedTrade, {
    "trade_id": "a", "price": "p", "quantity": "q",
    "first_trade_id": "f", "last_trade_id": "l",
    "time": "T", "maker": "m", "best_match": "M",
})

decode_ticker_stats = _keyed(TickerStats, {
    "price_change": "priceChange",
    "price_change_percent": "priceChangePercent",
    "weighted_avg_price": "weightedAvgPrice",
    "prev_close_price": "prevClosePrice",
    "last_price": "lastPrice",
    "bid_price": "bidPrice",
    "ask_price": "askPrice",
    "open_price": "openPrice",
    "high_price": "highPrice",
    "low_price": "lowPrice",
    "volume": "volume",
    "open_time": "openTime",
    "close_time": "closeTime",
    "first_id": "firstId",
    "last_id": "lastId",
    "count": "count",
})

decode_symbol_price = _keyed(SymbolPrice, {"symbol": "symbol", "price": "price"})

decode_book_ticker = _keyed(BookTicker, {
    "symbol": "symbol",
    "bid_price": "bidPrice", "bid_qty": "bidQty",
    "ask_price": "askPrice", "ask_qty": "askQty",
})

decode_new_order = _keyed(NewOrder, {
    "symbol": "symbol", "order_id": "orderId",
    "client_order_id": "clientOrderId", "transact_time": "transactTime",
})

decode_query_order = _keyed(QueryOrder, {
    "symbol": "symbol", "order_id": "orderId", "client_order_id": "clientOrderId",
    "price": "price", "orig_qty": "origQty", "executed_qty": "executedQty",
    "status": "status", "time_in_force": "timeInForce", "type": "type",
    "side": "side", "stop_price": "stopPrice", "iceberg_qty": "icebergQty",
    "time": "time",
})

decode_cancel_order = _keyed(CancelOrder, {
    "symbol": "symbol", "order_id": "orderId",
    "orig_client_order_id": "origClientOrderId", "client_order_id": "clientOrderId",
})

decode_balance = _keyed(Balance, {"asset": "asset", "free": "free", "locked": "locked"})

decode_account_trade = _keyed(AccountTrade, {
    "id": "id", "price": "price", "qty": "qty",
    "commission": "commission", "commission_asset": "commissionAsset",
    "time": "time", "buyer": "isBuyer", "maker": "isMaker",
    "best_match": "isBestMatch",
})

decode_datastream = _keyed(Datastream, {"listen_key": "listenKey"})

decode_envelope = _keyed(Envelope, {"event_type": "e", "time": "E"})

decode_trades_update = _keyed(TradesUpdate, {
    "event_type": "e", "time": "E", "symbol": "s",
    "trade_id": "a", "price": "p", "quantity": "q",
    "first_break_down_trade_id": "f", "last_break_down_trade_id": "l",
    "trade_time": "T", "maker": "m",
})

decode_kline_bar = _keyed(KlineBar, {
    "start_time": "t", "end_time": "T", "symbol": "s", "interval": "i",
    "first_trade_id": "f", "last_trade_id": "L",
    "open_price": "o", "close_price": "c", "high": "h", "low": "l",
    "volume": "v", "trades": "n", "final": "x",
    "volume_quote": "q", "volume_active_buy": "V", "volume_quote_active_buy": "Q",
})

decode_account_balance = _keyed(AccountBalance, {"asset": "a", "free": "f", "locked": "l"})

decode_order_update = _keyed(OrderUpdate, {
    "event_type": "e", "time": "E", "symbol": "s",
    "new_client_order_id": "c", "side": "S", "order_type": "o",
    "time_in_force": "f", "orig_qty": "q", "price": "p",
    "execution_type": "x", "status": "X", "reject_reason": "r",
    "order_id": "i", "transaction_time": "T",
    "filled_qty": "l", "filled_price": "L", "total_filled_qty": "z",
    "commission": "n", "commission_asset": "N",
    "trade_id": "t", "maker": "m",
})


# ── Nested records ─────────────────────────────────────────────────────

def _levels(data: Any, what: str) -> list:
    return [positional.decode(item, DEPTH_LEVEL) for item in _list(data, what)]


_depth_flat = _keyed(Depth, {"last_update_id": "lastUpdateId"})


def decode_depth(data: Any) -> Depth:
    depth = _depth_flat(data)
    depth.bids = _levels(data.get("bids"), "Depth.bids")
    depth.asks = _levels(data.get("asks"), "Depth.asks")
    return depth


_depth_update_flat = _keyed(DepthUpdate, {
    "event_type": "e", "time": "E", "symbol": "s", "update_id": "u",
})


def decode_depth_update(data: Any) -> DepthUpdate:
    update = _depth_update_flat(data)
    update.bids = _levels(data.get("b"), "DepthUpdate.b")
    update.asks = _levels(data.get("a"), "DepthUpdate.a")
    return update


_klines_update_flat = _keyed(KlinesUpdate, {"event_type": "e", "time": "E", "symbol": "s"})


def decode_klines_update(data: Any) -> KlinesUpdate:
    update = _klines_update_flat(data)
    if data.get("k") is not None:
        update.kline = decode_kline_bar(data["k"])
    return update


_account_flat = _keyed(AccountInfo, {
    "maker_commission": "makerCommission", "taker_commission": "takerCommission",
    "buyer_commission": "buyerCommission", "seller_commission": "sellerCommission",
    "can_trade": "canTrade", "can_withdraw": "canWithdraw", "can_deposit": "canDeposit",
})


def decode_account_info(data: Any) -> AccountInfo:
    info = _account_flat(data)
    info.balances = [decode_balance(b) for b in _list(data.get("balances"), "AccountInfo.balances")]
    return info


_account_update_flat = _keyed(AccountUpdate, {
    "event_type": "e", "time": "E",
    "maker_commission": "m", "taker_commission": "t",
    "buyer_commission": "b", "seller_commission": "s",
    "can_trade": "T", "can_withdraw": "W", "can_deposit": "D",
})


def decode_account_update(data: Any) -> AccountUpdate:
    update = _account_update_flat(data)
    update.balances = [decode_account_balance(b) for b in _list(data.get("B"), "AccountUpdate.B")]
    return update


_symbol_info_flat = _keyed(SymbolInfo, {
    "symbol": "symbol", "status": "status",
    "base_asset": "baseAsset", "base_asset_precision": "baseAssetPrecision",
    "quote_asset": "quoteAsset", "quote_asset_precision": "quoteAssetPrecision",
    "order_types": "orderTypes", "iceberg_allowed": "icebergAllowed",
})


def decode_symbol_info(data: Any) -> SymbolInfo:
    info = _symbol_info_flat(data)
    info.filters = [decode_symbol_filter(f) for f in _list(data.get("filters"), "SymbolInfo.filters")]
    return info


def decode_exchange_info(data: Any) -> ExchangeInfo:
    data = _obj(data, "ExchangeInfo")
    return ExchangeInfo(symbols=[decode_symbol_info(s) for s in _list(data.get("symbols"), "ExchangeInfo.symbols")])


def decode_kline(data: Any) -> Kline:
    return positional.decode(data, KLINE)


# ── Registry ───────────────────────────────────────────────────────────

DECODERS: Dict[type, Callable[[Any], Any]] = {
    ServerTime: decode_server_time,
    ExchangeInfo: decode_exchange_info,
    SymbolInfo: decode_symbol_info,
    SymbolFilter: decode_symbol_filter,
    Depth: decode_depth,
    Kline: decode_kline,
    AggregatedTrade: decode_aggregated_trade,
    TickerStats: decode_ticker_stats,
    SymbolPrice: decode_symbol_price,
    BookTicker: decode_book_ticker,
    NewOrder: decode_new_order,
    QueryOrder: decode_query_order,
    CancelOrder: decode_cancel_order,
    Balance: decode_balance,
    AccountInfo: decode_account_info,
    AccountTrade: decode_account_trade,
    Datastream: decode_datastream,
    Envelope: decode_envelope,
    DepthUpdate: decode_depth_update,
    KlinesUpdate: decode_klines_update,
    KlineBar: decode_kline_bar,
    TradesUpdate: decode_trades_update,
    AccountUpdate: decode_account_update,
    OrderUpdate: decode_order_update,
}


def _decoder_for(record: Type[T]) -> Callable[[Any], T]:
    try:
        return DECODERS[record]
    except KeyError:
        raise TypeError(f"no decoder registered for {record.__name__}") from None


def decode_json(body: Body, record: Type[T]) -> T:
    """Decode a JSON object body into ``record``."""
    return _decoder_for(record)(loads(body))


def decode_json_list(body: Body, record: Type[T]) -> List[T]:
    """Decode a JSON array body into a list of ``record``."""
    decoder = _decoder_for(record)
    items = _list(loads(body), f"list of {record.__name__}")
    return [decoder(item) for item in items]
