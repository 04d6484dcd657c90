"""Wire records and request options for the Binance spot API.

Prices, quantities and commissions are kept as the strings the exchange
sends. Every record field has a zero default so partially populated
payloads still build.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List

from core.types import (
    KlineInterval, OrderSide, OrderType, TimeInForce, UpdateType,
)
from gateway.params import param
from gateway.positional import PositionalField, shape_for


# ── General ────────────────────────────────────────────────────────────

@dataclass(slots=True)
class ServerTime:
    server_time: int = 0


@dataclass(slots=True)
class SymbolFilter:
    filter_type: str = ""
    # PRICE_FILTER
    min_price: str = ""
    max_price: str = ""
    tick_size: str = ""
    # LOT_SIZE
    min_qty: str = ""
    max_qty: str = ""
    step_size: str = ""
    # MIN_NOTIONAL
    min_notional: str = ""


@dataclass(slots=True)
class SymbolInfo:
    symbol: str = ""
    status: str = ""
    base_asset: str = ""
    base_asset_precision: int = 0
    quote_asset: str = ""
    quote_asset_precision: int = 0
    order_types: List[str] = field(default_factory=list)
    iceberg_allowed: bool = False
    filters: List[SymbolFilter] = field(default_factory=list)


@dataclass(slots=True)
class ExchangeInfo:
    symbols: List[SymbolInfo] = field(default_factory=list)


# ── Market data ────────────────────────────────────────────────────────

@dataclass(slots=True)
class DepthLevel:
    """One order book level, sent as ``["price", "qty"]``."""
    price: str = ""
    quantity: str = ""


@dataclass(slots=True)
class Depth:
    last_update_id: int = 0
    bids: List[DepthLevel] = field(default_factory=list)
    asks: List[DepthLevel] = field(default_factory=list)


@dataclass(slots=True)
class Kline:
    """One candlestick bar, sent as an 11+ element array."""
    open_time: int = 0
    open_price: str = ""
    high: str = ""
    low: str = ""
    close_price: str = ""
    volume: str = ""
    close_time: int = 0
    quote_asset_volume: str = ""
    trades: int = 0
    taker_buy_base_asset_volume: str = ""
    taker_buy_quote_asset_volume: str = ""


DEPTH_LEVEL = shape_for(
    DepthLevel, "depth level",
    PositionalField("price"),
    PositionalField("quantity"),
)

KLINE = shape_for(
    Kline, "kline",
    PositionalField("open_time", integer=True),
    PositionalField("open_price"),
    PositionalField("high"),
    PositionalField("low"),
    PositionalField("close_price"),
    PositionalField("volume"),
    PositionalField("close_time", integer=True),
    PositionalField("quote_asset_volume"),
    PositionalField("trades", integer=True, bits=32),
    PositionalField("taker_buy_base_asset_volume"),
    PositionalField("taker_buy_quote_asset_volume"),
)


@dataclass(slots=True)
class AggregatedTrade:
    trade_id: int = 0
    price: str = ""
    quantity: str = ""
    first_trade_id: int = 0
    last_trade_id: int = 0
    time: int = 0
    maker: bool = False  # buyer was the maker
    best_match: bool = False


@dataclass(slots=True)
class TickerStats:
    price_change: str = ""
    price_change_percent: str = ""
    weighted_avg_price: str = ""
    prev_close_price: str = ""
    last_price: str = ""
    bid_price: str = ""
    ask_price: str = ""
    open_price: str = ""
    high_price: str = ""  # 24h high
    low_price: str = ""   # 24h low
    volume: str = ""
    open_time: int = 0
    close_time: int = 0
    first_id: int = 0
    last_id: int = 0
    count: int = 0


@dataclass(slots=True)
class SymbolPrice:
    symbol: str = ""
    price: str = ""


@dataclass(slots=True)
class BookTicker:
    symbol: str = ""
    bid_price: str = ""
    bid_qty: str = ""
    ask_price: str = ""
    ask_qty: str = ""


# ── Account / orders ───────────────────────────────────────────────────

@dataclass(slots=True)
class NewOrder:
    symbol: str = ""
    order_id: int = 0
    client_order_id: str = ""
    transact_time: int = 0


@dataclass(slots=True)
class QueryOrder:
    symbol: str = ""
    order_id: int = 0
    client_order_id: str = ""
    price: str = ""
    orig_qty: str = ""
    executed_qty: str = ""
    status: str = ""
    time_in_force: str = ""
    type: str = ""
    side: str = ""
    stop_price: str = ""
    iceberg_qty: str = ""
    time: int = 0


@dataclass(slots=True)
class CancelOrder:
    symbol: str = ""
    order_id: int = 0
    orig_client_order_id: str = ""
    client_order_id: str = ""


@dataclass(slots=True)
class Balance:
    asset: str = ""
    free: str = ""
    locked: str = ""


@dataclass(slots=True)
class AccountInfo:
    maker_commission: int = 0
    taker_commission: int = 0
    buyer_commission: int = 0
    seller_commission: int = 0
    can_trade: bool = False
    can_withdraw: bool = False
    can_deposit: bool = False
    balances: List[Balance] = field(default_factory=list)


@dataclass(slots=True)
class AccountTrade:
    id: int = 0
    price: str = ""
    qty: str = ""
    commission: str = ""
    commission_asset: str = ""
    time: int = 0
    buyer: bool = False
    maker: bool = False
    best_match: bool = False


@dataclass(slots=True)
class Datastream:
    """User data stream session. Doubles as the options for keepalive/close."""
    listen_key: str = param("listenKey")


# ── Stream updates ─────────────────────────────────────────────────────

@dataclass(slots=True)
class Envelope:
    """Fields shared by every stream message; used to pick a decode target."""
    event_type: str = ""
    time: int = 0


@dataclass(slots=True)
class DepthUpdate:
    event_type: str = ""
    time: int = 0
    symbol: str = ""
    update_id: int = 0  # syncs with last_update_id from the depth endpoint
    bids: List[DepthLevel] = field(default_factory=list)
    asks: List[DepthLevel] = field(default_factory=list)


@dataclass(slots=True)
class KlineBar:
    start_time: int = 0
    end_time: int = 0
    symbol: str = ""
    interval: str = ""
    first_trade_id: int = 0
    last_trade_id: int = 0
    open_price: str = ""
    close_price: str = ""
    high: str = ""
    low: str = ""
    volume: str = ""
    trades: int = 0
    final: bool = False  # bar is closed and will not change
    volume_quote: str = ""
    volume_active_buy: str = ""
    volume_quote_active_buy: str = ""


@dataclass(slots=True)
class KlinesUpdate:
    event_type: str = ""
    time: int = 0
    symbol: str = ""
    kline: KlineBar = field(default_factory=KlineBar)


@dataclass(slots=True)
class TradesUpdate:
    event_type: str = ""
    time: int = 0
    symbol: str = ""
    trade_id: int = 0
    price: str = ""
    quantity: str = ""
    first_break_down_trade_id: int = 0
    last_break_down_trade_id: int = 0
    trade_time: int = 0
    maker: bool = False


@dataclass(slots=True)
class AccountBalance:
    asset: str = ""
    free: str = ""
    locked: str = ""


@dataclass(slots=True)
class AccountUpdate:
    event_type: str = UpdateType.OUTBOUND_ACCOUNT_INFO.value
    time: int = 0
    maker_commission: int = 0
    taker_commission: int = 0
    buyer_commission: int = 0
    seller_commission: int = 0
    can_trade: bool = False
    can_withdraw: bool = False
    can_deposit: bool = False
    balances: List[AccountBalance] = field(default_factory=list)


@dataclass(slots=True)
class OrderUpdate:
    event_type: str = UpdateType.EXECUTION_REPORT.value
    time: int = 0
    symbol: str = ""
    new_client_order_id: str = ""
    side: str = ""
    order_type: str = ""
    time_in_force: str = ""
    orig_qty: str = ""
    price: str = ""
    execution_type: str = ""
    status: str = ""
    reject_reason: str = ""
    order_id: int = 0
    # wire key "T"; the exchange sends a single transaction time per report
    transaction_time: int = 0
    filled_qty: str = ""         # last filled quantity
    filled_price: str = ""       # last filled price
    total_filled_qty: str = ""   # cumulative
    commission: str = ""
    commission_asset: str = ""
    trade_id: int = 0
    maker: bool = False


# ── Request options ────────────────────────────────────────────────────

@dataclass(slots=True)
class DepthOpts:
    symbol: str = param("symbol")
    limit: int = param("limit", 0)  # max 100


@dataclass(slots=True)
class AggregatedTradeOpts:
    symbol: str = param("symbol")
    from_id: int = param("fromId", 0, omitempty=True)
    limit: int = param("limit", 0)  # max 500
    start_time: int = param("startTime", 0, omitempty=True)
    end_time: int = param("endTime", 0, omitempty=True)


@dataclass(slots=True)
class KlinesOpts:
    symbol: str = param("symbol")
    interval: KlineInterval | str = param("interval")
    limit: int = param("limit", 0)  # max 500
    start_time: int = param("startTime", 0, omitempty=True)
    end_time: int = param("endTime", 0, omitempty=True)


@dataclass(slots=True)
class TickerOpts:
    symbol: str = param("symbol")


@dataclass(slots=True)
class NewOrderOpts:
    symbol: str = param("symbol")
    side: OrderSide | str = param("side")
    type: OrderType | str = param("type")
    time_in_force: TimeInForce | str = param("timeInForce", omitempty=True)
    quantity: str = param("quantity")
    price: str = param("price", omitempty=True)
    new_client_order_id: str = param("newClientOrderId", omitempty=True)
    stop_price: str = param("stopPrice", omitempty=True)
    iceberg_qty: str = param("icebergQty", omitempty=True)


@dataclass(slots=True)
class QueryOrderOpts:
    """Either order_id or orig_client_order_id must be set."""
    symbol: str = param("symbol")
    order_id: int = param("orderId", 0, omitempty=True)
    orig_client_order_id: str = param("origClientOrderId", omitempty=True)


@dataclass(slots=True)
class CancelOrderOpts:
    """Either order_id or orig_client_order_id must be set."""
    symbol: str = param("symbol")
    order_id: int = param("orderId", 0, omitempty=True)
    orig_client_order_id: str = param("origClientOrderId", omitempty=True)
    new_client_order_id: str = param("newClientOrderId", omitempty=True)


@dataclass(slots=True)
class OpenOrdersOpts:
    symbol: str = param("symbol")


@dataclass(slots=True)
class AllOrdersOpts:
    """If order_id is set, orders >= that id are returned; else the most recent."""
    symbol: str = param("symbol")
    order_id: int = param("orderId", 0, omitempty=True)
    limit: int = param("limit", 0)  # max 500


@dataclass(slots=True)
class TradesOpts:
    symbol: str = param("symbol")
    limit: int = param("limit", 0)  # max 500
    from_id: int = param("fromId", 0, omitempty=True)
