from __future__ import annotations
from enum import Enum


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class OrderStatus(str, Enum):
    NEW = "NEW"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    PENDING_CANCEL = "PENDING_CANCEL"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    REPLACED = "REPLACED"
    TRADE = "TRADE"


class OrderFailure(str, Enum):
    """Order rejection reasons reported on execution reports."""
    NONE = "NONE"
    UNKNOWN_INSTRUMENT = "UNKNOWN_INSTRUMENT"
    MARKET_CLOSED = "MARKET_CLOSED"
    PRICE_QTY_EXCEED_HARD_LIMITS = "PRICE_QTY_EXCEED_HARD_LIMITS"
    UNKNOWN_ORDER = "UNKNOWN_ORDER"
    DUPLICATE_ORDER = "DUPLICATE_ORDER"
    UNKNOWN_ACCOUNT = "UNKNOWN_ACCOUNT"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    ACCOUNT_CANNOT_SETTLE = "ACCOUNT_CANNOT_SETTLE"


class TimeInForce(str, Enum):
    GTC = "GTC"  # good till cancel
    IOC = "IOC"  # immediate or cancel


class KlineInterval(str, Enum):
    MIN_1 = "1m"
    MIN_3 = "3m"
    MIN_5 = "5m"
    MIN_15 = "15m"
    MIN_30 = "30m"
    HOUR_1 = "1h"
    HOUR_2 = "2h"
    HOUR_4 = "4h"
    HOUR_6 = "6h"
    HOUR_8 = "8h"
    HOUR_12 = "12h"
    DAY_1 = "1d"
    DAY_3 = "3d"
    WEEK_1 = "1w"
    MONTH_1 = "1M"


class UpdateType(str, Enum):
    """Event type tag (``e``) carried by every stream message."""
    DEPTH = "depthUpdate"
    KLINE = "kline"
    TRADES = "aggTrade"
    OUTBOUND_ACCOUNT_INFO = "outboundAccountInfo"
    EXECUTION_REPORT = "executionReport"


class SymbolStatus(str, Enum):
    TRADING = "TRADING"


class FilterType(str, Enum):
    PRICE = "PRICE_FILTER"
    LOT_SIZE = "LOT_SIZE"
    MIN_NOTIONAL = "MIN_NOTIONAL"
