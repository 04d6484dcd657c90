"""Tests for BinanceClient endpoint methods: option validation, limit
clamping, signing flags and response decoding, against an in-process
exchange.
"""
import urllib.parse

import pytest

from conftest import API_KEY, API_SECRET, fixed_clock
from core.errors import ParseError, TransportError, ValidationError
from core.types import KlineInterval, OrderSide, OrderType, TimeInForce
from gateway.client import BinanceClient
from gateway.models import (
    AggregatedTradeOpts, AllOrdersOpts, CancelOrderOpts, DepthOpts, KlinesOpts,
    NewOrderOpts, OpenOrdersOpts, QueryOrderOpts, TickerOpts, TradesOpts,
)
from gateway.transport import sign


def _query(req) -> dict:
    return dict(urllib.parse.parse_qsl(req["query"]))


def _form(req) -> dict:
    return dict(urllib.parse.parse_qsl(req["body"]))


@pytest.fixture
async def client(exchange_config):
    c = BinanceClient(exchange_config, clock=fixed_clock)
    yield c
    await c.close()


class TestValidation:
    """Invalid options never reach the network."""

    @pytest.mark.parametrize("method", [
        "depth", "aggregated_trades", "klines", "ticker", "new_order",
        "new_order_test", "query_order", "cancel_order", "open_orders",
        "all_orders", "trades",
    ])
    async def test_none_opts(self, client, exchange, method):
        with pytest.raises(ValidationError):
            await getattr(client, method)(None)
        assert exchange.requests == []

    async def test_klines_need_symbol_and_interval(self, client, exchange):
        with pytest.raises(ValidationError, match="symbol or interval"):
            await client.klines(KlinesOpts(symbol="ETHBTC"))
        with pytest.raises(ValidationError):
            await client.klines(KlinesOpts(interval=KlineInterval.HOUR_1))
        assert exchange.requests == []

    async def test_depth_needs_symbol(self, client):
        with pytest.raises(ValidationError):
            await client.depth(DepthOpts())

    async def test_query_order_needs_an_id(self, client, exchange):
        with pytest.raises(ValidationError, match="order id"):
            await client.query_order(QueryOrderOpts(symbol="ETHBTC"))
        assert exchange.requests == []

    async def test_cancel_order_needs_an_id(self, client):
        with pytest.raises(ValidationError):
            await client.cancel_order(CancelOrderOpts(symbol="ETHBTC"))

    async def test_user_stream_needs_key(self, client):
        with pytest.raises(ValidationError):
            await client.keepalive_user_stream("")
        with pytest.raises(ValidationError):
            await client.close_user_stream("")

    async def test_stream_constructors_validate(self, client):
        with pytest.raises(ValidationError):
            await client.depth_ws("")
        with pytest.raises(ValidationError):
            await client.klines_ws("ETHBTC", "")
        with pytest.raises(ValidationError):
            await client.account_ws("")


class TestMarketData:
    async def test_ping(self, client, exchange):
        exchange.reply("GET", "/api/v3/ping", {})
        await client.ping()
        assert exchange.last["path"] == "/api/v3/ping"

    async def test_server_time(self, client, exchange):
        exchange.reply("GET", "/api/v3/time", {"serverTime": 1499827319559})
        assert (await client.server_time()).server_time == 1499827319559

    @pytest.mark.parametrize("given,sent", [(0, "100"), (500, "100"), (5, "5"), (-3, "100")])
    async def test_depth_limit_clamped(self, client, exchange, given, sent):
        exchange.reply("GET", "/api/v3/depth", {"lastUpdateId": 1, "bids": [], "asks": []})
        await client.depth(DepthOpts(symbol="NEOBTC", limit=given))
        assert _query(exchange.last) == {"symbol": "NEOBTC", "limit": sent}

    async def test_depth_decoded(self, client, exchange):
        exchange.reply("GET", "/api/v3/depth", {
            "lastUpdateId": 7, "bids": [["0.1", "2"]], "asks": [["0.2", "3"]],
        })
        depth = await client.depth(DepthOpts(symbol="NEOBTC"))
        assert depth.last_update_id == 7
        assert depth.bids[0].price == "0.1"
        assert depth.asks[0].quantity == "3"

    async def test_aggregated_trades_omit_unset(self, client, exchange):
        exchange.reply("GET", "/api/v3/aggTrades", [])
        await client.aggregated_trades(AggregatedTradeOpts(symbol="NEOBTC"))
        assert exchange.last["query"] == "symbol=NEOBTC&limit=500"

    async def test_klines(self, client, exchange):
        exchange.reply("GET", "/api/v3/klines", [
            [1499040000000, "0.1", "0.2", "0.05", "0.15", "100", 1499644799999, "10", 5, "1", "2", "0"],
        ])
        bars = await client.klines(KlinesOpts(symbol="NEOBTC", interval=KlineInterval.HOUR_1, limit=5))
        assert exchange.last["query"] == "symbol=NEOBTC&interval=1h&limit=5"
        assert len(bars) == 1
        assert bars[0].high == "0.2"

    async def test_klines_short_bar_is_parse_error(self, client, exchange):
        exchange.reply("GET", "/api/v3/klines", [[1499040000000, "0.1", "0.2"]])
        with pytest.raises(ParseError, match="at least 11"):
            await client.klines(KlinesOpts(symbol="NEOBTC", interval="1m"))

    async def test_klines_time_range(self, client, exchange):
        exchange.reply("GET", "/api/v3/klines", [])
        await client.klines(KlinesOpts(symbol="NEOBTC", interval="1m",
                                       start_time=1000, end_time=2000))
        assert _query(exchange.last) == {
            "symbol": "NEOBTC", "interval": "1m", "limit": "500",
            "startTime": "1000", "endTime": "2000",
        }

    async def test_ticker_unsigned(self, client, exchange):
        exchange.reply("GET", "/api/v3/ticker/24hr", {"lastPrice": "4.00000200"})
        stats = await client.ticker(TickerOpts(symbol="LTCBTC"))
        assert stats.last_price == "4.00000200"
        assert exchange.last["query"] == "symbol=LTCBTC"
        assert "X-MBX-APIKEY" not in exchange.last["headers"]

    async def test_prices_and_book_tickers(self, client, exchange):
        exchange.reply("GET", "/api/v3/ticker/price", [{"symbol": "LTCBTC", "price": "4.00000200"}])
        exchange.reply("GET", "/api/v3/ticker/bookTicker", [{"symbol": "LTCBTC", "bidPrice": "4.0"}])
        prices = await client.prices()
        books = await client.book_tickers()
        assert prices[0].price == "4.00000200"
        assert books[0].bid_price == "4.0"

    async def test_exchange_info(self, client, exchange):
        exchange.reply("GET", "/api/v3/exchangeInfo", {"symbols": [{"symbol": "ETHBTC", "filters": []}]})
        info = await client.exchange_info()
        assert info.symbols[0].symbol == "ETHBTC"


class TestSigned:
    async def test_new_order_signed_form_body(self, client, exchange):
        exchange.reply("POST", "/api/v3/order", {
            "symbol": "NEOBTC", "orderId": 28, "clientOrderId": "abc", "transactTime": 1,
        })
        order = await client.new_order(NewOrderOpts(
            symbol="NEOBTC", side=OrderSide.SELL, type=OrderType.LIMIT,
            time_in_force=TimeInForce.GTC, quantity="1", price="0.1",
        ))
        assert order.order_id == 28
        req = exchange.last
        assert req["headers"]["X-MBX-APIKEY"] == API_KEY
        assert req["body"].startswith(
            "symbol=NEOBTC&side=SELL&type=LIMIT&timeInForce=GTC&quantity=1&price=0.1"
            "&timestamp=1499827319559&recvWindow=5000&signature="
        )
        signed_part, signature = req["body"].rsplit("&signature=", 1)
        assert signature == sign(API_SECRET, signed_part)

    async def test_market_order_omits_price(self, client, exchange):
        exchange.reply("POST", "/api/v3/order/test", {})
        await client.new_order_test(NewOrderOpts(
            symbol="NEOBTC", side=OrderSide.BUY, type=OrderType.MARKET, quantity="1",
        ))
        form = _form(exchange.last)
        assert "price" not in form
        assert "timeInForce" not in form
        assert form["type"] == "MARKET"

    async def test_query_order_by_client_id(self, client, exchange):
        exchange.reply("GET", "/api/v3/order", {"symbol": "NEOBTC", "status": "NEW"})
        q = await client.query_order(QueryOrderOpts(symbol="NEOBTC", orig_client_order_id="myOrder1"))
        assert q.status == "NEW"
        query = _query(exchange.last)
        assert "orderId" not in query
        assert query["origClientOrderId"] == "myOrder1"
        assert "signature" in query

    async def test_cancel_order_uses_delete(self, client, exchange):
        exchange.reply("DELETE", "/api/v3/order", {"symbol": "NEOBTC", "orderId": 28})
        c = await client.cancel_order(CancelOrderOpts(symbol="NEOBTC", order_id=28))
        assert c.order_id == 28
        req = exchange.last
        assert req["method"] == "DELETE"
        assert _form(req)["orderId"] == "28"

    async def test_open_orders(self, client, exchange):
        exchange.reply("GET", "/api/v3/openOrders", [{"symbol": "SNMBTC", "orderId": 1}])
        orders = await client.open_orders(OpenOrdersOpts(symbol="SNMBTC"))
        assert orders[0].order_id == 1

    async def test_all_orders_default_limit(self, client, exchange):
        exchange.reply("GET", "/api/v3/allOrders", [])
        await client.all_orders(AllOrdersOpts(symbol="SNMBTC"))
        query = _query(exchange.last)
        assert query["limit"] == "500"
        assert "orderId" not in query

    async def test_account(self, client, exchange):
        exchange.reply("GET", "/api/v3/account", {"canTrade": True, "balances": []})
        info = await client.account()
        assert info.can_trade is True
        assert exchange.last["query"].startswith("timestamp=1499827319559&recvWindow=5000&signature=")

    async def test_trades_clamped(self, client, exchange):
        exchange.reply("GET", "/api/v3/myTrades", [])
        await client.trades(TradesOpts(symbol="NEOBTC", limit=9999))
        query = _query(exchange.last)
        assert query["limit"] == "500"
        assert "fromId" not in query

    async def test_exchange_error_surfaces(self, client, exchange):
        exchange.reply("POST", "/api/v3/order",
                       {"code": -2010, "msg": "Account has insufficient balance"}, status=400)
        with pytest.raises(TransportError) as exc_info:
            await client.new_order(NewOrderOpts(symbol="NEOBTC", side="BUY", type="MARKET", quantity="1"))
        assert exc_info.value.code == -2010


class TestUserStream:
    async def test_start_attaches_key_without_signature(self, client, exchange):
        exchange.reply("POST", "/api/v3/userDataStream", {"listenKey": "lk1"})
        assert await client.start_user_stream() == "lk1"
        req = exchange.last
        assert req["headers"]["X-MBX-APIKEY"] == API_KEY
        assert "signature" not in req["body"]
        assert "timestamp" not in req["body"]

    async def test_keepalive_and_close(self, client, exchange):
        exchange.reply("PUT", "/api/v3/userDataStream", {})
        exchange.reply("DELETE", "/api/v3/userDataStream", {})
        await client.keepalive_user_stream("lk1")
        assert exchange.last["body"] == "listenKey=lk1"
        await client.close_user_stream("lk1")
        assert exchange.last["method"] == "DELETE"
        assert exchange.last["headers"]["X-MBX-APIKEY"] == API_KEY


class TestStreamConstructors:
    async def test_urls(self, config):
        from conftest import FakeConnection
        dialed = []

        async def dialer(url):
            dialed.append(url)
            return FakeConnection()

        client = BinanceClient(config, dialer=dialer)
        depth = await client.depth_ws("ETHBTC")
        klines = await client.klines_ws("ETHBTC", KlineInterval.MIN_1)
        trades = await client.trades_ws("ETHBTC")
        account = await client.account_ws("lk1")
        assert dialed == [
            "wss://stream.binance.com:9443/ws/ethbtc@depth",
            "wss://stream.binance.com:9443/ws/ethbtc@kline_1m",
            "wss://stream.binance.com:9443/ws/ethbtc@aggTrade",
            "wss://stream.binance.com:9443/ws/lk1",
        ]
        assert depth.topic == "ethbtc@depth"
        assert account.topic == "lk1"
        for s in (depth, klines, trades, account):
            await s.close()
        await client.close()
