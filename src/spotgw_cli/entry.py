"""Console entry point for the spot gateway.

After ``pip install .`` the ``spotgw`` command is available:

    spotgw ping
    spotgw time
    spotgw depth BTCUSDT --limit 5
    spotgw klines BTCUSDT --interval 1h --limit 3
    spotgw watch depth BTCUSDT --count 10
    spotgw watch kline BTCUSDT --interval 1m

Settings come from config/default.yaml (or ``--config``); credentials from
BINANCE_API_KEY / BINANCE_API_SECRET.
"""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from typing import List, Optional

import orjson

from core.config import load_config
from core.types import KlineInterval
from gateway.client import BinanceClient
from gateway.models import DepthOpts, KlinesOpts

def _print(obj) -> None:
    if dataclasses.is_dataclass(obj):
        obj = dataclasses.asdict(obj)
    elif isinstance(obj, list):
        obj = [dataclasses.asdict(o) if dataclasses.is_dataclass(o) else o for o in obj]
    sys.stdout.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2).decode() + "\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spotgw", description="Binance spot gateway")
    parser.add_argument("--config", default=None, help="Path to YAML config")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="Test REST connectivity")
    sub.add_parser("time", help="Print the exchange server time")

    p = sub.add_parser("depth", help="Print the order book")
    p.add_argument("symbol")
    p.add_argument("--limit", type=int, default=10)

    p = sub.add_parser("klines", help="Print candlestick bars")
    p.add_argument("symbol")
    p.add_argument("--interval", default="1m",
                   choices=[i.value for i in KlineInterval])
    p.add_argument("--limit", type=int, default=10)

    p = sub.add_parser("watch", help="Print updates from a stream")
    p.add_argument("feed", choices=["depth", "kline", "trades"])
    p.add_argument("symbol")
    p.add_argument("--interval", default="1m",
                   choices=[i.value for i in KlineInterval])
    p.add_argument("--count", type=int, default=5,
                   help="Number of updates to print before closing")
    return parser


async def run(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    async with BinanceClient(config) as client:
        if args.command == "ping":
            await client.ping()
            sys.stdout.write("pong\n")
        elif args.command == "time":
            _print(await client.server_time())
        elif args.command == "depth":
            _print(await client.depth(DepthOpts(symbol=args.symbol, limit=args.limit)))
        elif args.command == "klines":
            _print(await client.klines(KlinesOpts(
                symbol=args.symbol, interval=args.interval, limit=args.limit,
            )))
        elif args.command == "watch":
            if args.feed == "depth":
                stream = await client.depth_ws(args.symbol)
            elif args.feed == "kline":
                stream = await client.klines_ws(args.symbol, args.interval)
            else:
                stream = await client.trades_ws(args.symbol)
            async with stream:
                for _ in range(args.count):
                    _print(await stream.read())


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``spotgw`` console command."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    asyncio.run(run(args))
