"""Exception hierarchy for the Binance spot gateway.

Every failure is raised to the immediate caller. Network errors coming out
of aiohttp or asyncio are not wrapped and propagate as-is.
"""
from __future__ import annotations
from typing import Optional

import orjson


class BinanceError(Exception):
    """Base class for all gateway errors."""


class ConfigurationError(BinanceError):
    """Invalid client construction (e.g. non-positive receive window)."""


class ValidationError(BinanceError):
    """Caller-supplied options are missing or contradictory."""


class TransportError(BinanceError):
    """Non-2xx HTTP response. Keeps the status and the raw body."""

    def __init__(self, status: int, body: bytes):
        self.status = status
        self.body = body
        super().__init__(f"status {status}: {body.decode('utf-8', errors='replace')}")

    def _payload(self) -> dict:
        try:
            data = orjson.loads(self.body)
        except orjson.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    @property
    def code(self) -> Optional[int]:
        """Exchange error code from the body, e.g. -1021."""
        return self._payload().get("code")

    @property
    def message(self) -> str:
        return self._payload().get("msg", "")


class ParseError(BinanceError):
    """Malformed JSON or a short/invalid positional-array payload."""


class ReadError(BinanceError):
    """A stream read failed: connection dropped or frame did not decode."""


class StreamClosedError(ReadError):
    """Read attempted on a stream that was already closed."""


class ProtocolError(BinanceError):
    """A multiplexed stream carried an event type we do not know."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"unknown stream event type: {event_type!r}")
