"""Client configuration: credentials, receive window and endpoints.

``ClientConfig`` is immutable and passed explicitly to every component;
there is no process-wide client state.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from typing import Optional

import yaml
from dotenv import load_dotenv

from core.errors import ConfigurationError

log = logging.getLogger(__name__)

REST_URL = "https://api.binance.com"
WS_URL = "wss://stream.binance.com:9443/ws/"
RECV_WINDOW = 5000
DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "..", "config", "default.yaml",
)


@dataclass(frozen=True, slots=True)
class ClientConfig:
    api_key: str = ""
    api_secret: str = ""
    recv_window: int = RECV_WINDOW  # ms
    base_url: str = REST_URL
    ws_url: str = WS_URL
    timeout: float = 10.0  # seconds, per REST call

    def __post_init__(self) -> None:
        if isinstance(self.recv_window, bool) or not isinstance(self.recv_window, int):
            raise ConfigurationError(f"recv_window must be an integer, got {self.recv_window!r}")
        if self.recv_window <= 0:
            raise ConfigurationError(f"recv_window must be positive, got {self.recv_window}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if not self.ws_url.endswith("/"):
            object.__setattr__(self, "ws_url", self.ws_url + "/")

    def __repr__(self) -> str:
        # never print the secret
        return (f"ClientConfig(api_key={self.api_key[:4] + '...' if self.api_key else ''!r}, "
                f"recv_window={self.recv_window}, base_url={self.base_url!r}, "
                f"ws_url={self.ws_url!r}, timeout={self.timeout})")


def load_config(path: Optional[str] = None) -> ClientConfig:
    """Build a ClientConfig from a YAML file plus environment credentials.

    The YAML file holds the non-secret settings (``recv_window``,
    ``base_url``, ``ws_url``, ``timeout``). Credentials come from
    ``BINANCE_API_KEY`` / ``BINANCE_API_SECRET``, optionally set through
    a ``.env`` file.
    """
    load_dotenv()
    path = path or DEFAULT_CONFIG_PATH
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path}: expected a mapping at top level")

    api_key = os.environ.get("BINANCE_API_KEY", "")
    api_secret = os.environ.get("BINANCE_API_SECRET", "")
    if not api_key or not api_secret:
        log.info("No BINANCE_API_KEY/BINANCE_API_SECRET set; only public endpoints will work")

    return ClientConfig(
        api_key=api_key,
        api_secret=api_secret,
        recv_window=raw.get("recv_window", RECV_WINDOW),
        base_url=raw.get("base_url", REST_URL),
        ws_url=raw.get("ws_url", WS_URL),
        timeout=float(raw.get("timeout", 10.0)),
    )
