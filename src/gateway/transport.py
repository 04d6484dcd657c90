"""Signed HTTP transport for the Binance spot REST API.

Auth scheme:
- Payload is the urlencoded request parameters, in caller order
- Signed calls append ``timestamp`` then ``recvWindow``, then
  ``signature`` = hex(HMAC-SHA256(secret, payload so far))
- X-MBX-APIKEY header on signed calls and on user-stream session calls
- GET sends the payload as query string, everything else as a form body
"""
from __future__ import annotations
import hashlib
import hmac
import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional

import aiohttp
from yarl import URL

from core.config import ClientConfig
from core.errors import TransportError
from core.utils import time_now_ms

log = logging.getLogger(__name__)

API_KEY_HEADER = "X-MBX-APIKEY"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(slots=True)
class PreparedRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


def sign(secret: str, payload: str) -> str:
    """HMAC-SHA256 of the payload keyed with the secret, hex encoded."""
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


class Transport:
    """Builds and executes REST calls. Holds no per-call state."""

    def __init__(self, config: ClientConfig,
                 clock: Callable[[], int] = time_now_ms,
                 session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._clock = clock
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if this transport created it; injected sessions stay open."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    # --- Request construction ---

    def encode_payload(self, params: Optional[Mapping[str, str]], signed: bool) -> str:
        payload = urllib.parse.urlencode(list((params or {}).items()))
        if not signed:
            return payload
        envelope = urllib.parse.urlencode([
            ("timestamp", str(self._clock())),
            ("recvWindow", str(self.config.recv_window)),
        ])
        payload = f"{payload}&{envelope}" if payload else envelope
        return f"{payload}&signature={sign(self.config.api_secret, payload)}"

    def build_request(self, method: str, endpoint: str,
                      params: Optional[Mapping[str, str]] = None, *,
                      signed: bool = False, attach_key: bool = False) -> PreparedRequest:
        method = method.upper()
        payload = self.encode_payload(params, signed)
        url = f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        headers = {"Accept": "application/json"}
        body = None

        if method == "GET":
            if payload:
                url = f"{url}?{payload}"
        else:
            headers["Content-Type"] = FORM_CONTENT_TYPE
            body = payload.encode()

        if signed or attach_key:
            headers[API_KEY_HEADER] = self.config.api_key
        return PreparedRequest(method=method, url=url, headers=headers, body=body)

    # --- Execution ---

    async def execute(self, method: str, endpoint: str,
                      params: Optional[Mapping[str, str]] = None, *,
                      signed: bool = False, attach_key: bool = False) -> bytes:
        """Send one request and return the raw 2xx body.

        Raises TransportError on a non-2xx status. aiohttp/asyncio errors
        (DNS, TLS, timeout, reset) propagate unmodified.
        """
        req = self.build_request(method, endpoint, params, signed=signed, attach_key=attach_key)
        session = await self._get_session()
        log.debug("REST %s %s signed=%s", req.method, endpoint, signed)

        # the payload is already encoded and signed; stop yarl from requoting it
        async with session.request(req.method, URL(req.url, encoded=True),
                                   headers=req.headers, data=req.body) as resp:
            body = await resp.read()
            if not 200 <= resp.status < 300:
                log.warning("REST %s %s failed: status=%d body=%s",
                            req.method, endpoint, resp.status, body[:512])
                raise TransportError(resp.status, body)
            return body
