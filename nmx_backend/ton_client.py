# ton_client.py
"""
External TON services: on-chain balance lookups (toncenter) and token prices
(CoinGecko).

Both are advisory. Nothing here ever touches the ledger, and every failure
degrades to a neutral value (zero balance, fallback prices) instead of
raising into the request.
"""
import logging
import threading
from typing import Any, Dict, Optional, Tuple

import requests

from . import config
from .helpers import from_nano, now_unix

log = logging.getLogger(__name__)

FALLBACK_TON_PRICE = 2.50
FALLBACK_TON_CHANGE = 1.5


def call_toncenter(method: str, params: Dict[str, Any]) -> Any:
    """Call a toncenter v2 HTTP API method and return its ``result``."""
    headers = {}
    if config.TONCENTER_API_KEY:
        headers["X-API-Key"] = config.TONCENTER_API_KEY
    try:
        resp = requests.get(
            f"{config.TONCENTER_URL}/{method}",
            params=params,
            headers=headers,
            timeout=10,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        raise RuntimeError(f"toncenter request failed: {e}") from e

    if not isinstance(data, dict) or not data.get("ok"):
        err = data.get("error") if isinstance(data, dict) else data
        raise RuntimeError(f"toncenter error: {err}")
    return data.get("result")


def get_onchain_balance(address: str) -> Tuple[float, bool]:
    """
    Return (balance_ton, ok) for a TON address.

    An unreachable or failing node yields (0.0, False); callers show the
    balance as unavailable and carry on.
    """
    try:
        nano = int(call_toncenter("getAddressBalance", {"address": address}))
    except (RuntimeError, TypeError, ValueError) as e:
        msg = str(e)
        if len(msg) > 300:
            msg = msg[:300] + "..."
        log.warning("[ton] balance lookup failed for %s: %s", address, msg)
        return 0.0, False
    return from_nano(nano), True


class PriceFeed:
    """TON/NMX USD prices with a short in-process cache and fixed fallbacks."""

    def __init__(self, ttl_sec: Optional[int] = None, now_func=now_unix):
        self.ttl_sec = int(config.PRICE_CACHE_SEC if ttl_sec is None else ttl_sec)
        self.now_func = now_func
        self._lock = threading.Lock()
        self._cached: Optional[Tuple[int, Dict[str, Any]]] = None

    def _nmx(self) -> Dict[str, float]:
        return {"price": config.NMX_PRICE_USD, "change24h": config.NMX_CHANGE_24H}

    def fetch(self) -> Dict[str, Any]:
        try:
            resp = requests.get(
                config.PRICE_API_URL,
                params={"ids": "the-open-network", "vs_currencies": "usd", "include_24hr_change": "true"},
                timeout=10,
            )
            resp.raise_for_status()
            ton = resp.json()["the-open-network"]
            price = float(ton["usd"])
            change = ton.get("usd_24h_change")
            change = float(change) if change is not None else FALLBACK_TON_CHANGE
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            log.warning("[prices] TON price fetch failed, using fallback: %s", e)
            return {
                "TON": {"price": FALLBACK_TON_PRICE, "change24h": FALLBACK_TON_CHANGE},
                "NMX": self._nmx(),
                "source": "fallback",
            }
        return {
            "TON": {"price": price, "change24h": change},
            "NMX": self._nmx(),
            "source": "coingecko",
        }

    def get_prices(self) -> Dict[str, Any]:
        now = int(self.now_func())
        with self._lock:
            if self._cached and now - self._cached[0] < self.ttl_sec:
                return self._cached[1]
        prices = self.fetch()
        # Only live prices are cached so a transient failure is retried next call.
        if prices.get("source") != "fallback":
            with self._lock:
                self._cached = (now, prices)
        return prices
