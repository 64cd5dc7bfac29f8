"""
Kraken ticker provider.

Uses the public Kraken API (no authentication required):
  GET https://api.kraken.com/0/public/Ticker?pair={pair}
  GET https://api.kraken.com/0/public/SystemStatus

Ticker entries carry arrays keyed by field code; index 0 is today's value and
index 1 the rolling 24h value. Only c[0], h[1] and l[1] are consumed.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union

import requests

from ..core.errors import APIError, FetchError
from .base import Quote

logger = logging.getLogger(__name__)

KRAKEN_BASE_URL = "https://api.kraken.com"
HTTP_TIMEOUT_S = 15.0


def _is_decimal_text(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        Decimal(value)
    except InvalidOperation:
        return False
    return True


def _decode(raw: Union[bytes, str, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise APIError([f"undecodable response body: {exc}"]) from exc
    if not isinstance(data, dict):
        raise APIError([f"unexpected response type: {type(data).__name__}"])
    return data


def normalize(raw: Union[bytes, str, Dict[str, Any]]) -> Dict[str, Quote]:
    """
    Turn a Ticker envelope {error: [...], result: {name: payload}} into quotes by name.

    Raises APIError when the envelope reports errors or has no usable result map.
    Entries with an empty close array or fewer than two high/low values are
    logged and skipped, not raised; the returned map may therefore be empty.
    """
    data = _decode(raw)
    errors = data.get("error") or []
    if errors:
        raise APIError(errors if isinstance(errors, list) else [errors])

    result = data.get("result")
    if not isinstance(result, dict):
        raise APIError(["response missing result"])

    quotes: Dict[str, Quote] = {}
    for name, payload in result.items():
        if not isinstance(payload, dict):
            logger.warning("Insufficient data for %s: entry is %s", name, type(payload).__name__)
            continue
        close = payload.get("c") or []
        high = payload.get("h") or []
        low = payload.get("l") or []
        if len(close) == 0 or len(high) < 2 or len(low) < 2:
            logger.warning(
                "Insufficient data for %s: len(c)=%d len(h)=%d len(l)=%d",
                name, len(close), len(high), len(low),
            )
            continue
        price, high24, low24 = close[0], high[1], low[1]
        if not all(_is_decimal_text(v) for v in (price, high24, low24)):
            logger.warning(
                "Insufficient data for %s: non-numeric values c[0]=%r h[1]=%r l[1]=%r",
                name, price, high24, low24,
            )
            continue
        quotes[name] = Quote(name=name, price=price, high24=high24, low24=low24)
    return quotes


class KrakenTickerProvider:
    """Fetch raw ticker bodies from the Kraken public API, one pair per request."""

    def __init__(
        self,
        base_url: str = KRAKEN_BASE_URL,
        timeout_s: Optional[float] = HTTP_TIMEOUT_S,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s

    @property
    def provider_name(self) -> str:
        return "kraken"

    def fetch(self, pair: str) -> bytes:
        if not pair or not pair.strip():
            raise ValueError("pair must be a non-empty string")
        url = f"{self._base_url}/0/public/Ticker"
        try:
            resp = requests.get(url, params={"pair": pair}, timeout=self._timeout_s)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(pair, exc) from exc
        return resp.content

    def get_system_status(self) -> Dict[str, Any]:
        """Return the SystemStatus envelope ({error, result: {status, timestamp}})."""
        url = f"{self._base_url}/0/public/SystemStatus"
        try:
            resp = requests.get(url, timeout=self._timeout_s)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise FetchError("SystemStatus", exc) from exc
        except ValueError as exc:
            raise APIError([f"undecodable response body: {exc}"]) from exc
        if not isinstance(data, dict):
            raise APIError([f"unexpected response type: {type(data).__name__}"])
        return data
