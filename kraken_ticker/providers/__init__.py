"""
Ticker providers for the Kraken public API.

A provider performs the blocking network call for one pair; normalize()
turns the raw body into Quote objects.
"""

from __future__ import annotations

from .base import PairHealth, PairStatus, Quote, TickerProvider
from .kraken import KrakenTickerProvider, normalize

__all__ = [
    "Quote",
    "PairHealth",
    "PairStatus",
    "TickerProvider",
    "KrakenTickerProvider",
    "normalize",
]
