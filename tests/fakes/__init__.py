"""Fake providers and payload builders for ingestion and API tests (no live network)."""

from .providers import (
    BlockingTickerProvider,
    FakeTickerProvider,
    RendezvousTickerProvider,
    ticker_body,
    ticker_entry,
    valid_body,
)

__all__ = [
    "BlockingTickerProvider",
    "FakeTickerProvider",
    "RendezvousTickerProvider",
    "ticker_body",
    "ticker_entry",
    "valid_body",
]
