"""
Shared exception types for kraken_ticker.

Per-pair failures (FetchError, APIError, MalformedDataError) are recovered
inside a poll cycle. PersistenceError is fatal for the pair being written and,
at startup, for the whole process.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class KrakenTickerError(Exception):
    """Base exception for kraken_ticker; catch this for any package-raised error."""

    pass


class FetchError(KrakenTickerError):
    """Network or transport failure (including non-2xx and timeouts) for one pair."""

    def __init__(self, pair: str, cause: object) -> None:
        self.pair = pair
        self.cause = cause
        super().__init__(f"fetch failed for {pair}: {cause}")


class APIError(KrakenTickerError):
    """Upstream answered, but reported a logical error or an unusable envelope."""

    def __init__(self, errors: Sequence[str], pair: Optional[str] = None) -> None:
        self.errors: List[str] = [str(e) for e in errors]
        self.pair = pair
        where = f" for {pair}" if pair else ""
        super().__init__(f"Kraken API error{where}: {self.errors}")


class MalformedDataError(KrakenTickerError):
    """Payload lacks the array lengths needed to build a quote (delisted or new pair, or a bug)."""

    def __init__(self, pair: str, reason: str) -> None:
        self.pair = pair
        self.reason = reason
        super().__init__(f"insufficient data for {pair}: {reason}")


class PersistenceError(KrakenTickerError):
    """Local store could not be opened or written."""

    pass


__all__ = [
    "KrakenTickerError",
    "FetchError",
    "APIError",
    "MalformedDataError",
    "PersistenceError",
]
