"""
Core surface: exception taxonomy only. No store, providers, or cli.
"""

from __future__ import annotations

from .errors import (
    APIError,
    FetchError,
    KrakenTickerError,
    MalformedDataError,
    PersistenceError,
)

# Do not add exports without updating __all__.
__all__ = [
    "KrakenTickerError",
    "FetchError",
    "APIError",
    "MalformedDataError",
    "PersistenceError",
]
