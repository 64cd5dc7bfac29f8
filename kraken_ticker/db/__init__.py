"""
Database layer: migrations, pair health tracking, and the serialized quote writer.

All store writes go through this layer so they share one write lock.
"""

from __future__ import annotations

from .health import PairHealthStore
from .migrations import run_migrations
from .writer import QuoteWriter

__all__ = ["run_migrations", "QuoteWriter", "PairHealthStore"]
