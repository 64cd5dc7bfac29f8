"""
Shared database writer for the latest-quote table.

The writer is the single owner of the write connection. Every mutation goes
through one lock held only for the duration of a single row write and its
commit, so concurrent callers for different pairs queue briefly and never
hold each other across a whole cycle.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone

from ..core.errors import PersistenceError
from ..providers.base import Quote

logger = logging.getLogger(__name__)


class QuoteWriter:
    """Serialized upsert-by-name into Tickers."""

    def __init__(self, conn: sqlite3.Connection, lock: threading.Lock | None = None) -> None:
        self._conn = conn
        self.lock = lock or threading.Lock()

    def upsert(self, name: str, price: str, high: str, low: str) -> None:
        """
        Insert the row for name, or replace its price/high/low in place.
        The id of an existing row never changes. Raises PersistenceError.
        """
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        with self.lock:
            logger.debug("Upsert %s | price=%s high=%s low=%s", name, price, high, low)
            try:
                self._conn.execute(
                    """
                    INSERT INTO Tickers (name, price, high_24, low_24, updated_at_utc)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(name) DO UPDATE SET
                        price = excluded.price,
                        high_24 = excluded.high_24,
                        low_24 = excluded.low_24,
                        updated_at_utc = excluded.updated_at_utc;
                    """,
                    (name, price, high, low, now),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                try:
                    self._conn.rollback()
                except sqlite3.Error:
                    logger.debug("Rollback after failed upsert of %s also failed", name)
                raise PersistenceError(f"upsert failed for {name}: {exc}") from exc

    def write_quote(self, quote: Quote) -> None:
        self.upsert(quote.name, quote.price, quote.high24, quote.low24)
