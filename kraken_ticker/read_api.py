"""
Read-only API for the HTTP layer and CLI: stored tickers and pair health.

The HTTP layer should use this instead of importing kraken_ticker.db or
opening SQLite directly. Each call opens its own short-lived connection, so
reads run beside the scheduler's writes and may see either side of an update.
"""

from __future__ import annotations

import contextlib
import sqlite3
from typing import Any, Dict, Iterator, Optional

import pandas as pd

from .config import db_busy_timeout_ms
from .db.migrations import run_migrations

TICKER_COLUMNS = ["id", "name", "price", "high_24", "low_24"]


@contextlib.contextmanager
def _with_conn(db_path: str) -> Iterator[sqlite3.Connection]:
    """Context manager for read-only DB access: migrations applied and safe pragmas set."""
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        timeout_ms = db_busy_timeout_ms()
        conn.execute(f"PRAGMA busy_timeout={int(timeout_ms)};")
        run_migrations(conn)
        yield conn
    finally:
        conn.close()


def load_ticker(db_path: str, name: str) -> Optional[Dict[str, Any]]:
    """Stored row for one pair name as {id, name, price, high_24, low_24}, or None."""
    with _with_conn(db_path) as con:
        row = con.execute(
            "SELECT id, name, price, high_24, low_24 FROM Tickers WHERE name = ?",
            (name,),
        ).fetchone()
    if row is None:
        return None
    return dict(zip(TICKER_COLUMNS, row))


def load_tickers(db_path: str) -> pd.DataFrame:
    """All stored rows (id, name, price, high_24, low_24, updated_at_utc), ordered by name."""
    with _with_conn(db_path) as con:
        return pd.read_sql_query(
            """SELECT id, name, price, high_24, low_24, updated_at_utc
               FROM Tickers
               ORDER BY name""",
            con,
        )


def load_pair_health(db_path: str) -> pd.DataFrame:
    """Persisted pair health (pair, status, fail_count, last_ok_at, last_error_kind, last_error, updated_at)."""
    with _with_conn(db_path) as con:
        return pd.read_sql_query(
            """SELECT pair, status, fail_count, last_ok_at,
                      last_error_kind, last_error, updated_at
               FROM pair_health
               ORDER BY pair""",
            con,
        )
