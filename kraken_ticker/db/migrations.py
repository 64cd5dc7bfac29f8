"""
Idempotent database migrations.

All schema changes use CREATE TABLE IF NOT EXISTS and guarded ALTER TABLE
so they can be re-run safely at any time.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)


def _safe_add_column(conn: sqlite3.Connection, table: str, column: str, col_type: str) -> None:
    """Add a column if it doesn't already exist."""
    try:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_type};")
        conn.commit()
        logger.debug("Added column %s.%s", table, column)
    except sqlite3.OperationalError:
        pass


def run_migrations(conn: sqlite3.Connection) -> None:
    """
    Apply all schema migrations idempotently.

    Safe to call on every startup: only creates/alters what's missing.
    """
    # Latest quote per pair; prices are kept as the exchange's decimal text.
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS Tickers (
            id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
            name VARCHAR UNIQUE,
            price VARCHAR,
            high_24 VARCHAR,
            low_24 VARCHAR
        );
        """
    )
    _safe_add_column(conn, "Tickers", "updated_at_utc", "TEXT")

    # Per-pair health tracking
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS pair_health (
            pair TEXT PRIMARY KEY,
            status TEXT NOT NULL DEFAULT 'OK',
            last_ok_at TEXT,
            fail_count INTEGER NOT NULL DEFAULT 0,
            last_error_kind TEXT,
            last_error TEXT,
            updated_at TEXT NOT NULL
        );
        """
    )

    conn.commit()
    logger.debug("Database migrations complete")
