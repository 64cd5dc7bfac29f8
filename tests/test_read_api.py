"""
Tests for read_api: context manager, pragmas, loaders against a temporary SQLite DB.
"""

from __future__ import annotations

import sqlite3

import pandas as pd
import pytest

from kraken_ticker.db.health import PairHealthStore
from kraken_ticker.db.writer import QuoteWriter
from kraken_ticker.providers.base import PairHealth
from kraken_ticker.read_api import _with_conn, load_pair_health, load_ticker, load_tickers


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary SQLite DB with migrations applied (Tickers + pair_health)."""
    db_path = str(tmp_path / "read_api_test.sqlite")
    with _with_conn(db_path):
        pass  # migrations applied on first use
    return db_path


def test_with_conn_is_context_manager():
    """_with_conn is a real context manager (yields connection, closes on exit)."""
    with _with_conn(":memory:") as conn:
        assert conn is not None
        cur = conn.execute("SELECT 1")
        assert cur.fetchone() == (1,)
    # Connection closed; using it would raise
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")


def test_with_conn_sets_busy_timeout(temp_db):
    with _with_conn(temp_db) as conn:
        (timeout,) = conn.execute("PRAGMA busy_timeout").fetchone()
    assert timeout > 0


def test_empty_store(temp_db):
    assert load_ticker(temp_db, "BTCEUR") is None
    df = load_tickers(temp_db)
    assert isinstance(df, pd.DataFrame)
    assert df.empty
    assert list(df.columns) == ["id", "name", "price", "high_24", "low_24", "updated_at_utc"]
    assert load_pair_health(temp_db).empty


def test_load_ticker_and_tickers(temp_db):
    conn = sqlite3.connect(temp_db)
    try:
        writer = QuoteWriter(conn)
        writer.upsert("XRPEUR", "0.5", "0.6", "0.4")
        writer.upsert("BTCEUR", "50000", "51000", "49000")
    finally:
        conn.close()

    row = load_ticker(temp_db, "BTCEUR")
    assert row["name"] == "BTCEUR"
    assert (row["price"], row["high_24"], row["low_24"]) == ("50000", "51000", "49000")
    assert isinstance(row["id"], int)

    df = load_tickers(temp_db)
    assert df["name"].tolist() == ["BTCEUR", "XRPEUR"]
    assert df["price"].tolist() == ["50000", "0.5"]


def test_load_pair_health(temp_db):
    conn = sqlite3.connect(temp_db)
    try:
        ok = PairHealth(pair="BTCEUR")
        ok.record_success()
        bad = PairHealth(pair="DOGEEUR")
        bad.record_failure("APIError", "Kraken API error: ['EQuery:Unknown asset pair']")
        PairHealthStore(conn).upsert_all({"BTCEUR": ok, "DOGEEUR": bad})
    finally:
        conn.close()

    df = load_pair_health(temp_db)
    assert df["pair"].tolist() == ["BTCEUR", "DOGEEUR"]
    bad_row = df.set_index("pair").loc["DOGEEUR"]
    assert bad_row["status"] == "DEGRADED"
    assert bad_row["fail_count"] == 1
    assert bad_row["last_error_kind"] == "APIError"
