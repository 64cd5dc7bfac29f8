"""
Pair health persistence in SQLite.

Tracks last success time, consecutive failure counts, and the last error per
polled pair so the API can report which pairs are stuck.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..core.errors import PersistenceError
from ..providers.base import PairHealth, PairStatus

logger = logging.getLogger(__name__)


class PairHealthStore:
    """Read/write pair health records from SQLite."""

    def __init__(self, conn: sqlite3.Connection, lock: Optional[threading.Lock] = None) -> None:
        self._conn = conn
        self._lock = lock or threading.Lock()

    def _upsert(self, health: PairHealth, now: str) -> None:
        self._conn.execute(
            """
            INSERT INTO pair_health
                (pair, status, last_ok_at, fail_count,
                 last_error_kind, last_error, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(pair) DO UPDATE SET
                status = excluded.status,
                last_ok_at = excluded.last_ok_at,
                fail_count = excluded.fail_count,
                last_error_kind = excluded.last_error_kind,
                last_error = excluded.last_error,
                updated_at = excluded.updated_at;
            """,
            (
                health.pair,
                health.status.value,
                health.last_ok_at,
                health.fail_count,
                health.last_error_kind,
                health.last_error,
                now,
            ),
        )

    def upsert_all(self, health_map: Dict[str, PairHealth]) -> None:
        """Batch upsert all pair health records in one transaction."""
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        with self._lock:
            try:
                for h in health_map.values():
                    self._upsert(h, now)
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise PersistenceError(f"pair health write failed: {exc}") from exc

    def load_all(self) -> List[PairHealth]:
        """Load all pair health records."""
        try:
            cur = self._conn.execute(
                "SELECT pair, status, last_ok_at, fail_count, "
                "last_error_kind, last_error FROM pair_health ORDER BY pair"
            )
        except sqlite3.OperationalError:
            return []
        return [
            PairHealth(
                pair=row[0],
                status=PairStatus(row[1]) if row[1] else PairStatus.OK,
                last_ok_at=row[2],
                fail_count=row[3] or 0,
                last_error_kind=row[4],
                last_error=row[5],
            )
            for row in cur.fetchall()
        ]

    def load_as_dict(self) -> Dict[str, PairHealth]:
        """Load all health records as a dict keyed by pair."""
        return {h.pair: h for h in self.load_all()}
