"""
Ingestion API: poll context and one-cycle execution.

CLI and scheduler use this module instead of importing kraken_ticker.db directly.
Owns the store connection, the quote writer, the CSV archiver and per-pair health.

One cycle fans out one fetch+normalize task per pair onto a thread pool, fans
the outcomes in through a queue bounded at the pair count, waits for every
task (bounded by the cycle deadline), then persists the accepted quotes.
A failing pair is logged and left out; it never stops its siblings.
"""

from __future__ import annotations

import logging
import queue
import sqlite3
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..archive import CsvArchiver
from ..core.errors import (
    APIError,
    FetchError,
    KrakenTickerError,
    MalformedDataError,
    PersistenceError,
)
from ..db.health import PairHealthStore
from ..db.migrations import run_migrations
from ..db.writer import QuoteWriter
from ..providers.base import PairHealth, Quote, TickerProvider
from ..providers.kraken import KrakenTickerProvider, normalize

logger = logging.getLogger(__name__)

DEFAULT_CYCLE_TIMEOUT_S = 60.0
DEFAULT_ESCALATE_AFTER = 3


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class PairOutcome:
    """Result of one pair's fetch+normalize task."""

    pair: str
    quotes: Dict[str, Quote] = field(default_factory=dict)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PollContext:
    """Holds DB connection, writer, archiver and provider for the poll loop. Use as context manager or call close()."""

    conn: sqlite3.Connection
    writer: QuoteWriter
    health_store: PairHealthStore
    archiver: CsvArchiver
    provider: TickerProvider
    cycle_timeout_s: float = DEFAULT_CYCLE_TIMEOUT_S
    escalate_after: int = DEFAULT_ESCALATE_AFTER
    pair_health: Dict[str, PairHealth] = field(default_factory=dict)
    _closed: bool = field(default=False, repr=False)

    def health_for(self, pair: str) -> PairHealth:
        health = self.pair_health.get(pair)
        if health is None:
            health = PairHealth(pair=pair, escalate_after=self.escalate_after)
            self.pair_health[pair] = health
        return health

    def close(self) -> None:
        """Close the DB connection. Idempotent: safe to call multiple times."""
        if self._closed:
            return
        try:
            with self.writer.lock:
                self.conn.close()
        finally:
            self._closed = True

    def __enter__(self) -> PollContext:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_val is not None and not self._closed:
            try:
                self.conn.rollback()
            except sqlite3.Error:
                logger.debug("Rollback on context exit failed", exc_info=True)
        self.close()


def _apply_ingestion_pragmas(conn: sqlite3.Connection, busy_timeout_ms: int) -> None:
    """Set SQLite pragmas for ingestion connections: WAL so API readers never block writes, busy_timeout."""
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")


def get_poll_context(
    db_path: Union[str, Path],
    archive_dir: Union[str, Path],
    *,
    provider: Optional[TickerProvider] = None,
    cycle_timeout_s: float = DEFAULT_CYCLE_TIMEOUT_S,
    escalate_after: int = DEFAULT_ESCALATE_AFTER,
    busy_timeout_ms: int = 5000,
) -> PollContext:
    """
    Open DB, run migrations, create writer/health store/archiver and the provider.
    Use as: with get_poll_context(db_path, archive_dir) as ctx: ...
    If provider is given it is used instead of the Kraken HTTP provider (for tests).
    Raises PersistenceError if the store cannot be opened or migrated,
    ValueError if escalate_after is below 1.
    """
    if escalate_after < 1:
        raise ValueError(f"escalate_after must be >= 1, got {escalate_after}")
    conn: Optional[sqlite3.Connection] = None
    try:
        # The scheduler thread writes through this connection; the writer lock serializes access.
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
        _apply_ingestion_pragmas(conn, busy_timeout_ms)
        run_migrations(conn)
    except sqlite3.Error as exc:
        if conn is not None:
            conn.close()
        raise PersistenceError(f"cannot initialize store at {db_path}: {exc}") from exc

    writer = QuoteWriter(conn)
    health_store = PairHealthStore(conn, lock=writer.lock)
    archiver = CsvArchiver(archive_dir)
    try:
        archiver.directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        # Archive writes retry the mkdir and degrade to a logged warning.
        logger.warning("Cannot create archive dir %s: %s", archiver.directory, exc)
    ctx = PollContext(
        conn=conn,
        writer=writer,
        health_store=health_store,
        archiver=archiver,
        provider=provider if provider is not None else KrakenTickerProvider(),
        cycle_timeout_s=cycle_timeout_s,
        escalate_after=escalate_after,
    )
    ctx.pair_health.update(
        {
            pair: PairHealth(
                pair=h.pair,
                escalate_after=escalate_after,
                status=h.status,
                last_ok_at=h.last_ok_at,
                fail_count=h.fail_count,
                last_error_kind=h.last_error_kind,
                last_error=h.last_error,
            )
            for pair, h in health_store.load_as_dict().items()
        }
    )
    return ctx


def poll_pair(provider: TickerProvider, pair: str) -> PairOutcome:
    """
    Fetch and normalize one pair. Never raises: any failure is carried on the outcome.
    """
    try:
        raw = provider.fetch(pair)
        quotes = normalize(raw)
    except APIError as exc:
        if exc.pair is None:
            exc.pair = pair
        return PairOutcome(pair=pair, error=exc)
    except KrakenTickerError as exc:
        return PairOutcome(pair=pair, error=exc)
    except Exception as exc:
        return PairOutcome(pair=pair, error=FetchError(pair, f"{type(exc).__name__}: {exc}"))
    if not quotes:
        return PairOutcome(pair=pair, error=MalformedDataError(pair, "no usable ticker entries"))
    return PairOutcome(pair=pair, quotes=quotes)


def _fan_out(
    provider: TickerProvider,
    pairs: List[str],
    timeout_s: Optional[float],
    log: logging.Logger,
) -> List[PairOutcome]:
    """Run poll_pair for every pair in parallel and return one outcome per pair."""
    results: "queue.Queue[PairOutcome]" = queue.Queue(maxsize=len(pairs))

    def _task(pair: str) -> None:
        results.put_nowait(poll_pair(provider, pair))

    executor = ThreadPoolExecutor(max_workers=len(pairs), thread_name_prefix="ticker-fetch")
    futures = {executor.submit(_task, p): p for p in pairs}
    _done, pending = wait(futures, timeout=timeout_s)
    late = {futures[f] for f in pending}
    # Outstanding fetches are abandoned; their eventual results go to a queue nobody reads.
    executor.shutdown(wait=not pending, cancel_futures=True)

    outcomes: List[PairOutcome] = []
    while True:
        try:
            outcome = results.get_nowait()
        except queue.Empty:
            break
        if outcome.pair not in late:
            outcomes.append(outcome)
    for pair in sorted(late):
        log.error("pair %s: still running at cycle deadline (%ss), excluded", pair, timeout_s)
        outcomes.append(PairOutcome(pair=pair, error=FetchError(pair, "deadline exceeded")))
    return outcomes


def _log_failure(log: logging.Logger, outcome: PairOutcome) -> None:
    err = outcome.error
    if isinstance(err, MalformedDataError):
        log.warning("pair %s: %s", outcome.pair, err)
    elif isinstance(err, (FetchError, APIError)):
        log.error("pair %s: %s", outcome.pair, err)
    else:
        log.error("pair %s: unexpected failure: %s", outcome.pair, err)


def _record_failure(ctx: PollContext, log: logging.Logger, pair: str, err: BaseException) -> None:
    health = ctx.health_for(pair)
    if health.record_failure(type(err).__name__, str(err)):
        log.error(
            "pair %s: %d consecutive failed cycles (last: %s); needs attention",
            pair, health.fail_count, health.last_error_kind,
        )


def persist_outcome(ctx: PollContext, outcome: PairOutcome, log: logging.Logger) -> List[Quote]:
    """
    Upsert then archive every quote of a successful outcome.
    A PersistenceError drops that quote (no archive); the pair is charged one
    failed cycle no matter how many of its quotes failed.
    """
    accepted: List[Quote] = []
    last_error: Optional[PersistenceError] = None
    for quote in outcome.quotes.values():
        try:
            ctx.writer.write_quote(quote)
        except PersistenceError as exc:
            log.exception("pair %s: store write failed for %s", outcome.pair, quote.name)
            last_error = exc
            continue
        ctx.archiver.archive(quote.name, quote.price, quote.high24, quote.low24)
        accepted.append(quote)
    if last_error is not None:
        _record_failure(ctx, log, outcome.pair, last_error)
    elif accepted:
        ctx.health_for(outcome.pair).record_success()
    return accepted


def run_one_cycle(
    ctx: PollContext,
    pairs: Iterable[str],
    *,
    log: logging.Logger | None = None,
) -> int:
    """
    Run one poll cycle over the given pairs and return the number of accepted quotes.
    Per-pair failures are logged and excluded; nothing a single pair does raises out of here.
    Uses log for progress/warnings; if None, uses module logger.
    """
    _log = log if log is not None else logger
    ts = utc_now_iso()
    unique_pairs = list(dict.fromkeys(p.strip() for p in pairs if p and p.strip()))
    if not unique_pairs:
        _log.info("%s  OK  accepted=0/0 (no pairs configured)", ts)
        return 0

    outcomes = _fan_out(ctx.provider, unique_pairs, ctx.cycle_timeout_s, _log)

    summaries: List[str] = []
    accepted = 0
    for outcome in outcomes:
        if not outcome.ok:
            _log_failure(_log, outcome)
            _record_failure(ctx, _log, outcome.pair, outcome.error)
            continue
        for quote in persist_outcome(ctx, outcome, _log):
            accepted += 1
            summaries.append(f"[{quote.name} px={quote.price} h24={quote.high24} l24={quote.low24}]")

    try:
        ctx.health_store.upsert_all({p: ctx.health_for(p) for p in unique_pairs})
    except PersistenceError as exc:
        _log.error("pair health not persisted this cycle: %s", exc)

    detail = " ".join(summaries) if summaries else "(no ok)"
    _log.info("%s  OK  accepted=%d/%d %s", ts, accepted, len(unique_pairs), detail)
    return accepted


def get_pair_health(db_path: Union[str, Path]) -> List[PairHealth]:
    """Load all pair health records for the API. Returns list of PairHealth."""
    conn = sqlite3.connect(str(db_path))
    try:
        run_migrations(conn)
        return PairHealthStore(conn).load_all()
    finally:
        conn.close()


__all__ = [
    "PairOutcome",
    "PollContext",
    "get_poll_context",
    "get_pair_health",
    "poll_pair",
    "persist_outcome",
    "run_one_cycle",
]
