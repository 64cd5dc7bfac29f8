"""
Poll Kraken tickers for the configured pairs into SQLite + CSV archives.
Use: kraken-ticker poll [--once] [--interval S] [--pair BTCEUR ...]
Runs one cycle immediately, then one every interval, until Ctrl+C.
"""

from __future__ import annotations

import argparse
import functools
import logging
import sys
from typing import List, Optional

from kraken_ticker import config
from kraken_ticker.cli.common import add_common_args, apply_overrides, setup_logging
from kraken_ticker.core.errors import PersistenceError
from kraken_ticker.ingest import PollContext, get_poll_context, run_one_cycle
from kraken_ticker.providers.kraken import KrakenTickerProvider
from kraken_ticker.scheduler import TickerScheduler

logger = logging.getLogger(__name__)


def build_context() -> PollContext:
    """Poll context wired from config. Raises PersistenceError if the store cannot be opened."""
    provider = KrakenTickerProvider(
        base_url=config.kraken_base_url(),
        timeout_s=config.kraken_timeout_s(),
    )
    return get_poll_context(
        config.db_path(),
        config.archive_dir(),
        provider=provider,
        cycle_timeout_s=config.cycle_timeout_s(),
        escalate_after=config.escalate_after(),
        busy_timeout_ms=config.db_busy_timeout_ms(),
    )


def build_scheduler(ctx: PollContext, pairs: List[str], interval_seconds: float) -> TickerScheduler:
    return TickerScheduler(functools.partial(run_one_cycle, ctx, pairs), interval_seconds)


def add_poll_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--pair", action="append", default=[], metavar="PAIR", help="Pair to poll (repeatable); default: poll.pairs from config")
    ap.add_argument("--interval", type=float, default=None, help="Seconds between cycles (default: poll.interval_seconds, 300)")


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(prog="kraken-ticker poll", description="Poll Kraken tickers into SQLite and CSV archives")
    add_common_args(ap)
    add_poll_args(ap)
    ap.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    args = ap.parse_args(argv)
    apply_overrides(args)
    setup_logging(args)

    pairs = args.pair or config.poll_pairs()
    interval = args.interval or config.poll_interval_seconds()
    try:
        ctx = build_context()
    except PersistenceError as e:
        logger.error("Store initialization failed: %s", e)
        return 1

    with ctx:
        logger.info("Writing to SQLite: %s, archives in %s", config.db_path(), config.archive_dir())
        logger.info("Pairs: %s", ", ".join(pairs))
        if args.once:
            run_one_cycle(ctx, pairs)
            return 0
        scheduler = build_scheduler(ctx, pairs, interval)
        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            logger.info("Stopped.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
