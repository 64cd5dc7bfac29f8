"""
Initialize the local store: create the SQLite file, run migrations, create the archive dir.
Use: kraken-ticker init [--db PATH] [--archive-dir DIR]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from kraken_ticker import config
from kraken_ticker.cli.common import add_common_args, apply_overrides, setup_logging
from kraken_ticker.core.errors import PersistenceError
from kraken_ticker.ingest import get_poll_context

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(
        prog="kraken-ticker init",
        description="Create the SQLite store and the CSV archive directory.",
    )
    add_common_args(ap)
    args = ap.parse_args(argv)
    apply_overrides(args)
    setup_logging(args)

    db_path = config.db_path()
    archive_dir = config.archive_dir()
    try:
        with get_poll_context(db_path, archive_dir, busy_timeout_ms=config.db_busy_timeout_ms()):
            pass
    except PersistenceError as e:
        logger.error("init failed: %s", e)
        return 1
    logger.info("Initialized store %s and archive dir %s", db_path, archive_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
