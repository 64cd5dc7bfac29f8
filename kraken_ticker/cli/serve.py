"""
Launch the poll scheduler and the HTTP API in one process.
Usage: kraken-ticker serve [--host 127.0.0.1] [--port 4242]
       kraken-ticker api   [--host 127.0.0.1] [--port 4242]   (API only, no polling)
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn

from kraken_ticker import config
from kraken_ticker.cli.common import add_common_args, apply_overrides, setup_logging
from kraken_ticker.cli.poll import add_poll_args, build_context, build_scheduler
from kraken_ticker.core.errors import PersistenceError

logger = logging.getLogger(__name__)


def _parse(prog: str, description: str, argv: List[str], with_poll: bool) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog=prog, description=description)
    add_common_args(ap)
    if with_poll:
        add_poll_args(ap)
    ap.add_argument("--host", default=None, help="Bind address (default: api.host, 127.0.0.1)")
    ap.add_argument("--port", type=int, default=None, help="Port (default: api.port, 4242)")
    args = ap.parse_args(argv)
    apply_overrides(args)
    setup_logging(args)
    return args


def _run_api(args: argparse.Namespace) -> None:
    from kraken_ticker.api import app

    host = args.host or config.api_host()
    port = args.port or config.api_port()
    logger.info("API listening on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_config=None)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = _parse("kraken-ticker serve", "Poll Kraken tickers and serve them over HTTP", argv, with_poll=True)

    pairs = args.pair or config.poll_pairs()
    interval = args.interval or config.poll_interval_seconds()
    try:
        ctx = build_context()
    except PersistenceError as e:
        logger.error("Store initialization failed: %s", e)
        return 1

    with ctx:
        scheduler = build_scheduler(ctx, pairs, interval)
        scheduler.start()
        try:
            _run_api(args)
        finally:
            scheduler.stop(timeout=ctx.cycle_timeout_s)
    return 0


def main_api(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = _parse("kraken-ticker api", "Serve stored tickers and archives over HTTP", argv, with_poll=False)
    _run_api(args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
