"""
Shared CLI plumbing: common flags, config overrides, and logging setup.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def add_common_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--config", default=None, help="Path to config YAML (default: config.yaml at repo root)")
    ap.add_argument("--db", default=None, help="SQLite path (default: db.path from config)")
    ap.add_argument("--archive-dir", default=None, help="CSV archive directory (default: archive.dir from config)")
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    ap.add_argument("--log-file", default=None, help="Also append all log output to this file")


def apply_overrides(args: argparse.Namespace) -> None:
    """Push CLI flags into the env layer so every config reader (including the API) sees them."""
    if args.config:
        os.environ["KRAKEN_TICKER_CONFIG"] = str(Path(args.config).resolve())
    if args.db:
        os.environ["KRAKEN_TICKER_DB_PATH"] = args.db
    if args.archive_dir:
        os.environ["KRAKEN_TICKER_ARCHIVE_DIR"] = args.archive_dir


def setup_logging(args: argparse.Namespace) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if args.log_file:
        log_path = Path(args.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT, handlers=handlers, force=True)
