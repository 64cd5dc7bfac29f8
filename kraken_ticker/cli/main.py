"""
Top-level CLI dispatcher: kraken-ticker <command> [args...].
All commands dispatch to the package CLI modules.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

_COMMANDS = {
    "init": "Create the SQLite store and archive directory",
    "poll": "Poll tickers on a fixed interval (or --once)",
    "serve": "Poll tickers and serve the HTTP API",
    "api": "Serve the HTTP API only",
}


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="kraken-ticker",
        description="Kraken ticker poller with SQLite store and CSV archives",
    )
    subparsers = parser.add_subparsers(dest="command", help="command")
    for name, help_text in _COMMANDS.items():
        subparsers.add_parser(name, help=help_text, add_help=False)

    args, rest = parser.parse_known_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    cmd = args.command

    if cmd == "init":
        from kraken_ticker.cli import init_db as mod

        return mod.main(rest)
    if cmd == "poll":
        from kraken_ticker.cli import poll as mod

        return mod.main(rest)
    if cmd == "serve":
        from kraken_ticker.cli import serve as mod

        return mod.main(rest)
    if cmd == "api":
        from kraken_ticker.cli import serve as mod

        return mod.main_api(rest)

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
