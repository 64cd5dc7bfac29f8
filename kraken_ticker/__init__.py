"""
Kraken ticker poller: periodic quote polling into SQLite with CSV archives.
Canonical entrypoint: import kraken_ticker; use kraken_ticker.ingest, kraken_ticker.scheduler, etc.
Does not import cli or api.
"""

from __future__ import annotations

from ._version import __version__

# Do not add exports without updating __all__.
__all__ = ["__version__"]
