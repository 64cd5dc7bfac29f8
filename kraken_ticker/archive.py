"""
CSV archive of accepted quotes: one write-once file per pair per cycle.

File names embed the pair and the local wall-clock time at minute resolution:
    <dir>/<PAIR>_<DD>_<MM>_<YYYY>_<HH>_<MM>.csv
Each file holds a header row and one data row. Losing a snapshot is not
critical, so write failures are logged and reported as None rather than raised.
"""

from __future__ import annotations

import csv
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

ARCHIVE_HEADER = ["Pair", "Price", "High 24h", "Low 24h"]
_STAMP_FORMAT = "%d_%m_%Y_%H_%M"


def archive_filename(pair: str, when: datetime) -> str:
    return f"{pair}_{when.strftime(_STAMP_FORMAT)}.csv"


def parse_archive_filename(filename: str) -> Optional[tuple[str, datetime]]:
    """Split 'ETHEUR_05_03_2024_14_07.csv' into ('ETHEUR', datetime). None if not an archive name."""
    stem, ext = os.path.splitext(os.path.basename(filename))
    if ext != ".csv":
        return None
    parts = stem.rsplit("_", 5)
    if len(parts) != 6 or not parts[0]:
        return None
    try:
        when = datetime.strptime("_".join(parts[1:]), _STAMP_FORMAT)
    except ValueError:
        return None
    return parts[0], when


class CsvArchiver:
    """Write and look up per-pair CSV snapshots under one directory."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def archive(
        self,
        name: str,
        price: str,
        high: str,
        low: str,
        now: Optional[datetime] = None,
    ) -> Optional[Path]:
        """Write one snapshot file. Returns its path, or None if the write failed."""
        when = now or datetime.now()
        path = self.directory / archive_filename(name, when)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(path, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(ARCHIVE_HEADER)
                writer.writerow([name, price, high, low])
        except OSError as exc:
            logger.warning("Archive write failed for %s (%s): %s", name, path, exc)
            return None
        logger.debug("Archived %s -> %s", name, path)
        return path

    def list_archives(self, pair: str) -> List[Path]:
        """All archive files for a pair, oldest first by embedded timestamp."""
        if not self.directory.is_dir():
            return []
        found = []
        for path in self.directory.glob(f"{pair}_*.csv"):
            parsed = parse_archive_filename(path.name)
            if parsed is not None and parsed[0] == pair:
                found.append((parsed[1], path))
        found.sort()
        return [p for _, p in found]

    def latest_archive(self, pair: str) -> Optional[Path]:
        archives = self.list_archives(pair)
        return archives[-1] if archives else None

    def archived_pairs(self) -> List[str]:
        """Sorted unique pair names that have at least one archive file."""
        if not self.directory.is_dir():
            return []
        pairs = set()
        for path in self.directory.glob("*.csv"):
            parsed = parse_archive_filename(path.name)
            if parsed is not None:
                pairs.add(parsed[0])
        return sorted(pairs)
