"""
Fixed-interval scheduler for poll cycles.

IDLE -> RUNNING -> WAITING -> RUNNING -> ... until stop() is called.
The first cycle runs immediately at start so the store is populated as soon
as the process is up. The interval is measured from the start of each run,
so a slow cycle shortens the following wait instead of drifting the schedule.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 300.0


class SchedulerState(enum.Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    WAITING = "WAITING"


class TickerScheduler:
    """Run a cycle callable now and then every interval_seconds on a background thread."""

    def __init__(
        self,
        run_cycle: Callable[[], int],
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._run_cycle = run_cycle
        self.interval_seconds = float(interval_seconds)
        self.state = SchedulerState.IDLE
        self.cycles_run = 0
        self.last_accepted: Optional[int] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _run_once(self) -> None:
        self.state = SchedulerState.RUNNING
        try:
            self.last_accepted = self._run_cycle()
        except Exception:
            # A broken cycle must not end the loop; the next tick tries again.
            logger.exception("Poll cycle failed")
            self.last_accepted = None
        finally:
            self.cycles_run += 1

    def run_forever(self) -> None:
        """Blocking loop. Returns only after stop()."""
        logger.info("Scheduler started: every %.0fs", self.interval_seconds)
        next_run = time.monotonic()
        while not self._stop.is_set():
            self._run_once()
            next_run += self.interval_seconds
            now = time.monotonic()
            if next_run < now:
                # Skip ticks missed during a long cycle; no replay.
                next_run = now
            self.state = SchedulerState.WAITING
            self._stop.wait(next_run - now)
        self.state = SchedulerState.IDLE
        logger.info("Scheduler stopped after %d cycles", self.cycles_run)

    def start(self) -> threading.Thread:
        """Start run_forever on a daemon thread and return it."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("scheduler already running")
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name="ticker-scheduler", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the loop to exit and wait for the thread if one was started."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
