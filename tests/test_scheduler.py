"""
Tests for TickerScheduler: immediate first run, fixed-interval repeats, stop, and
survival of failing cycles.
"""

from __future__ import annotations

import threading
import time

import pytest

from kraken_ticker.scheduler import SchedulerState, TickerScheduler


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_first_cycle_runs_immediately():
    ran = threading.Event()

    def cycle() -> int:
        ran.set()
        return 1

    scheduler = TickerScheduler(cycle, interval_seconds=3600)
    started = time.monotonic()
    scheduler.start()
    try:
        assert ran.wait(2.0)
        assert time.monotonic() - started < 2.0
        assert _wait_for(lambda: scheduler.state == SchedulerState.WAITING)
        assert scheduler.last_accepted == 1
    finally:
        scheduler.stop(timeout=2.0)
    assert scheduler.state == SchedulerState.IDLE
    assert not scheduler.is_running


def test_repeats_on_interval():
    calls = []
    scheduler = TickerScheduler(lambda: calls.append(time.monotonic()) or 0, interval_seconds=0.05)
    scheduler.start()
    try:
        assert _wait_for(lambda: len(calls) >= 4)
    finally:
        scheduler.stop(timeout=2.0)
    assert scheduler.cycles_run >= 4


def test_failing_cycle_does_not_stop_loop(caplog):
    attempts = []

    def cycle() -> int:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("store exploded")
        return 2

    scheduler = TickerScheduler(cycle, interval_seconds=0.05)
    scheduler.start()
    try:
        assert _wait_for(lambda: len(attempts) >= 3)
    finally:
        scheduler.stop(timeout=2.0)
    assert scheduler.last_accepted == 2
    assert any("Poll cycle failed" in r.getMessage() for r in caplog.records)


def test_stop_interrupts_wait_promptly():
    scheduler = TickerScheduler(lambda: 0, interval_seconds=3600)
    scheduler.start()
    assert _wait_for(lambda: scheduler.cycles_run == 1)
    started = time.monotonic()
    scheduler.stop(timeout=5.0)
    assert time.monotonic() - started < 2.0
    assert scheduler.cycles_run == 1


def test_stop_before_start_is_noop():
    scheduler = TickerScheduler(lambda: 0)
    scheduler.stop()
    assert scheduler.state == SchedulerState.IDLE


def test_start_twice_raises():
    scheduler = TickerScheduler(lambda: 0, interval_seconds=3600)
    scheduler.start()
    try:
        with pytest.raises(RuntimeError, match="already running"):
            scheduler.start()
    finally:
        scheduler.stop(timeout=2.0)


@pytest.mark.parametrize("interval", [0, -1, -0.5])
def test_invalid_interval_rejected(interval):
    with pytest.raises(ValueError):
        TickerScheduler(lambda: 0, interval_seconds=interval)
