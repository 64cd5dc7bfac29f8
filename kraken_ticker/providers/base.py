"""
Provider interfaces and data contracts.

A ticker provider fetches the raw Ticker body for one pair; normalization
into Quote objects is a separate pure step. Quotes are frozen dataclasses;
per-pair health is mutable and owned by the poll context.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, runtime_checkable


class PairStatus(enum.Enum):
    """Health status of one polled pair."""

    OK = "OK"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


@dataclass(frozen=True)
class Quote:
    """Latest quote for one pair. Prices stay as the exchange's decimal text."""

    name: str
    price: str
    high24: str
    low24: str


@dataclass
class PairHealth:
    """Consecutive-failure tracking for a single requested pair."""

    pair: str
    escalate_after: int = 3
    status: PairStatus = PairStatus.OK
    last_ok_at: Optional[str] = None
    fail_count: int = 0
    last_error_kind: Optional[str] = None
    last_error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.escalate_after < 1:
            raise ValueError(f"escalate_after must be >= 1, got {self.escalate_after}")

    def record_success(self) -> None:
        self.status = PairStatus.OK
        self.fail_count = 0
        self.last_ok_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
        self.last_error_kind = None
        self.last_error = None

    def record_failure(self, kind: str, error: str) -> bool:
        """
        Count one failed cycle. Returns True when the streak reaches a multiple
        of escalate_after, i.e. when the caller should raise an alert.
        """
        self.fail_count += 1
        self.last_error_kind = kind
        self.last_error = error[:500]
        if self.fail_count >= self.escalate_after:
            self.status = PairStatus.DOWN
        else:
            self.status = PairStatus.DEGRADED
        return self.fail_count % self.escalate_after == 0


@runtime_checkable
class TickerProvider(Protocol):
    """Protocol for ticker sources: one blocking call per pair, raw body out."""

    @property
    def provider_name(self) -> str: ...

    def fetch(self, pair: str) -> bytes:
        """Fetch the raw Ticker response body for a pair (e.g. 'BTCEUR')."""
        ...
