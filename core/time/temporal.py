"""
Storefront Core Time — Temporal Helpers
=========================================
Pure functions for validity windows and elapsed-day checks.
All functions take explicit datetime arguments — no hidden clock access.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class TimeWindow:
    """
    A closed time interval [start, end].

    Invariant: start <= end (enforced at construction).
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"TimeWindow start ({self.start}) must be <= end ({self.end})."
            )

    def contains(self, dt: datetime) -> bool:
        """Inclusive on both ends."""
        return self.start <= dt <= self.end


def whole_days_elapsed(since: datetime, now: datetime) -> int:
    """Number of full days between `since` and `now` (floored)."""
    return int((now - since).total_seconds() // SECONDS_PER_DAY)


def within_days(since: datetime, now: datetime, days: int) -> bool:
    return whole_days_elapsed(since, now) <= days
