"""
Storefront Core Time — Public API
===================================
Explicit clock protocol and temporal helpers.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    get_default_clock,
    now_utc,
    set_default_clock,
)
from core.time.temporal import (
    TimeWindow,
    whole_days_elapsed,
    within_days,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "get_default_clock",
    "set_default_clock",
    "now_utc",
    "TimeWindow",
    "whole_days_elapsed",
    "within_days",
]
