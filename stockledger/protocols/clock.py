"""
Clock Protocol — Source of "now" and "today".

Balance bucketing and numbering years read the clock instead of the
system time, so tests can pin the date.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol for time sources."""

    def now(self) -> datetime:
        """Current aware datetime."""
        ...

    def today(self) -> date:
        """Current local date."""
        ...
