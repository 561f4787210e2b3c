"""
Shared fixtures: a clock frozen at a chosen instant.
"""
import pytest
from datetime import datetime, timedelta

from dailyrank.core.clock import Clock


class FixedClock(Clock):
    """Clock whose "now" only moves when a test moves it."""

    def __init__(self, current: datetime, tz_name: str = "UTC"):
        super().__init__(tz_name)
        self.set(current)

    def set(self, current: datetime):
        self.current = current if current.tzinfo else current.replace(tzinfo=self.tz)

    def advance(self, days: int = 0, hours: int = 0):
        self.current = self.current + timedelta(days=days, hours=hours)

    def now(self) -> datetime:
        return self.current


@pytest.fixture
def clock():
    # Tuesday 2024-03-05, 10:00 UTC
    return FixedClock(datetime(2024, 3, 5, 10, 0))
